"""Agent internals for Documenter.

Module Overview
---------------
**errors.py**
    Exception hierarchy (DocumenterError and subclasses) plus helpers for
    turning any exception into a message or a structured log record.

**config.py**
    Configuration model, layered builder (defaults < env < file) and the
    ConfigManager that discovers ``.env`` and project config files.

**providers.py**
    Builds the AsyncOpenAI client for the selected backend (OpenAI or
    LM Studio).

**prompt_assembler.py**
    System prompt assembly with a build-once cache.

**history.py**
    Bounded user/assistant turn history for the interactive shell.

**runtime.py**
    AgentRuntime -- the tool-calling loop, blocking and streamed.

**stream_processor.py**
    Per-stream state: text accumulation with a size cap, tool-call
    fragment merging, stream events.

**tool_executor.py**
    Sequential execution of model-requested tool calls against the
    registry; failures become structured tool results.

Architecture
------------
Modules depend on ``documenter_constants`` and the ``tools`` package, never
on ``documenter_cli`` or ``run_documenter``. The runtime owns no global
state: the registry, provider and tool context are passed in.
"""
