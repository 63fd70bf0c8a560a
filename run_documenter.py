#!/usr/bin/env python3
"""
Documenter - interactive technical documentation assistant.

Wires configuration, the LLM provider, the adaptive file cache and the
file tools into an AgentRuntime, then hands it to the conversation shell.

Usage:
    documenter                                 # interactive session
    documenter init                            # create .documenter.json here
    documenter --query "Document src/app.py"   # one turn, then exit
    documenter --verbose --no-stream           # debug logging, no incremental output
"""

import asyncio
import atexit
import logging
import os
import sys
from typing import Optional

import fire
from rich.console import Console
from rich.markup import escape

from agent.config import ConfigManager, DocumenterConfig
from agent.errors import ConfigurationError, DocumenterError, get_error_details, get_error_message
from agent.history import HistoryManager
from agent.prompt_assembler import PromptAssembler
from agent.providers import create_provider
from agent.runtime import AgentRuntime
from documenter_cli import display
from documenter_cli.conversation import ConversationShell
from documenter_cli.init_wizard import run_init_wizard
from tools.file_cache import AdaptiveConfig, AdaptiveFileCache, CacheMaintenance
from tools.file_operations import FileAccess
from tools.file_tools import build_default_registry
from tools.registry import ToolContext

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        # Keep third-party libraries at WARNING level to reduce noise
        for name in ("openai", "openai._base_client", "httpx", "httpcore", "asyncio"):
            logging.getLogger(name).setLevel(logging.WARNING)
        logger.info("Verbose logging enabled (third-party library logs suppressed)")
    else:
        # The shell renders its own status; log records only for problems
        logging.basicConfig(
            level=logging.WARNING,
            format='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        for name in ("openai", "openai._base_client", "httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.ERROR)


def build_runtime(config: DocumenterConfig, working_directory: Optional[str] = None) -> AgentRuntime:
    """Assemble the agent for one working directory."""
    working_directory = working_directory or os.getcwd()
    provider = create_provider(config)

    cache = AdaptiveFileCache(AdaptiveConfig())
    atexit.register(cache.destroy)
    context = ToolContext(files=FileAccess(cache=cache), working_directory=working_directory)
    registry = build_default_registry()

    instructions = PromptAssembler(
        working_directory=working_directory,
        output_dir=config.default_output_dir,
    ).build(valid_tool_names=registry.names())

    return AgentRuntime(
        instructions=instructions,
        registry=registry,
        provider=provider,
        context=context,
        max_tool_rounds=config.max_tool_rounds,
    )


async def run_single_query(runtime: AgentRuntime, query: str, stream: bool, out: Console) -> str:
    shell = ConversationShell(
        runtime,
        HistoryManager(),
        summary_fn=dict,
        out=out,
        stream=stream,
    )
    try:
        return await shell.handle_turn(query)
    finally:
        runtime.context.files.cache.destroy()


def main(
    command: str = None,
    query: str = None,
    verbose: bool = False,
    no_stream: bool = False,
):
    """
    Start the documentation assistant.

    Args:
        command (str): "init" runs the project setup wizard and exits.
        query (str): Run a single request non-interactively and exit.
        verbose (bool): Enable debug logging. Defaults to False.
        no_stream (bool): Print each answer once it is complete instead of streaming it.
    """
    configure_logging(verbose)

    if command is not None:
        if command != "init":
            display.print_error(f'Unknown command "{command}". Available commands: init')
            sys.exit(2)
        run_init_wizard()
        return

    manager = ConfigManager()
    try:
        config = manager.load_config()
        runtime = build_runtime(config, str(manager.cwd))
    except ConfigurationError as e:
        display.console.print(f"[red]❌ Configuration error:[/red] {escape(e.message)}", highlight=False)
        display.console.print('[yellow]Run "documenter init" to create a configuration.[/yellow]')
        sys.exit(1)
    except DocumenterError as e:
        logger.error("Startup failed: %s", get_error_details(e))
        display.print_error(get_error_message(e))
        sys.exit(1)

    if query:
        try:
            asyncio.run(run_single_query(runtime, query, stream=not no_stream, out=display.console))
        except DocumenterError as e:
            logger.error("Query failed: %s", get_error_details(e))
            display.print_error(get_error_message(e))
            sys.exit(1)
        return

    history = HistoryManager(config.max_conversation_history)
    shell = ConversationShell(
        runtime,
        history,
        summary_fn=manager.get_config_summary,
        maintenance=CacheMaintenance(runtime.context.files.cache),
        stream=not no_stream,
    )
    try:
        asyncio.run(shell.run())
    except KeyboardInterrupt:
        display.console.print("\n[green]👋 Goodbye![/green]")


def cli():
    fire.Fire(main)


if __name__ == "__main__":
    cli()
