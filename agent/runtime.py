"""
AgentRuntime -- tool-calling conversation engine.

Drives one user turn against an OpenAI-compatible chat-completions backend:

    system prompt + recent history + user input
        -> model
        -> [tool calls -> registry -> tool messages -> model] * N
        -> final text

Two modes:
    - run():           blocking; returns RunResult once the model stops
                       requesting tools.
    - run_streamed():  returns a StreamedRun immediately; iterating
                       stream_events() drives the rounds and yields text
                       deltas and tool events as they happen.

Multi-round tool use is an iterative loop capped at max_tool_rounds;
exceeding it raises ToolRoundLimitError. Backend failures are re-raised as
ProviderError tagged with the provider name. Tool failures never escape:
they are returned to the model as {"success": false} tool results.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from agent.errors import DocumenterError, ProviderError, ToolRoundLimitError, get_error_message
from agent.providers import LLMProvider
from agent.stream_processor import (
    StreamEvent,
    StreamProcessor,
    ToolCallCompleted,
    ToolCallFailed,
)
from agent.tool_executor import ToolCallRequest, execute_tool_calls
from documenter_constants import DEFAULT_MAX_TOOL_ROUNDS
from tools.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "No response generated"


@dataclass
class RunResult:
    """Result of a blocking run."""

    final_output: str
    # Full conversation in OpenAI message format, system message first
    messages: List[Dict[str, Any]]
    # Number of tool-execution rounds the model requested
    tool_rounds: int = 0


class StreamedRun:
    """Handle for a streamed turn.

    ``stream_events()`` may be iterated once. ``final_output``, ``messages``
    and ``tool_rounds`` are complete after the iterator is exhausted.
    """

    def __init__(self, runtime: "AgentRuntime", messages: List[Dict[str, Any]]):
        self._runtime = runtime
        self.messages = messages
        self.final_output = ""
        self.tool_rounds = 0
        self.is_complete = False
        self._consumed = False

    def stream_events(self) -> AsyncIterator[StreamEvent]:
        if self._consumed:
            raise RuntimeError("stream_events() can only be iterated once per run")
        self._consumed = True
        return self._runtime._stream_rounds(self)


class AgentRuntime:
    """
    Args:
        instructions: System prompt, always the first message.
        registry: Tools the model may call.
        provider: Backend client and model name.
        context: Passed to every tool invocation.
        max_tool_rounds: Tool-execution rounds allowed per turn.
    """

    def __init__(
        self,
        instructions: str,
        registry: ToolRegistry,
        provider: LLMProvider,
        context: ToolContext,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ):
        self.instructions = instructions
        self.registry = registry
        self.provider = provider
        self.context = context
        self.max_tool_rounds = max_tool_rounds

    # ------------------------------------------------------------------
    # Request assembly
    # ------------------------------------------------------------------

    def build_messages(
        self,
        user_input: str,
        history: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [{"role": "system", "content": self.instructions}]
        for item in history or ():
            messages.append({"role": item["role"], "content": item["content"]})
        messages.append({"role": "user", "content": user_input})
        return messages

    def tool_declarations(self) -> List[Dict[str, Any]]:
        return self.registry.openai_tools()

    def _request_kwargs(self, messages: List[Dict[str, Any]], stream: bool) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.provider.default_model,
            "messages": messages,
        }
        tools = self.tool_declarations()
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        if stream:
            kwargs["stream"] = True
        return kwargs

    def _provider_error(self, error: Exception) -> ProviderError:
        return ProviderError(
            f"Failed to process request: {get_error_message(error)}",
            self.provider.name,
            {"original_error": type(error).__name__},
        )

    async def _create(self, messages: List[Dict[str, Any]], stream: bool):
        api_start = time.monotonic()
        response = await self.provider.client.chat.completions.create(
            **self._request_kwargs(messages, stream)
        )
        logger.debug(
            "%s request (%d messages, stream=%s) answered in %.2fs",
            self.provider.name, len(messages), stream, time.monotonic() - api_start,
        )
        return response

    def _check_round_limit(self, rounds_done: int) -> None:
        if rounds_done >= self.max_tool_rounds:
            logger.warning("Tool round limit (%d) reached", self.max_tool_rounds)
            raise ToolRoundLimitError(self.provider.name, self.max_tool_rounds)

    # ------------------------------------------------------------------
    # Blocking mode
    # ------------------------------------------------------------------

    async def run(self, user_input: str, history: Optional[Iterable[Dict[str, Any]]] = None) -> RunResult:
        messages = self.build_messages(user_input, history)
        rounds = 0
        try:
            while True:
                response = await self._create(messages, stream=False)
                if not getattr(response, "choices", None):
                    raise ProviderError("No response from the model", self.provider.name)
                message = response.choices[0].message
                tool_calls = getattr(message, "tool_calls", None) or []

                if not tool_calls:
                    content = message.content or ""
                    messages.append({"role": "assistant", "content": content})
                    return RunResult(
                        final_output=content or NO_RESPONSE_TEXT,
                        messages=messages,
                        tool_rounds=rounds,
                    )

                self._check_round_limit(rounds)
                requests = [ToolCallRequest.from_openai(tc) for tc in tool_calls]
                messages.append({
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [req.to_message_dict() for req in requests],
                })
                logger.info("Round %d: executing %d tool call(s)", rounds + 1, len(requests))
                results = await execute_tool_calls(self.registry, self.context, requests)
                messages.extend(result.to_message() for result in results)
                rounds += 1
        except DocumenterError:
            raise
        except Exception as e:
            logger.error("Agent run failed: %s", e)
            raise self._provider_error(e) from e

    # ------------------------------------------------------------------
    # Streaming mode
    # ------------------------------------------------------------------

    def run_streamed(self, user_input: str, history: Optional[Iterable[Dict[str, Any]]] = None) -> StreamedRun:
        return StreamedRun(self, self.build_messages(user_input, history))

    async def _stream_rounds(self, run: StreamedRun) -> AsyncIterator[StreamEvent]:
        messages = run.messages
        try:
            while True:
                stream = await self._create(messages, stream=True)
                processor = StreamProcessor(messages)
                async for chunk in stream:
                    for event in processor.process_chunk(chunk):
                        yield event

                if not processor.wants_tools:
                    run.final_output = processor.record_final()
                    run.is_complete = True
                    return

                for event in processor.unannounced_calls():
                    yield event
                self._check_round_limit(run.tool_rounds)
                requests = processor.tool_call_requests()
                logger.info("Round %d: executing %d tool call(s)", run.tool_rounds + 1, len(requests))
                results = await execute_tool_calls(self.registry, self.context, requests)
                for result in results:
                    if result.success:
                        yield ToolCallCompleted(call_id=result.call_id, name=result.name)
                    else:
                        yield ToolCallFailed(call_id=result.call_id, name=result.name, error=result.error or "")

                processor.record_tool_round(results)
                run.tool_rounds += 1
        except DocumenterError:
            raise
        except Exception as e:
            logger.error("Streamed agent run failed: %s", e)
            raise self._provider_error(e) from e
