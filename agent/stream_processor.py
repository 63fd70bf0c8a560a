"""Incremental processing of a streamed chat-completions response.

One StreamProcessor handles one model stream (one round). It forwards text
deltas as events, accumulates up to MAX_ACCUMULATED_STREAM_BYTES of text
for the conversation record, and merges tool-call fragments by index.

Chunks are OpenAI ``ChatCompletionChunk`` objects (or anything with the same
attribute shape).
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional, Union

from agent.tool_executor import ToolCallRequest, ToolExecutionResult
from documenter_constants import MAX_ACCUMULATED_STREAM_BYTES, STREAM_TRUNCATION_NOTICE

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextDelta:
    delta: str
    type: str = "text_delta"


@dataclass(frozen=True)
class TruncationNotice:
    message: str = STREAM_TRUNCATION_NOTICE
    type: str = "truncation_notice"


@dataclass(frozen=True)
class ToolCallStarted:
    call_id: str
    name: str
    index: int
    type: str = "tool_call_started"


@dataclass(frozen=True)
class ToolCallCompleted:
    call_id: str
    name: str
    type: str = "tool_call_completed"


@dataclass(frozen=True)
class ToolCallFailed:
    call_id: str
    name: str
    error: str
    type: str = "tool_call_failed"


StreamEvent = Union[TextDelta, TruncationNotice, ToolCallStarted, ToolCallCompleted, ToolCallFailed]


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@dataclass
class ToolCallAccumulator:
    id: str = ""
    name: str = ""
    arguments: str = ""
    announced: bool = False

    def to_request(self) -> ToolCallRequest:
        return ToolCallRequest(self.id, self.name, self.arguments or "{}")


@dataclass
class StreamProcessorState:
    accumulated_content: str = ""
    content_size: int = 0
    tool_calls: Dict[int, ToolCallAccumulator] = field(default_factory=dict)
    truncation_notified: bool = False
    finish_reason: Optional[str] = None
    messages: List[Dict[str, Any]] = field(default_factory=list)


class StreamProcessor:
    """Turns one model stream into events plus the data needed for a follow-up round."""

    def __init__(self, messages: List[Dict[str, Any]], max_accumulated_bytes: int = MAX_ACCUMULATED_STREAM_BYTES):
        # The live conversation; record_* methods extend it in place
        self.state = StreamProcessorState(messages=messages)
        self.max_accumulated_bytes = max_accumulated_bytes

    def process_chunk(self, chunk: Any) -> List[StreamEvent]:
        choices = getattr(chunk, "choices", None)
        if not choices:
            return []
        choice = choices[0]
        delta = getattr(choice, "delta", None)
        events: List[StreamEvent] = []

        if delta is not None:
            content = getattr(delta, "content", None)
            if content:
                events.extend(self._handle_text(content))
            tool_call_deltas = getattr(delta, "tool_calls", None)
            if tool_call_deltas:
                events.extend(self._handle_tool_call_deltas(tool_call_deltas))

        finish_reason = getattr(choice, "finish_reason", None)
        if finish_reason:
            self.state.finish_reason = finish_reason
        return events

    def _handle_text(self, content: str) -> List[StreamEvent]:
        state = self.state
        events: List[StreamEvent] = []
        size = len(content.encode("utf-8"))

        if state.content_size + size > self.max_accumulated_bytes:
            if not state.truncation_notified:
                state.truncation_notified = True
                logger.warning(
                    "Streamed response exceeded %d bytes; further text is shown but not kept",
                    self.max_accumulated_bytes,
                )
                events.append(TruncationNotice())
        elif not state.truncation_notified:
            state.accumulated_content += content
            state.content_size += size

        events.append(TextDelta(content))
        return events

    def _handle_tool_call_deltas(self, deltas: List[Any]) -> List[StreamEvent]:
        events: List[StreamEvent] = []
        for frag in deltas:
            index = getattr(frag, "index", None)
            if index is None:
                continue
            fn = getattr(frag, "function", None)
            frag_id = getattr(frag, "id", None) or ""
            frag_name = (getattr(fn, "name", None) or "") if fn is not None else ""
            frag_args = (getattr(fn, "arguments", None) or "") if fn is not None else ""

            acc = self.state.tool_calls.get(index)
            if acc is None:
                acc = ToolCallAccumulator()
                self.state.tool_calls[index] = acc

            # Some backends send the id/name on a later fragment
            if frag_id and not acc.id:
                acc.id = frag_id
            if frag_name and not acc.name:
                acc.name = frag_name
            acc.arguments += frag_args

            # Announce once the id is known so started/completed events pair up
            if acc.id and not acc.announced:
                acc.announced = True
                events.append(ToolCallStarted(call_id=acc.id, name=acc.name or "unknown_tool", index=index))
        return events

    def unannounced_calls(self) -> List[StreamEvent]:
        """Started events for calls whose id never arrived; they carry an empty id."""
        events: List[StreamEvent] = []
        for index in sorted(self.state.tool_calls):
            acc = self.state.tool_calls[index]
            if not acc.announced:
                acc.announced = True
                events.append(ToolCallStarted(call_id=acc.id, name=acc.name or "unknown_tool", index=index))
        return events

    @property
    def wants_tools(self) -> bool:
        return self.state.finish_reason == "tool_calls" and bool(self.state.tool_calls)

    def tool_call_requests(self) -> List[ToolCallRequest]:
        return [self.state.tool_calls[i].to_request() for i in sorted(self.state.tool_calls)]

    def assistant_message(self) -> Dict[str, Any]:
        """The assistant turn as it goes into the follow-up request."""
        message: Dict[str, Any] = {
            "role": "assistant",
            "content": self.state.accumulated_content or None,
        }
        if self.state.tool_calls:
            message["tool_calls"] = [req.to_message_dict() for req in self.tool_call_requests()]
        return message

    def record_tool_round(self, results: List[ToolExecutionResult]) -> None:
        self.state.messages.append(self.assistant_message())
        self.state.messages.extend(result.to_message() for result in results)

    def record_final(self) -> str:
        content = self.state.accumulated_content
        self.state.messages.append({"role": "assistant", "content": content})
        return content
