"""Tool call execution.

Runs model-requested tool calls against the registry, one at a time in the
order received. Nothing raised by a tool escapes: unknown tools and handler
exceptions become ``{"success": false, ...}`` results that are fed back to
the model like any other tool output.
"""

from dataclasses import dataclass
import json
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from agent.errors import ToolError, get_error_details, get_error_message
from tools.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCallRequest:
    """One model-issued call: correlation id, tool name, raw JSON arguments."""

    call_id: str
    name: str
    arguments: str = "{}"

    @classmethod
    def from_openai(cls, tool_call: Any) -> "ToolCallRequest":
        """Build from an OpenAI ``ChatCompletionMessageToolCall`` (object or dict)."""
        if isinstance(tool_call, dict):
            fn = tool_call.get("function") or {}
            return cls(tool_call.get("id", ""), fn.get("name", ""), fn.get("arguments") or "{}")
        return cls(tool_call.id, tool_call.function.name, tool_call.function.arguments or "{}")

    def to_message_dict(self) -> Dict[str, Any]:
        return {
            "id": self.call_id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class ToolExecutionResult:
    call_id: str
    name: str
    content: str
    success: bool
    error: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        return {"role": "tool", "tool_call_id": self.call_id, "content": self.content}


async def execute_tool_call(
    registry: ToolRegistry,
    context: ToolContext,
    call: ToolCallRequest,
) -> ToolExecutionResult:
    spec = registry.get(call.name)
    if spec is None:
        error = f"Unknown tool: {call.name}"
        logger.warning("Model requested unknown tool %r (call %s)", call.name, call.call_id)
        return ToolExecutionResult(
            call_id=call.call_id,
            name=call.name,
            content=json.dumps({"success": False, "error": error}),
            success=False,
            error=error,
        )

    start = time.monotonic()
    try:
        content = await spec.invoke(context, call.arguments)
    except Exception as e:
        message = get_error_message(e)
        err = ToolError(message, call.name, {"call_id": call.call_id})
        logger.error("Tool %s raised: %s", call.name, get_error_details(err), exc_info=True)
        return ToolExecutionResult(
            call_id=call.call_id,
            name=call.name,
            content=json.dumps({"success": False, "error": f"Tool execution failed: {message}"}),
            success=False,
            error=message,
        )

    logger.debug(
        "Tool %s (call %s) finished in %.2fs, %d chars",
        call.name, call.call_id, time.monotonic() - start, len(content),
    )
    return ToolExecutionResult(call_id=call.call_id, name=call.name, content=content, success=True)


async def execute_tool_calls(
    registry: ToolRegistry,
    context: ToolContext,
    calls: Iterable[ToolCallRequest],
) -> List[ToolExecutionResult]:
    """Execute *calls* sequentially; results keep the order and ids of the requests."""
    results = []
    for call in calls:
        results.append(await execute_tool_call(registry, context, call))
    return results
