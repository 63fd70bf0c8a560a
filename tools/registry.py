"""
Tool registry.

Tools are static records (ToolSpec) assembled once at startup into an
immutable ToolRegistry. A handler takes the ToolContext plus the raw JSON
argument string from the model and returns a JSON string that always
carries a ``success`` boolean.

ToolSuccess / ToolFailure are the internal result union; ``to_json()``
produces the wire shape.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from tools.file_operations import FileAccess

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Collaborators handed to every tool invocation."""
    files: FileAccess
    working_directory: str = field(default_factory=os.getcwd)

    def resolve(self, path: str) -> str:
        """Absolute path; relative paths are taken from the working directory."""
        return os.path.abspath(os.path.join(self.working_directory, os.path.expanduser(path)))


ToolHandler = Callable[[ToolContext, str], Awaitable[str]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: ToolHandler
    strict: bool = False

    def to_openai_tool(self) -> Dict[str, Any]:
        """Chat-completions function declaration."""
        function: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
        if self.strict:
            function["strict"] = True
        return {"type": "function", "function": function}

    async def invoke(self, context: ToolContext, arguments: str) -> str:
        return await self.handler(context, arguments)


@dataclass
class ToolSuccess:
    payload: Dict[str, Any]

    success = True

    def to_json(self) -> str:
        return json.dumps({"success": True, **self.payload}, ensure_ascii=False)


@dataclass
class ToolFailure:
    error: str
    extra: Dict[str, Any] = field(default_factory=dict)

    success = False

    def to_json(self) -> str:
        return json.dumps({"success": False, **self.extra, "error": self.error}, ensure_ascii=False)


class ToolRegistry:
    """Read-only name -> ToolSpec mapping preserving registration order."""

    def __init__(self, specs: Iterable[ToolSpec]):
        tools: Dict[str, ToolSpec] = {}
        for spec in specs:
            if spec.name in tools:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            tools[spec.name] = spec
        self._tools = tools

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def specs(self) -> List[ToolSpec]:
        return list(self._tools.values())

    def openai_tools(self) -> List[Dict[str, Any]]:
        return [spec.to_openai_tool() for spec in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self):
        return iter(self._tools.values())
