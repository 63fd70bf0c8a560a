"""
Argument models for the file tools.

Each model rejects unknown fields and carries the defaults/bounds applied
when the model omits an optional argument. validate_tool_input() is the
single entry point used by the tool handlers.
"""

import json
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from agent.errors import ValidationError


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ReadFileArgs(ToolArgs):
    file_path: str = Field(min_length=1)


class ListDirectoryArgs(ToolArgs):
    directory_path: str = Field(min_length=1)
    include_hidden: bool


class GetFileInfoArgs(ToolArgs):
    file_path: str = Field(min_length=1)


class WriteFileArgs(ToolArgs):
    file_path: str = Field(min_length=1)
    content: str
    overwrite: bool


class SearchFilesArgs(ToolArgs):
    directory_path: str = Field(min_length=1)
    pattern: str = Field(min_length=1)
    file_extensions: Optional[List[str]] = None
    max_results: int = Field(default=50, ge=1, le=500)
    case_sensitive: bool = False
    fuzzy_search: bool = False
    # None defers to the adaptive config threshold
    min_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    include_directories: bool = False


class FuzzyFindFilesArgs(ToolArgs):
    query: str = Field(min_length=1)
    directory_path: Optional[str] = None
    max_results: int = Field(default=30, ge=1, le=500)


class SearchFileContentArgs(ToolArgs):
    directory_path: str = Field(min_length=1)
    search_term: str = Field(min_length=1)
    file_extensions: Optional[List[str]] = None
    max_results: int = Field(default=20, ge=1, le=500)
    case_sensitive: bool = False


class AnalyzeProjectArgs(ToolArgs):
    project_path: str = Field(min_length=1)
    max_depth: int = Field(default=5, ge=0, le=50)


ArgsT = TypeVar("ArgsT", bound=ToolArgs)


def validate_tool_input(model: Type[ArgsT], arguments: str, tool_name: str) -> ArgsT:
    """Parse a JSON argument string into ``model``.

    Raises:
        ValidationError: on malformed JSON or a schema violation; ``field``
            names the first failing field ("(root)" for JSON errors).
    """
    try:
        data = json.loads(arguments) if arguments and arguments.strip() else {}
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Invalid JSON input for tool {tool_name}: {e.msg}",
            "(root)",
            {"tool_name": tool_name},
        ) from e

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        issues = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err["loc"]) or "(root)"
            issues.append((loc, err["msg"]))
        summary = ", ".join(f"{loc}: {msg}" for loc, msg in issues)
        raise ValidationError(
            f"Invalid input for tool {tool_name}: {summary}",
            issues[0][0] if issues else "(root)",
            {"tool_name": tool_name, "fields": [loc for loc, _ in issues]},
        ) from e
