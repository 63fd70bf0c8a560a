"""
The eight file tools exposed to the model.

Handlers validate their JSON arguments, delegate to the file access layer
and return JSON. Validation and file-operation errors come back as
``{"success": false, "error": ...}``; anything else propagates to the tool
executor, which reports it as a tool execution failure.
"""

import logging
from typing import Any, Dict, Optional

from agent.errors import DocumenterError, FileOperationError, get_error_message
from tools.file_search import (
    FuzzySearchOptions,
    analyze_project,
    fuzzy_search_files,
    search_file_content,
    search_files_by_pattern,
)
from tools.registry import ToolContext, ToolFailure, ToolRegistry, ToolSpec, ToolSuccess
from tools.schemas import (
    AnalyzeProjectArgs,
    FuzzyFindFilesArgs,
    GetFileInfoArgs,
    ListDirectoryArgs,
    ReadFileArgs,
    SearchFileContentArgs,
    SearchFilesArgs,
    WriteFileArgs,
    validate_tool_input,
)

logger = logging.getLogger(__name__)

BINARY_FILE_ERROR = "File appears to be binary and cannot be read as text"


def _failure(error: BaseException, path_key: Optional[str] = None) -> str:
    extra: Dict[str, Any] = {}
    if path_key:
        extra[path_key] = error.file_path if isinstance(error, FileOperationError) else "unknown"
    logger.debug("Tool failure: %s", error)
    return ToolFailure(get_error_message(error), extra).to_json()


def _object_schema(properties: Dict[str, Any], required: list) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def _string_list(description: str) -> Dict[str, Any]:
    return {
        "type": "array",
        "items": {"type": "string", "description": "File extension"},
        "description": description,
    }


# ---------------------------------------------------------------------------
# read_file
# ---------------------------------------------------------------------------

async def read_file_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(ReadFileArgs, arguments, "read_file")
        path = context.resolve(args.file_path)
        if await context.files.is_likely_binary(path):
            return ToolFailure(BINARY_FILE_ERROR, {"file_path": path}).to_json()
        result = await context.files.read_file(path)
    except DocumenterError as e:
        return _failure(e, "file_path")
    payload = result.to_dict()
    payload.pop("success")
    return ToolSuccess(payload).to_json()


READ_FILE = ToolSpec(
    name="read_file",
    description="Read the contents of a file for analysis and documentation",
    parameters=_object_schema(
        {"file_path": {"type": "string", "description": "The path to the file to read (relative or absolute)"}},
        ["file_path"],
    ),
    handler=read_file_tool,
    strict=True,
)


# ---------------------------------------------------------------------------
# list_directory
# ---------------------------------------------------------------------------

async def list_directory_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(ListDirectoryArgs, arguments, "list_directory")
        result = await context.files.list_directory(
            context.resolve(args.directory_path), args.include_hidden
        )
    except DocumenterError as e:
        return _failure(e, "directory_path")
    result.pop("success")
    return ToolSuccess(result).to_json()


LIST_DIRECTORY = ToolSpec(
    name="list_directory",
    description="List the contents of a directory to understand project structure",
    parameters=_object_schema(
        {
            "directory_path": {
                "type": "string",
                "description": "The path to the directory to list (defaults to current directory)",
            },
            "include_hidden": {
                "type": "boolean",
                "description": "Whether to include hidden files and directories",
            },
        },
        ["directory_path", "include_hidden"],
    ),
    handler=list_directory_tool,
    strict=True,
)


# ---------------------------------------------------------------------------
# get_file_info
# ---------------------------------------------------------------------------

async def get_file_info_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(GetFileInfoArgs, arguments, "get_file_info")
        info = await context.files.get_file_info(context.resolve(args.file_path))
    except DocumenterError as e:
        return _failure(e, "file_path")
    info.pop("success")
    return ToolSuccess(info).to_json()


GET_FILE_INFO = ToolSpec(
    name="get_file_info",
    description="Get detailed information about a file or directory",
    parameters=_object_schema(
        {"file_path": {"type": "string", "description": "The path to the file or directory to analyze"}},
        ["file_path"],
    ),
    handler=get_file_info_tool,
    strict=True,
)


# ---------------------------------------------------------------------------
# write_file
# ---------------------------------------------------------------------------

async def write_file_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(WriteFileArgs, arguments, "write_file")
        result = await context.files.write_file(
            context.resolve(args.file_path), args.content, args.overwrite
        )
    except DocumenterError as e:
        return _failure(e, "file_path")

    if not result.pop("success"):
        error = result.pop("error")
        return ToolFailure(error, result).to_json()
    logger.info("write_file: %s (%s bytes)", result["file_path"], result["size"])
    return ToolSuccess(result).to_json()


WRITE_FILE = ToolSpec(
    name="write_file",
    description="Create or write content to a file",
    parameters=_object_schema(
        {
            "file_path": {"type": "string", "description": "The path where to create/write the file"},
            "content": {"type": "string", "description": "The content to write to the file"},
            "overwrite": {
                "type": "boolean",
                "description": "Whether to overwrite the file if it already exists",
            },
        },
        ["file_path", "content", "overwrite"],
    ),
    handler=write_file_tool,
    strict=True,
)


# ---------------------------------------------------------------------------
# search_files
# ---------------------------------------------------------------------------

async def search_files_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(SearchFilesArgs, arguments, "search_files")
        root = context.resolve(args.directory_path)

        if args.fuzzy_search:
            matches = await fuzzy_search_files(
                FuzzySearchOptions(
                    query=args.pattern,
                    directory_path=root,
                    file_extensions=args.file_extensions or [],
                    max_results=args.max_results,
                    case_sensitive=args.case_sensitive,
                    min_score=(
                        args.min_score if args.min_score is not None
                        else context.files.config.fuzzy_search_threshold
                    ),
                    include_directories=args.include_directories,
                ),
                max_search_depth=context.files.config.max_search_depth,
            )
            results = [m.to_dict() for m in matches]
            truncated = False
        else:
            found = await search_files_by_pattern(
                root,
                args.pattern,
                file_extensions=args.file_extensions,
                max_results=args.max_results,
                case_sensitive=args.case_sensitive,
                include_directories=args.include_directories,
            )
            results = found.results
            truncated = found.truncated
    except DocumenterError as e:
        return _failure(e)

    return ToolSuccess({
        "directory_path": root,
        "pattern": args.pattern,
        "fuzzy_search": args.fuzzy_search,
        "results": results,
        "total_found": len(results),
        "truncated": truncated,
    }).to_json()


SEARCH_FILES = ToolSpec(
    name="search_files",
    description="Search for files by name pattern in a directory tree with optional fuzzy matching",
    parameters=_object_schema(
        {
            "directory_path": {"type": "string", "description": "The root directory to search in"},
            "pattern": {
                "type": "string",
                "description": "Search pattern (supports wildcards like *.py, *test*, etc. or fuzzy search terms)",
            },
            "file_extensions": _string_list(
                'Optional array of file extensions to filter by (e.g., [".py", ".md"])'
            ),
            "max_results": {"type": "number", "description": "Maximum number of results to return (default: 50)"},
            "case_sensitive": {
                "type": "boolean",
                "description": "Whether the search should be case sensitive (default: false)",
            },
            "fuzzy_search": {
                "type": "boolean",
                "description": "Enable fuzzy matching for partial file names (default: false)",
            },
            "min_score": {
                "type": "number",
                "description": "Minimum similarity score for fuzzy matches (0.0-1.0, default: 0.3)",
            },
            "include_directories": {
                "type": "boolean",
                "description": "Include directories in search results (default: false)",
            },
        },
        ["directory_path", "pattern"],
    ),
    handler=search_files_tool,
)


# ---------------------------------------------------------------------------
# analyze_project
# ---------------------------------------------------------------------------

async def analyze_project_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(AnalyzeProjectArgs, arguments, "analyze_project")
        root = context.resolve(args.project_path)
        analysis = await analyze_project(root, args.max_depth)
    except DocumenterError as e:
        return _failure(e)
    return ToolSuccess({"project_path": root, **analysis}).to_json()


ANALYZE_PROJECT = ToolSpec(
    name="analyze_project",
    description="Analyze project structure and provide insights about file types, sizes, and organization",
    parameters=_object_schema(
        {
            "project_path": {"type": "string", "description": "The root path of the project to analyze"},
            "max_depth": {"type": "number", "description": "Maximum directory depth to analyze (default: 5)"},
        },
        ["project_path"],
    ),
    handler=analyze_project_tool,
)


# ---------------------------------------------------------------------------
# search_file_content
# ---------------------------------------------------------------------------

async def search_file_content_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(SearchFileContentArgs, arguments, "search_file_content")
        root = context.resolve(args.directory_path)
        results = await search_file_content(
            context.files,
            root,
            args.search_term,
            file_extensions=args.file_extensions,
            max_results=args.max_results,
            case_sensitive=args.case_sensitive,
        )
    except DocumenterError as e:
        return _failure(e)
    return ToolSuccess({
        "directory_path": root,
        "search_term": args.search_term,
        "results": results,
        "total_files_with_matches": len(results),
        "truncated": len(results) >= args.max_results,
    }).to_json()


SEARCH_FILE_CONTENT = ToolSpec(
    name="search_file_content",
    description="Search for text content within files in a directory tree",
    parameters=_object_schema(
        {
            "directory_path": {"type": "string", "description": "The root directory to search in"},
            "search_term": {"type": "string", "description": "The text to search for within files"},
            "file_extensions": _string_list(
                'Optional array of file extensions to search in (e.g., [".py", ".md"])'
            ),
            "max_results": {"type": "number", "description": "Maximum number of results to return (default: 20)"},
            "case_sensitive": {
                "type": "boolean",
                "description": "Whether the search should be case sensitive (default: false)",
            },
        },
        ["directory_path", "search_term"],
    ),
    handler=search_file_content_tool,
)


# ---------------------------------------------------------------------------
# fuzzy_find_files
# ---------------------------------------------------------------------------

async def fuzzy_find_files_tool(context: ToolContext, arguments: str) -> str:
    try:
        args = validate_tool_input(FuzzyFindFilesArgs, arguments, "fuzzy_find_files")
        root = context.resolve(args.directory_path or context.working_directory)
        matches = await fuzzy_search_files(
            FuzzySearchOptions(
                query=args.query,
                directory_path=root,
                max_results=args.max_results,
                min_score=context.files.config.fuzzy_search_threshold,
                include_directories=True,
            ),
            max_search_depth=context.files.config.max_search_depth,
        )
    except DocumenterError as e:
        return _failure(e)
    return ToolSuccess({
        "query": args.query,
        "directory_path": root,
        "results": [m.to_dict() for m in matches],
        "total_found": len(matches),
        "truncated": False,
    }).to_json()


FUZZY_FIND_FILES = ToolSpec(
    name="fuzzy_find_files",
    description="Intelligently find files using fuzzy matching with multiple search strategies",
    parameters=_object_schema(
        {
            "query": {
                "type": "string",
                "description": 'File name or partial name to search for (e.g., "config", "test.py", "component")',
            },
            "directory_path": {
                "type": "string",
                "description": "The root directory to search in (defaults to current directory)",
            },
            "max_results": {"type": "number", "description": "Maximum number of results to return (default: 30)"},
        },
        ["query"],
    ),
    handler=fuzzy_find_files_tool,
)


DEFAULT_TOOLS = (
    READ_FILE,
    LIST_DIRECTORY,
    GET_FILE_INFO,
    WRITE_FILE,
    SEARCH_FILES,
    ANALYZE_PROJECT,
    SEARCH_FILE_CONTENT,
    FUZZY_FIND_FILES,
)


def build_default_registry() -> ToolRegistry:
    return ToolRegistry(DEFAULT_TOOLS)
