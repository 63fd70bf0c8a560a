"""
Tools Package

File tools the documentation agent can call, and the layers under them:

- file_cache:      adaptive in-memory content cache sized from host memory
- file_operations: FileAccess (read/write/list/stat) and binary detection
- file_search:     directory traversal, fuzzy and pattern file search,
                   content search, project analysis
- schemas:         pydantic argument models for each tool
- registry:        ToolSpec / ToolRegistry / ToolContext and result types
- file_tools:      the eight tool definitions and build_default_registry()
"""

from .file_cache import AdaptiveConfig, AdaptiveFileCache, CacheMaintenance
from .file_operations import FileAccess
from .file_tools import build_default_registry
from .registry import ToolContext, ToolRegistry, ToolSpec

__all__ = [
    "AdaptiveConfig",
    "AdaptiveFileCache",
    "CacheMaintenance",
    "FileAccess",
    "ToolContext",
    "ToolRegistry",
    "ToolSpec",
    "build_default_registry",
]
