"""System prompt assembly with caching.

The prompt is built once per session from layered parts: the writer
identity, guidance for each enabled tool, documentation standards, and
workspace hints (working directory, default output directory).

Caching contract:
    - build() returns the cached value on subsequent calls
    - invalidate() clears the cache; the next build() creates a fresh prompt
"""

from datetime import datetime
from typing import Iterable, Optional

DOCUMENTER_IDENTITY = (
    "# Technical Documentation Writer\n\n"
    "You are an experienced technical writer who analyses source code and "
    "produces accurate documentation for it. You examine files and folders to "
    "understand structure and behaviour, write external documentation "
    "(README files, API guides, architecture notes), improve inline "
    "documentation inside source files, and explain code clearly when asked."
)

# Shown only for tools that are actually registered
TOOL_GUIDANCE = {
    "read_file": "read_file: read a text file (cached; large files are streamed; binary files are refused).",
    "write_file": "write_file: create or update a file; parent directories are created. "
                  "Pass overwrite=true for documentation files you are regenerating.",
    "list_directory": "list_directory: list a directory with sizes and modification times.",
    "get_file_info": "get_file_info: metadata for a file or directory (size, permissions, binary/large flags).",
    "search_files": "search_files: find files by wildcard pattern such as *.py or *test*, "
                    "or by fuzzy name matching with fuzzy_search=true.",
    "fuzzy_find_files": "fuzzy_find_files: locate a file when you only know part of its name.",
    "search_file_content": "search_file_content: find lines containing a literal term across a tree.",
    "analyze_project": "analyze_project: file-type statistics, sizes and large files for a project.",
}

DOCUMENTATION_STANDARDS = """## Working method
1. Analyse before writing: use analyze_project for an overview, then fuzzy_find_files or search_files to locate files, and search_file_content to find usage examples.
2. Read the relevant files before documenting them and match the documentation conventions already used in the project.
3. Inline documentation must never change program behaviour. Cover modules, classes, functions and non-obvious algorithms, including edge cases and error conditions.
4. External documents go in sensible locations (README.md at the project root, guides in the output directory) and cross-reference the documented code.

## Output guidelines
- Never paste whole files into the conversation; quote focused snippets.
- For many similar files, summarise the shared pattern instead of repeating it.
- Match the technical level of the question and keep answers concise."""


class PromptAssembler:
    """Assembles the documentation-assistant system prompt.

    Args:
        working_directory: Directory the tools resolve relative paths against.
        output_dir: Default location for generated documentation.
    """

    def __init__(self, *, working_directory: Optional[str] = None, output_dir: Optional[str] = None):
        self._working_directory = working_directory
        self._output_dir = output_dir
        self._cached_prompt: Optional[str] = None

    def build(self, *, valid_tool_names: Iterable[str], system_message: Optional[str] = None) -> str:
        """Assemble the full system prompt.

        CACHING CONTRACT: returns the cached value on subsequent calls.
        Call invalidate() before build() to force a rebuild.
        """
        if self._cached_prompt is not None:
            return self._cached_prompt

        prompt_parts = [DOCUMENTER_IDENTITY]

        tool_lines = [f"- {TOOL_GUIDANCE[name]}" for name in valid_tool_names if name in TOOL_GUIDANCE]
        if tool_lines:
            prompt_parts.append("## Available tools\n" + "\n".join(tool_lines))

        prompt_parts.append(DOCUMENTATION_STANDARDS)

        if system_message is not None:
            prompt_parts.append(system_message)

        workspace = []
        if self._working_directory:
            workspace.append(f"Working directory: {self._working_directory}")
        if self._output_dir:
            workspace.append(f"Write generated documentation under {self._output_dir} unless told otherwise.")
        if workspace:
            prompt_parts.append("\n".join(workspace))

        now = datetime.now()
        prompt_parts.append(f"Conversation started: {now.strftime('%A, %B %d, %Y %I:%M %p')}")

        result = "\n\n".join(prompt_parts)
        self._cached_prompt = result
        return result

    @property
    def cached(self) -> Optional[str]:
        return self._cached_prompt

    def invalidate(self) -> None:
        self._cached_prompt = None
