"""Tests for tools/file_tools.py -- the eight tool handlers end to end.

Each handler takes the raw JSON argument string the model produced and
returns a JSON string that always carries ``success``.

Run with:
    python -m pytest tests/tools/test_file_tools.py -v
"""

import json
import os
from dataclasses import replace

import pytest

from tools.file_tools import (
    BINARY_FILE_ERROR,
    analyze_project_tool,
    fuzzy_find_files_tool,
    get_file_info_tool,
    list_directory_tool,
    read_file_tool,
    search_file_content_tool,
    search_files_tool,
    write_file_tool,
)


async def _call(handler, context, **arguments):
    return json.loads(await handler(context, json.dumps(arguments)))


# ---------------------------------------------------------------------------
# read_file
# ---------------------------------------------------------------------------

class TestReadFileTool:
    @pytest.mark.asyncio
    async def test_reads_relative_path(self, context, project):
        result = await _call(read_file_tool, context, file_path="src/utils.py")
        assert result["success"] is True
        assert result["content"] == "def helper():\n    return 42\n"
        assert result["file_path"] == str(project / "src" / "utils.py")
        assert set(result) == {"success", "file_path", "size", "content", "last_modified"}

    @pytest.mark.asyncio
    async def test_binary_refused(self, context, project):
        result = await _call(read_file_tool, context, file_path="assets/logo.png")
        assert result == {
            "success": False,
            "file_path": str(project / "assets" / "logo.png"),
            "error": BINARY_FILE_ERROR,
        }

    @pytest.mark.asyncio
    async def test_missing_file(self, context, project):
        result = await _call(read_file_tool, context, file_path="nope.txt")
        assert result["success"] is False
        assert result["error"].startswith("Failed to read file:")
        assert result["file_path"] == str(project / "nope.txt")

    @pytest.mark.asyncio
    async def test_invalid_json_arguments(self, context):
        result = json.loads(await read_file_tool(context, "{not json"))
        assert result["success"] is False
        assert result["error"].startswith("Invalid JSON input for tool read_file")
        assert result["file_path"] == "unknown"


# ---------------------------------------------------------------------------
# list_directory / get_file_info
# ---------------------------------------------------------------------------

class TestListDirectoryTool:
    @pytest.mark.asyncio
    async def test_lists_directory(self, context, project):
        result = await _call(list_directory_tool, context, directory_path="src", include_hidden=False)
        assert result["success"] is True
        assert result["directory_path"] == str(project / "src")
        assert sorted(i["name"] for i in result["contents"]) == ["helpers", "main.py", "utils.py"]
        assert result["total_items"] == 3

    @pytest.mark.asyncio
    async def test_missing_directory(self, context, project):
        result = await _call(list_directory_tool, context, directory_path="ghost", include_hidden=False)
        assert result["success"] is False
        assert result["directory_path"] == str(project / "ghost")

    @pytest.mark.asyncio
    async def test_include_hidden_required(self, context):
        result = await _call(list_directory_tool, context, directory_path=".")
        assert result["success"] is False
        assert "include_hidden" in result["error"]
        assert result["directory_path"] == "unknown"


class TestGetFileInfoTool:
    @pytest.mark.asyncio
    async def test_file(self, context):
        result = await _call(get_file_info_tool, context, file_path="README.md")
        assert result["success"] is True
        assert result["type"] == "file"
        assert result["extension"] == ".md"
        assert result["is_binary"] is False

    @pytest.mark.asyncio
    async def test_missing(self, context, project):
        result = await _call(get_file_info_tool, context, file_path="missing.md")
        assert result["success"] is False
        assert result["file_path"] == str(project / "missing.md")


# ---------------------------------------------------------------------------
# write_file
# ---------------------------------------------------------------------------

class TestWriteFileTool:
    @pytest.mark.asyncio
    async def test_creates_file(self, context, project):
        result = await _call(
            write_file_tool, context, file_path="docs/api/index.md", content="# API\n", overwrite=False,
        )
        assert result["success"] is True
        assert result["message"] == "File created successfully"
        assert (project / "docs" / "api" / "index.md").read_text() == "# API\n"

    @pytest.mark.asyncio
    async def test_refuses_existing_without_overwrite(self, context, project):
        os.utime(project / "README.md", (1000, 1000))
        result = await _call(write_file_tool, context, file_path="README.md", content="x", overwrite=False)
        assert result == {
            "success": False,
            "file_path": str(project / "README.md"),
            "error": "File already exists and overwrite is set to false",
        }
        assert (project / "README.md").read_text().startswith("# Project")
        assert os.stat(project / "README.md").st_mtime == 1000

    @pytest.mark.asyncio
    async def test_overwrites(self, context, project):
        result = await _call(write_file_tool, context, file_path="README.md", content="new", overwrite=True)
        assert result["success"] is True
        assert result["message"] == "File overwritten successfully"
        assert (project / "README.md").read_text() == "new"

    @pytest.mark.asyncio
    async def test_missing_overwrite_flag(self, context):
        result = await _call(write_file_tool, context, file_path="x.md", content="x")
        assert result["success"] is False
        assert result["error"].startswith("Invalid input for tool write_file")


# ---------------------------------------------------------------------------
# search_files / fuzzy_find_files
# ---------------------------------------------------------------------------

class TestSearchFilesTool:
    @pytest.mark.asyncio
    async def test_pattern_mode(self, context, project):
        result = await _call(search_files_tool, context, directory_path=".", pattern="*.md")
        assert result["success"] is True
        assert result["fuzzy_search"] is False
        assert result["pattern"] == "*.md"
        assert result["directory_path"] == str(project)
        assert result["total_found"] == 2
        assert result["truncated"] is False

    @pytest.mark.asyncio
    async def test_truncated_flag(self, context):
        result = await _call(search_files_tool, context, directory_path=".", pattern="*", max_results=1)
        assert result["total_found"] == 1
        assert result["truncated"] is True

    @pytest.mark.asyncio
    async def test_fuzzy_mode(self, context):
        result = await _call(search_files_tool, context, directory_path=".", pattern="utils", fuzzy_search=True)
        assert result["fuzzy_search"] is True
        assert result["truncated"] is False
        assert result["results"][0]["filename"] == "utils.py"
        assert "score" in result["results"][0]

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, context):
        result = await _call(search_files_tool, context, directory_path=".")
        assert result["success"] is False
        assert "pattern" in result["error"]


class TestFuzzyFindFilesTool:
    @pytest.mark.asyncio
    async def test_defaults_to_working_directory(self, context, project):
        result = await _call(fuzzy_find_files_tool, context, query="guide")
        assert result["success"] is True
        assert result["directory_path"] == str(project)
        assert result["query"] == "guide"
        assert result["results"][0]["filename"] == "guide.md"
        assert result["truncated"] is False

    @pytest.mark.asyncio
    async def test_includes_directories(self, context):
        result = await _call(fuzzy_find_files_tool, context, query="docs")
        assert result["results"][0]["relative_path"] == "docs"

    @pytest.mark.asyncio
    async def test_max_results(self, context):
        result = await _call(fuzzy_find_files_tool, context, query="s", max_results=2)
        assert result["total_found"] <= 2

    @pytest.mark.asyncio
    async def test_threshold_follows_adaptive_config(self, context):
        result = await _call(fuzzy_find_files_tool, context, query="guid")
        assert "guide.md" in {r["filename"] for r in result["results"]}

        config = context.files.config
        config.settings = replace(config.settings, fuzzy_search_threshold=0.99)
        result = await _call(fuzzy_find_files_tool, context, query="guid")
        assert result["results"] == []


# ---------------------------------------------------------------------------
# search_file_content / analyze_project
# ---------------------------------------------------------------------------

class TestSearchFileContentTool:
    @pytest.mark.asyncio
    async def test_finds_usages(self, context):
        result = await _call(search_file_content_tool, context, directory_path=".", search_term="UserService")
        assert result["success"] is True
        assert result["search_term"] == "UserService"
        assert result["total_files_with_matches"] == 3
        assert result["truncated"] is False

    @pytest.mark.asyncio
    async def test_extension_filter_and_truncation(self, context):
        result = await _call(
            search_file_content_tool, context,
            directory_path=".", search_term="UserService", file_extensions=[".md"], max_results=1,
        )
        assert result["total_files_with_matches"] == 1
        assert result["truncated"] is True
        assert result["results"][0]["relative_path"] == "README.md"


class TestAnalyzeProjectTool:
    @pytest.mark.asyncio
    async def test_analysis(self, context, project):
        result = await _call(analyze_project_tool, context, project_path=".")
        assert result["success"] is True
        assert result["project_path"] == str(project)
        assert result["summary"]["total_files"] == 7
        assert set(result) == {
            "success", "project_path", "summary", "file_types", "large_files", "total_directories",
        }

    @pytest.mark.asyncio
    async def test_max_depth_validated(self, context):
        result = await _call(analyze_project_tool, context, project_path=".", max_depth=-1)
        assert result["success"] is False
