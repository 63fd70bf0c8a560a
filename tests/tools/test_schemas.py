"""Tests for tools/schemas.py -- tool argument validation.

Run with:
    python -m pytest tests/tools/test_schemas.py -v
"""

import pytest

from agent.errors import ValidationError
from tools.schemas import (
    AnalyzeProjectArgs,
    FuzzyFindFilesArgs,
    ListDirectoryArgs,
    ReadFileArgs,
    SearchFileContentArgs,
    SearchFilesArgs,
    WriteFileArgs,
    validate_tool_input,
)


class TestValidateToolInput:
    def test_valid_arguments(self):
        args = validate_tool_input(ReadFileArgs, '{"file_path": "src/app.py"}', "read_file")
        assert args.file_path == "src/app.py"

    def test_malformed_json(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_tool_input(ReadFileArgs, '{"file_path": ', "read_file")
        err = exc_info.value
        assert err.message.startswith("Invalid JSON input for tool read_file:")
        assert err.field == "(root)"
        assert err.code == "VALIDATION_ERROR"

    def test_missing_required_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_tool_input(WriteFileArgs, '{"file_path": "a.md", "content": "x"}', "write_file")
        err = exc_info.value
        assert err.message.startswith("Invalid input for tool write_file:")
        assert err.field == "overwrite"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_tool_input(ReadFileArgs, '{"file_path": "a", "mode": "rb"}', "read_file")
        assert exc_info.value.field == "mode"

    def test_empty_path_rejected(self):
        with pytest.raises(ValidationError):
            validate_tool_input(ReadFileArgs, '{"file_path": ""}', "read_file")

    def test_empty_argument_string_is_empty_object(self):
        args = validate_tool_input(AnalyzeProjectArgs, '{"project_path": "."}', "analyze_project")
        assert args.max_depth == 5
        with pytest.raises(ValidationError) as exc_info:
            validate_tool_input(AnalyzeProjectArgs, "", "analyze_project")
        assert exc_info.value.field == "project_path"

    def test_non_object_json(self):
        with pytest.raises(ValidationError):
            validate_tool_input(ReadFileArgs, '["a.py"]', "read_file")

    def test_context_carries_tool_name(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_tool_input(ListDirectoryArgs, '{"directory_path": "."}', "list_directory")
        assert exc_info.value.context["tool_name"] == "list_directory"


class TestDefaultsAndBounds:
    def test_search_files_defaults(self):
        args = SearchFilesArgs(directory_path=".", pattern="*.py")
        assert args.max_results == 50
        assert args.case_sensitive is False
        assert args.fuzzy_search is False
        assert args.min_score is None
        assert args.include_directories is False
        assert args.file_extensions is None

    def test_search_files_bounds(self):
        with pytest.raises(ValidationError):
            validate_tool_input(SearchFilesArgs, '{"directory_path": ".", "pattern": "*", "max_results": 0}', "search_files")
        with pytest.raises(ValidationError):
            validate_tool_input(SearchFilesArgs, '{"directory_path": ".", "pattern": "*", "min_score": 1.5}', "search_files")

    def test_numbers_sent_as_floats_accepted(self):
        args = validate_tool_input(
            SearchFileContentArgs,
            '{"directory_path": ".", "search_term": "x", "max_results": 10.0}',
            "search_file_content",
        )
        assert args.max_results == 10

    def test_fuzzy_find_defaults(self):
        args = FuzzyFindFilesArgs(query="config")
        assert args.directory_path is None
        assert args.max_results == 30

    def test_content_search_defaults(self):
        args = SearchFileContentArgs(directory_path=".", search_term="TODO")
        assert args.max_results == 20
        assert args.case_sensitive is False
