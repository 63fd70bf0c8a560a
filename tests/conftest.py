"""Shared fixtures: a file layer with fixed memory readings and a small project tree."""

import pytest

from tools.file_cache import AdaptiveConfig, AdaptiveFileCache, StaticResourceProbe, GB
from tools.file_operations import FileAccess
from tools.registry import ToolContext


@pytest.fixture
def probe():
    # 8 GiB total, 6 GiB free -> 25% pressure
    return StaticResourceProbe(total=8 * GB, free=6 * GB)


@pytest.fixture
def adaptive_config(probe):
    return AdaptiveConfig(probe=probe)


@pytest.fixture
def file_access(adaptive_config):
    return FileAccess(cache=AdaptiveFileCache(adaptive_config))


@pytest.fixture
def project(tmp_path):
    """
    project/
        README.md
        setup.py
        .hidden
        src/
            main.py
            utils.py
            helpers/
                string_utils.js
        docs/
            guide.md
        assets/
            logo.png   (binary)
    """
    root = tmp_path / "project"
    (root / "src" / "helpers").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "assets").mkdir()
    (root / "README.md").write_text("# Project\n\nUserService overview.\n")
    (root / "setup.py").write_text("from setuptools import setup\nsetup()\n")
    (root / ".hidden").write_text("secret\n")
    (root / "src" / "main.py").write_text(
        "from utils import helper\n\nclass UserService:\n    pass\n\nservice = UserService()\n"
    )
    (root / "src" / "utils.py").write_text("def helper():\n    return 42\n")
    (root / "src" / "helpers" / "string_utils.js").write_text("export const pad = (s) => s;\n")
    (root / "docs" / "guide.md").write_text("Guide for UserService\n")
    (root / "assets" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00binary")
    return root


@pytest.fixture
def context(file_access, project):
    return ToolContext(files=file_access, working_directory=str(project))
