"""Tests for documenter_cli.init_wizard -- project setup prompts and the files they write."""

import io
import json
import os
from unittest.mock import patch

from rich.console import Console

from documenter_cli.init_wizard import InitWizard


def _wizard(tmp_path, answers):
    pending = list(answers)
    prompts = []

    def read(prompt):
        prompts.append(prompt)
        return pending.pop(0) if pending else ""

    wizard = InitWizard(cwd=str(tmp_path), input_fn=read, out=Console(file=io.StringIO(), width=120))
    return wizard, prompts


class TestInitWizard:
    def test_openai_with_key(self, tmp_path):
        wizard, _ = _wizard(tmp_path, ["1", "sk-abc", "gpt-4o", "./documentation"])
        assert wizard.run() is True

        config = json.loads((tmp_path / ".documenter.json").read_text())
        assert config == {
            "provider": "openai",
            "openai_model": "gpt-4o",
            "max_conversation_history": 10,
            "openai_api_key": "sk-abc",
            "default_output_dir": "./documentation",
        }
        env = (tmp_path / ".env").read_text()
        assert "LLM_PROVIDER=openai" in env
        assert "OPENAI_API_KEY=sk-abc" in env

    def test_defaults_accepted_with_enter(self, tmp_path):
        wizard, prompts = _wizard(tmp_path, [])
        assert wizard.run() is True
        config = json.loads((tmp_path / ".documenter.json").read_text())
        assert config["provider"] == "openai"
        assert config["openai_model"] == "gpt-4o-mini"
        assert config["default_output_dir"] == "./docs"
        assert "openai_api_key" not in config
        # No key, nothing worth putting in .env
        assert not (tmp_path / ".env").exists()
        assert prompts[0] == "Select provider [1]: "

    def test_lmstudio(self, tmp_path):
        wizard, _ = _wizard(tmp_path, ["2", "http://gpu-box:1234/v1", "qwen2.5-coder", ""])
        assert wizard.run() is True
        config = json.loads((tmp_path / ".documenter.json").read_text())
        assert config["provider"] == "lmstudio"
        assert config["lmstudio_endpoint"] == "http://gpu-box:1234/v1"
        assert config["lmstudio_model"] == "qwen2.5-coder"
        env = (tmp_path / ".env").read_text()
        assert "LMSTUDIO_ENDPOINT=http://gpu-box:1234/v1" in env

    def test_existing_env_left_alone(self, tmp_path):
        (tmp_path / ".env").write_text("KEEP=1\n")
        wizard, _ = _wizard(tmp_path, ["1", "sk-abc", "", ""])
        assert wizard.run() is True
        assert (tmp_path / ".env").read_text() == "KEEP=1\n"
        assert ".env file already exists" in wizard.console.file.getvalue()

    def test_already_initialized(self, tmp_path):
        (tmp_path / ".documenter.json").write_text("{}")
        wizard, prompts = _wizard(tmp_path, ["1"])
        assert wizard.run() is False
        assert prompts == []
        assert (tmp_path / ".documenter.json").read_text() == "{}"

    def test_written_config_loads(self, tmp_path):
        from agent.config import ConfigManager

        wizard, _ = _wizard(tmp_path, ["2", "", "", ""])
        wizard.run()
        with patch.dict(os.environ):
            config = ConfigManager(cwd=str(tmp_path), home=str(tmp_path / "home")).load_config(env={})
        assert config.provider == "lmstudio"
        assert config.default_output_dir == "./docs"
