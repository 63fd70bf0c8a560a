"""Tests for agent.providers -- provider selection and client construction."""

import pytest
from openai import AsyncOpenAI

from agent.config import DocumenterConfig
from agent.errors import ConfigurationError
from agent.providers import create_lmstudio_provider, create_openai_provider, create_provider


class TestCreateProvider:
    def test_openai(self):
        config = DocumenterConfig(openai_api_key="sk-test", openai_model="gpt-4o", timeout=30_000)
        provider = create_provider(config)
        assert provider.name == "OpenAI"
        assert provider.default_model == "gpt-4o"
        assert isinstance(provider.client, AsyncOpenAI)
        assert provider.client.api_key == "sk-test"
        assert provider.client.timeout == 30

    def test_lmstudio(self):
        config = DocumenterConfig(
            provider="lmstudio",
            lmstudio_endpoint="http://127.0.0.1:1234/v1",
            lmstudio_model="qwen2.5-coder",
        )
        provider = create_provider(config)
        assert provider.name == "LMStudio"
        assert provider.default_model == "qwen2.5-coder"
        assert provider.client.api_key == "lm-studio"
        assert str(provider.client.base_url).startswith("http://127.0.0.1:1234/v1")

    def test_openai_without_key_rejected(self):
        with pytest.raises(ConfigurationError, match="OpenAI API key is required"):
            create_provider(DocumenterConfig())

    def test_bad_lmstudio_endpoint_rejected(self):
        config = DocumenterConfig(provider="lmstudio", lmstudio_endpoint="localhost:1234")
        with pytest.raises(ConfigurationError, match="Invalid LMStudio endpoint URL"):
            create_provider(config)

    def test_direct_constructors(self):
        assert create_openai_provider(DocumenterConfig(openai_api_key="k")).name == "OpenAI"
        assert create_lmstudio_provider(DocumenterConfig(provider="lmstudio")).name == "LMStudio"
