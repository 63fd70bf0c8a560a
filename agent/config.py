"""Configuration loading.

Values are merged in order: built-in defaults, then environment variables,
then the project config file (``.documenter.json`` or
``documenter.config.json`` in the working directory). ``.env`` files are
loaded into the environment first, from the working directory or, failing
that, from ``~/.documenter/.env``.

Invalid configuration raises ConfigurationError, which is fatal at startup.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from agent.errors import ConfigurationError, get_error_message
from documenter_constants import (
    CONFIG_FILENAMES,
    DEFAULT_LMSTUDIO_ENDPOINT,
    DEFAULT_LMSTUDIO_MODEL,
    DEFAULT_MAX_HISTORY,
    DEFAULT_MAX_TOOL_ROUNDS,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_TIMEOUT_MS,
    DOCUMENTER_HOME_DIRNAME,
    SUPPORTED_PROVIDERS,
)

logger = logging.getLogger(__name__)

ProviderName = Literal["openai", "lmstudio"]

# env var -> (config key, is_integer)
ENV_VARS = {
    "LLM_PROVIDER": ("provider", False),
    "OPENAI_API_KEY": ("openai_api_key", False),
    "OPENAI_MODEL": ("openai_model", False),
    "LMSTUDIO_ENDPOINT": ("lmstudio_endpoint", False),
    "LMSTUDIO_MODEL": ("lmstudio_model", False),
    "MAX_CONVERSATION_HISTORY": ("max_conversation_history", True),
    "DEFAULT_OUTPUT_DIR": ("default_output_dir", False),
    "LLM_TIMEOUT": ("timeout", True),
    "DOCUMENTER_MAX_TOOL_ROUNDS": ("max_tool_rounds", True),
}


class DocumenterConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    provider: ProviderName = "openai"
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    lmstudio_endpoint: str = DEFAULT_LMSTUDIO_ENDPOINT
    lmstudio_model: str = DEFAULT_LMSTUDIO_MODEL
    max_conversation_history: int = Field(default=DEFAULT_MAX_HISTORY, ge=1, le=100)
    default_output_dir: str = DEFAULT_OUTPUT_DIR
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1000)  # milliseconds
    max_tool_rounds: int = Field(default=DEFAULT_MAX_TOOL_ROUNDS, ge=1)

    @property
    def model(self) -> str:
        return self.lmstudio_model if self.provider == "lmstudio" else self.openai_model


class ConfigFile(BaseModel):
    """Shape of ``.documenter.json``; every key optional, unknown keys ignored."""

    model_config = ConfigDict(extra="ignore")

    provider: Optional[ProviderName] = None
    openai_api_key: Optional[str] = None
    openai_model: Optional[str] = None
    lmstudio_endpoint: Optional[str] = None
    lmstudio_model: Optional[str] = None
    max_conversation_history: Optional[int] = Field(default=None, ge=1, le=100)
    default_output_dir: Optional[str] = None
    timeout: Optional[int] = Field(default=None, ge=1000)
    max_tool_rounds: Optional[int] = Field(default=None, ge=1)


def _format_issues(error: PydanticValidationError) -> str:
    return ", ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '(root)'}: {err['msg']}" for err in error.errors()
    )


class ConfigBuilder:
    """Accumulates configuration layers; later layers win."""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def with_defaults(self) -> "ConfigBuilder":
        self._values.update(DocumenterConfig().model_dump())
        return self

    def with_environment(self, env: Optional[Mapping[str, str]] = None) -> "ConfigBuilder":
        env = os.environ if env is None else env
        for var, (key, is_int) in ENV_VARS.items():
            raw = env.get(var)
            if not raw:
                continue
            if key == "provider":
                raw = raw.lower()
                if raw not in SUPPORTED_PROVIDERS:
                    logger.warning("Ignoring unsupported %s=%r", var, raw)
                    continue
            if is_int:
                try:
                    value = int(raw)
                except ValueError:
                    logger.warning("Ignoring non-integer %s=%r", var, raw)
                    continue
                if value <= 0:
                    continue
                self._values[key] = value
            else:
                self._values[key] = raw
        return self

    def with_file(self, data: Mapping[str, Any]) -> "ConfigBuilder":
        for key, value in data.items():
            if value is not None:
                self._values[key] = value
        return self

    def current_state(self) -> Dict[str, Any]:
        return dict(self._values)

    def build(self) -> DocumenterConfig:
        try:
            config = DocumenterConfig(**self._values)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid final configuration: {_format_issues(e)}") from e
        validate_provider_requirements(config)
        return config


def validate_provider_requirements(config: DocumenterConfig) -> None:
    if config.provider == "openai" and not config.openai_api_key:
        raise ConfigurationError(
            "OpenAI API key is required when using OpenAI provider. "
            "Set OPENAI_API_KEY environment variable or add it to your config file.",
            {"provider": config.provider},
        )
    if config.provider == "lmstudio":
        parsed = urlparse(config.lmstudio_endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(
                f"Invalid LMStudio endpoint URL: {config.lmstudio_endpoint}",
                {"provider": config.provider, "endpoint": config.lmstudio_endpoint},
            )


class ConfigManager:
    """Loads and caches the configuration for one working directory."""

    def __init__(self, cwd: Optional[str] = None, home: Optional[str] = None):
        self.cwd = Path(cwd or os.getcwd())
        self.home = Path(home or Path.home())
        self._config: Optional[DocumenterConfig] = None

    @property
    def global_env_path(self) -> Path:
        return self.home / DOCUMENTER_HOME_DIRNAME / ".env"

    def load_env(self) -> Optional[Path]:
        """Load the first .env found; returns its path. Existing env vars win."""
        for candidate in (self.cwd / ".env", self.global_env_path):
            if candidate.is_file():
                load_dotenv(candidate, override=False)
                logger.debug("Loaded environment from %s", candidate)
                return candidate
        return None

    def load_file_config(self) -> Dict[str, Any]:
        for name in CONFIG_FILENAMES:
            path = self.cwd / name
            if not path.is_file():
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    f"Invalid JSON in configuration file {path}: {e.msg}",
                    {"config_path": str(path)},
                ) from e
            except OSError as e:
                raise ConfigurationError(
                    f"Failed to read configuration file {path}: {get_error_message(e)}",
                    {"config_path": str(path)},
                ) from e
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Invalid configuration in {path}: expected a JSON object",
                    {"config_path": str(path)},
                )
            try:
                ConfigFile.model_validate(data)
            except PydanticValidationError as e:
                raise ConfigurationError(
                    f"Invalid configuration in {path}: {_format_issues(e)}",
                    {"config_path": str(path)},
                ) from e
            logger.debug("Using config file %s", path)
            return {k: v for k, v in data.items() if k in ConfigFile.model_fields}
        return {}

    def load_config(self, env: Optional[Mapping[str, str]] = None) -> DocumenterConfig:
        self.load_env()
        file_config = self.load_file_config()
        config = (
            ConfigBuilder()
            .with_defaults()
            .with_environment(env)
            .with_file(file_config)
            .build()
        )
        logger.debug("Configuration loaded: %s", self.sanitize_config_for_logging(config))
        self._config = config
        return config

    def get_config(self) -> DocumenterConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def reset(self) -> None:
        self._config = None

    def is_valid_for_provider(self, provider: str) -> bool:
        try:
            config = self.get_config()
        except ConfigurationError:
            return False
        if config.provider != provider:
            return False
        if provider == "openai":
            return bool(config.openai_api_key)
        return bool(config.lmstudio_endpoint and config.lmstudio_model)

    def get_config_summary(self) -> Dict[str, str]:
        config = self.get_config()
        summary = {
            "provider": config.provider,
            "model": config.model,
            "working_dir": str(self.cwd),
        }
        if config.provider == "lmstudio":
            summary["endpoint"] = config.lmstudio_endpoint
        return summary

    @staticmethod
    def sanitize_config_for_logging(config: DocumenterConfig) -> Dict[str, Any]:
        data = config.model_dump()
        if data.get("openai_api_key"):
            data["openai_api_key"] = "[REDACTED]"
        return data
