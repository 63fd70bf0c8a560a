"""Shared constants for Documenter.

Import-safe module with no dependencies, so it can be imported from anywhere
without risk of circular imports.
"""

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_LMSTUDIO_ENDPOINT = "http://localhost:1234/v1"
DEFAULT_LMSTUDIO_MODEL = "local-model"
LMSTUDIO_API_KEY = "lm-studio"

DEFAULT_MAX_HISTORY = 10
DEFAULT_OUTPUT_DIR = "./docs"
DEFAULT_TIMEOUT_MS = 3600 * 1000
DEFAULT_MAX_TOOL_ROUNDS = 25

DOCUMENTER_HOME_DIRNAME = ".documenter"
CONFIG_FILENAMES = (".documenter.json", "documenter.config.json")

SUPPORTED_PROVIDERS = ("openai", "lmstudio")

# Streaming
MAX_ACCUMULATED_STREAM_BYTES = 50 * 1024
STREAM_TRUNCATION_NOTICE = "\n[Content truncated due to size limit]\n"
