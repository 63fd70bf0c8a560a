"""LLM provider construction.

Both supported backends speak the OpenAI chat-completions protocol, so a
provider is just an ``AsyncOpenAI`` client plus the model to request.
LM Studio gets a placeholder API key and its local endpoint as base_url.
"""

from dataclasses import dataclass
import logging
from typing import Any

from openai import AsyncOpenAI

from agent.config import DocumenterConfig, validate_provider_requirements
from agent.errors import ProviderError, get_error_message
from documenter_constants import LMSTUDIO_API_KEY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMProvider:
    name: str
    client: Any  # AsyncOpenAI or a test double with .chat.completions.create
    default_model: str


def create_openai_provider(config: DocumenterConfig) -> LLMProvider:
    try:
        client = AsyncOpenAI(api_key=config.openai_api_key, timeout=config.timeout / 1000)
    except Exception as e:
        raise ProviderError(f"Failed to create OpenAI provider: {get_error_message(e)}", "openai") from e
    return LLMProvider(name="OpenAI", client=client, default_model=config.openai_model)


def create_lmstudio_provider(config: DocumenterConfig) -> LLMProvider:
    try:
        client = AsyncOpenAI(
            api_key=LMSTUDIO_API_KEY,
            base_url=config.lmstudio_endpoint,
            timeout=config.timeout / 1000,
        )
    except Exception as e:
        raise ProviderError(f"Failed to create LMStudio provider: {get_error_message(e)}", "lmstudio") from e
    return LLMProvider(name="LMStudio", client=client, default_model=config.lmstudio_model)


def create_provider(config: DocumenterConfig) -> LLMProvider:
    """Build the provider selected by ``config.provider``.

    Raises:
        ConfigurationError: missing API key or malformed endpoint.
        ProviderError: the client could not be constructed.
    """
    validate_provider_requirements(config)
    if config.provider == "lmstudio":
        provider = create_lmstudio_provider(config)
    else:
        provider = create_openai_provider(config)
    logger.info("Using %s provider with model %s", provider.name, provider.default_model)
    return provider
