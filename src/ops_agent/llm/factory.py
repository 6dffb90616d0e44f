"""
LLM Provider Factory
"""

from typing import Optional

from .provider import LLMConfig, LLMProvider
from .anthropic_provider import AnthropicProvider
from .openai_compatible_provider import OpenAICompatibleProvider


def create_provider(config: LLMConfig) -> LLMProvider:
    """Instantiate the provider class matching config.provider_type."""
    if config.provider_type == "openai-compatible":
        return OpenAICompatibleProvider(config)
    return AnthropicProvider(config)


def create_provider_from_env(config: Optional[LLMConfig] = None) -> LLMProvider:
    """
    Create the provider configured in the environment / .env file.

    Raises:
        ValueError: No provider credentials are configured
    """
    config = config or LLMConfig.from_env()
    if config is None:
        raise ValueError(
            "No LLM provider configured. Set either:\n"
            "  - ANTHROPIC_API_KEY for Anthropic Claude\n"
            "  - OPENAI_API_BASE + OPENAI_API_KEY for an OpenAI-compatible provider"
        )
    return create_provider(config)
