"""
LLM Provider Abstraction

The language-model collaborator behind classification, planning and screen
grounding:
- Anthropic Claude (native)
- OpenAI-compatible APIs (OpenRouter, local models, etc.)
"""

from .provider import (
    ImagePart,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    Message,
    ModelRole,
    ResponseSchema,
    TextPart,
)
from .anthropic_provider import AnthropicProvider
from .openai_compatible_provider import OpenAICompatibleProvider
from .factory import create_provider, create_provider_from_env
from .parsing import FAIL_CLOSED, FAIL_OPEN, ParsePolicy, decode_json, parse_json_object

__all__ = [
    "AnthropicProvider",
    "FAIL_CLOSED",
    "FAIL_OPEN",
    "ImagePart",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "Message",
    "ModelRole",
    "OpenAICompatibleProvider",
    "ParsePolicy",
    "ResponseSchema",
    "TextPart",
    "create_provider",
    "create_provider_from_env",
    "decode_json",
    "parse_json_object",
]
