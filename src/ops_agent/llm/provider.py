"""
Language-Model Collaborator

Every reasoning stage talks to the model through LLMProvider.complete():
classification, planning, next-action decisions and screen reading. Calls
name a ModelRole instead of a model, so deployments can put a cheaper vision
model behind the screen-reading calls.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel

DEFAULT_REASONING_MODEL = "claude-sonnet-4-20250514"
DEFAULT_PERCEPTION_MODEL = "claude-haiku-4-20250514"


class ModelRole(str, Enum):
    """
    What a call needs from the model.

    - reasoning: classification, planning and next-action decisions
    - perception: data extraction and element enumeration on screenshots
    """

    REASONING = "reasoning"
    PERCEPTION = "perception"


@dataclass
class LLMConfig:
    """
    Connection and model settings for one provider.

    base_url is None for Anthropic native and the endpoint root for
    OpenAI-compatible providers.
    """

    api_key: str
    base_url: Optional[str] = None
    provider_type: Literal["anthropic", "openai-compatible"] = "anthropic"

    reasoning_model: str = DEFAULT_REASONING_MODEL
    perception_model: str = DEFAULT_PERCEPTION_MODEL

    max_tokens: int = 4096
    temperature: float = 0.2
    timeout: int = 60

    @classmethod
    def from_env(cls) -> Optional["LLMConfig"]:
        """
        Read provider settings from the environment.

        Environment variables:
            OPENAI_API_BASE + OPENAI_API_KEY: OpenAI-compatible endpoint (checked first)
            ANTHROPIC_API_KEY (+ ANTHROPIC_BASE_URL): Anthropic Claude
            REASONING_MODEL, VISION_MODEL: model per role
            LLM_TIMEOUT: request timeout in seconds (default: 60)

        Returns:
            LLMConfig, or None when no credentials are set
        """
        shared = {
            "reasoning_model": os.getenv("REASONING_MODEL", DEFAULT_REASONING_MODEL),
            "perception_model": os.getenv("VISION_MODEL", DEFAULT_PERCEPTION_MODEL),
            "timeout": int(os.getenv("LLM_TIMEOUT", "60")),
        }

        base_url = os.getenv("OPENAI_API_BASE")
        api_key = os.getenv("OPENAI_API_KEY")
        if base_url and api_key:
            return cls(api_key=api_key, base_url=base_url, provider_type="openai-compatible", **shared)

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if api_key:
            return cls(api_key=api_key, base_url=os.getenv("ANTHROPIC_BASE_URL"), **shared)

        return None

    def model_for(self, role: Optional[ModelRole]) -> str:
        if role is ModelRole.PERCEPTION:
            return self.perception_model
        return self.reasoning_model


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Screenshot or image; url is an http(s) URL or a base64 data URL."""

    type: Literal["image"] = "image"
    url: str
    detail: Literal["low", "high", "auto"] = "high"


ContentPart = Union[TextPart, ImagePart]


class Message(BaseModel):
    role: str  # "system", "user" or "assistant"
    content: Union[str, List[ContentPart]]

    def text(self) -> str:
        """Concatenated text of the message, ignoring images."""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text for part in self.content if isinstance(part, TextPart))


class ResponseSchema(BaseModel):
    """JSON Schema the response content must satisfy."""

    name: str
    json_schema: Dict[str, Any]
    strict: bool = True


class LLMResponse(BaseModel):
    """content is None when the model returned no text."""

    content: Optional[str] = None
    model: str
    usage: Dict[str, int] = {}
    stop_reason: Optional[str] = None


class LLMProvider(ABC):
    """
    Base class for model providers.

    Implementations translate Message/ResponseSchema into their wire format
    and return the raw text; parsing is left to the caller's ParsePolicy.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client = None

    @abstractmethod
    async def initialize(self) -> None:
        """Create the underlying client (idempotent)."""

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        role: Optional[ModelRole] = None,
        response_schema: Optional[ResponseSchema] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Run one completion.

        Args:
            messages: System, user and assistant messages; user content may hold screenshots
            role: Picks the configured model (default: reasoning)
            response_schema: Constrain the content to this JSON Schema
            **kwargs: max_tokens / temperature overrides

        Returns:
            LLMResponse whose content may be None
        """

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
