"""
Anthropic Claude Provider

The Messages API has no structured-output parameter, so a ResponseSchema is
turned into a system instruction and the caller's ParsePolicy deals with
whatever comes back.
"""

import json
from typing import Any, List, Optional

from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage

from .provider import (
    ImagePart,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    Message,
    ModelRole,
    ResponseSchema,
)


def _image_block(part: ImagePart) -> dict[str, Any]:
    if part.url.startswith("data:"):
        header, _, data = part.url.partition(",")
        media_type = header[len("data:"):].split(";", 1)[0] or "image/png"
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": data},
        }
    return {"type": "image", "source": {"type": "url", "url": part.url}}


def _to_blocks(message: Message) -> Any:
    if isinstance(message.content, str):
        return message.content
    return [
        _image_block(part) if isinstance(part, ImagePart) else {"type": "text", "text": part.text}
        for part in message.content
    ]


def _schema_instruction(schema: ResponseSchema) -> str:
    return (
        f"Respond with a single JSON object named '{schema.name}' that validates "
        "against this JSON Schema. Output the JSON only, without code fences.\n"
        f"{json.dumps(schema.json_schema, ensure_ascii=False)}"
    )


class AnthropicProvider(LLMProvider):
    """Claude over the native Messages API."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client: Optional[AsyncAnthropic] = None

    async def initialize(self) -> None:
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=self.config.api_key,
                base_url=self.config.base_url,  # proxy override
                timeout=self.config.timeout,
            )

    async def complete(
        self,
        messages: List[Message],
        role: Optional[ModelRole] = None,
        response_schema: Optional[ResponseSchema] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        await self.initialize()

        # System text goes in its own parameter
        system = [msg.text() for msg in messages if msg.role == "system"]
        if response_schema is not None:
            system.append(_schema_instruction(response_schema))

        params: dict[str, Any] = {
            "model": self.config.model_for(role),
            "messages": [
                {"role": msg.role, "content": _to_blocks(msg)}
                for msg in messages
                if msg.role != "system"
            ],
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        if system:
            params["system"] = "\n\n".join(system)

        response: AnthropicMessage = await self._client.messages.create(**params)

        texts = [block.text for block in response.content if block.type == "text"]
        usage = response.usage
        return LLMResponse(
            content="".join(texts) if texts else None,
            model=response.model,
            usage={
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
            },
            stop_reason=response.stop_reason,
        )
