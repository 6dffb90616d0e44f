"""
OpenAI-Compatible Provider

Any chat-completions endpoint (OpenRouter, DeepSeek, Qwen, GLM, a local
Ollama or LM Studio server). Response schemas are sent as
response_format=json_schema; servers that ignore it still return text the
ParsePolicy can judge.
"""

from typing import Any, List, Optional

import httpx

from .provider import (
    ImagePart,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    Message,
    ModelRole,
    ResponseSchema,
)


def _to_wire(message: Message) -> dict[str, Any]:
    if isinstance(message.content, str):
        return {"role": message.role, "content": message.content}
    return {
        "role": message.role,
        "content": [
            {"type": "image_url", "image_url": {"url": part.url, "detail": part.detail}}
            if isinstance(part, ImagePart)
            else {"type": "text", "text": part.text}
            for part in message.content
        ],
    }


class OpenAICompatibleProvider(LLMProvider):
    """Chat-completions provider over httpx."""

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        self._client: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def initialize(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                timeout=self.config.timeout,
                transport=self._transport,
            )

    async def complete(
        self,
        messages: List[Message],
        role: Optional[ModelRole] = None,
        response_schema: Optional[ResponseSchema] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        await self.initialize()

        model = self.config.model_for(role)
        payload: dict[str, Any] = {
            "model": model,
            "messages": [_to_wire(msg) for msg in messages],
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        if response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_schema.name,
                    "strict": response_schema.strict,
                    "schema": response_schema.json_schema,
                },
            }

        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException:
            raise TimeoutError(f"LLM request timed out after {self.config.timeout}s")
        except httpx.HTTPStatusError as e:
            raise RuntimeError(f"LLM API error: {e.response.status_code} - {e.response.text}")

        data = response.json()
        choice = (data.get("choices") or [{}])[0]
        content = (choice.get("message") or {}).get("content")
        usage = data.get("usage") or {}

        return LLMResponse(
            content=content if isinstance(content, str) else None,
            model=data.get("model", model),
            usage={
                "input_tokens": usage.get("prompt_tokens", 0),
                "output_tokens": usage.get("completion_tokens", 0),
            },
            stop_reason=choice.get("finish_reason"),
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
