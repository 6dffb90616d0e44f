"""
Unit tests for provider configuration and the OpenAI-compatible wire format.
"""

import json

import httpx
import pytest

from ops_agent.llm import (
    AnthropicProvider,
    ImagePart,
    LLMConfig,
    Message,
    ModelRole,
    OpenAICompatibleProvider,
    ResponseSchema,
    TextPart,
    create_provider,
    create_provider_from_env,
)

PROVIDER_VARS = ("OPENAI_API_BASE", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "REASONING_MODEL", "VISION_MODEL")


@pytest.fixture
def clean_env(monkeypatch):
    for name in PROVIDER_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLLMConfig:

    def test_no_credentials(self, clean_env):
        assert LLMConfig.from_env() is None
        with pytest.raises(ValueError):
            create_provider_from_env()

    def test_openai_compatible_preferred(self, clean_env):
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant")
        clean_env.setenv("OPENAI_API_BASE", "https://llm.plant.local/v1")
        clean_env.setenv("OPENAI_API_KEY", "sk-local")
        clean_env.setenv("VISION_MODEL", "qwen-vl")

        config = LLMConfig.from_env()

        assert config.provider_type == "openai-compatible"
        assert config.model_for(ModelRole.PERCEPTION) == "qwen-vl"
        assert isinstance(create_provider(config), OpenAICompatibleProvider)

    def test_anthropic(self, clean_env):
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant")

        provider = create_provider_from_env()

        assert isinstance(provider, AnthropicProvider)
        assert provider.config.model_for(None) == provider.config.reasoning_model


class TestOpenAICompatibleProvider:

    @pytest.mark.asyncio
    async def test_request_and_response(self):
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            return httpx.Response(200, json={
                "model": "qwen-vl",
                "choices": [{"message": {"content": '{"steps": []}'}, "finish_reason": "stop"}],
                "usage": {"prompt_tokens": 12, "completion_tokens": 3},
            })

        config = LLMConfig(
            api_key="sk-local",
            base_url="https://llm.plant.local/v1",
            provider_type="openai-compatible",
            perception_model="qwen-vl",
        )
        provider = OpenAICompatibleProvider(config, transport=httpx.MockTransport(handler))
        schema = ResponseSchema(name="task_plan", json_schema={"type": "object"})

        response = await provider.complete(
            [
                Message(role="system", content="Read the HMI"),
                Message(role="user", content=[
                    TextPart(text="What is the kiln temperature?"),
                    ImagePart(url="data:image/png;base64,AAAA"),
                ]),
            ],
            role=ModelRole.PERCEPTION,
            response_schema=schema,
        )
        await provider.close()

        payload = sent[0]
        assert payload["model"] == "qwen-vl"
        assert payload["response_format"]["json_schema"]["name"] == "task_plan"
        assert payload["messages"][1]["content"][1] == {
            "type": "image_url",
            "image_url": {"url": "data:image/png;base64,AAAA", "detail": "high"},
        }
        assert response.content == '{"steps": []}'
        assert response.usage == {"input_tokens": 12, "output_tokens": 3}
        assert response.stop_reason == "stop"

    @pytest.mark.asyncio
    async def test_missing_content(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
        config = LLMConfig(api_key="k", base_url="https://llm.plant.local/v1", provider_type="openai-compatible")
        provider = OpenAICompatibleProvider(config, transport=transport)

        response = await provider.complete([Message(role="user", content="hi")])
        await provider.close()

        assert response.content is None

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="overloaded"))
        config = LLMConfig(api_key="k", base_url="https://llm.plant.local/v1", provider_type="openai-compatible")
        provider = OpenAICompatibleProvider(config, transport=transport)

        with pytest.raises(RuntimeError, match="503"):
            await provider.complete([Message(role="user", content="hi")])
        await provider.close()
