import json

import httpx
import pytest

from codeagent.config import get_settings
from codeagent.errors import ProviderError
from codeagent.providers.factory import build_provider
from codeagent.providers.openai import OpenAIChatProvider


def _provider(handler) -> OpenAIChatProvider:
    return OpenAIChatProvider(
        "gpt-test",
        base_url="https://models.test/v1/",
        api_key="sk-test",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_generate_parses_text_and_tool_calls() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "choices": [
                    {
                        "message": {
                            "content": "Running lint",
                            "tool_calls": [
                                {
                                    "id": "call_abc",
                                    "type": "function",
                                    "function": {
                                        "name": "terminal",
                                        "arguments": '{"command": "npm run lint"}',
                                    },
                                },
                                {
                                    "type": "function",
                                    "function": {"name": "readFiles", "arguments": "not json"},
                                },
                            ],
                        }
                    }
                ]
            },
        )

    response = await _provider(handler).generate(
        [{"role": "user", "content": "hi"}],
        tools=[{"name": "terminal", "description": "Run", "parameters": {"type": "object"}}],
        temperature=0.1,
        max_tokens=256,
    )

    assert seen["url"] == "https://models.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    body = seen["body"]
    assert isinstance(body, dict)
    assert body["model"] == "gpt-test"
    assert body["temperature"] == 0.1
    assert body["tools"][0]["function"]["name"] == "terminal"
    assert response.text == "Running lint"
    assert response.tool_calls == [
        {"id": "call_abc", "name": "terminal", "arguments": {"command": "npm run lint"}},
        {"id": "call_1", "name": "readFiles", "arguments": "not json"},
    ]


@pytest.mark.asyncio
async def test_rate_limit_is_retryable() -> None:
    provider = _provider(lambda request: httpx.Response(429, text="slow down"))
    with pytest.raises(ProviderError) as excinfo:
        await provider.generate([{"role": "user", "content": "hi"}])
    assert excinfo.value.retryable is True
    assert "429" in str(excinfo.value)


@pytest.mark.asyncio
async def test_bad_request_is_not_retryable() -> None:
    provider = _provider(lambda request: httpx.Response(400, text="bad"))
    with pytest.raises(ProviderError) as excinfo:
        await provider.generate([{"role": "user", "content": "hi"}])
    assert excinfo.value.retryable is False


@pytest.mark.asyncio
async def test_missing_choices_is_an_error() -> None:
    provider = _provider(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(ProviderError, match="missing choices"):
        await provider.generate([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_transport_error_is_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderError) as excinfo:
        await _provider(handler).generate([{"role": "user", "content": "hi"}])
    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_health_check() -> None:
    assert await _provider(lambda request: httpx.Response(200, json={"data": []})).health_check()
    assert not await _provider(lambda request: httpx.Response(401)).health_check()


def test_build_provider_uses_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MODEL_NAME", "local-model")
    monkeypatch.setenv("MODEL_BASE_URL", "http://127.0.0.1:30000/v1")
    get_settings.cache_clear()

    provider = build_provider(get_settings())

    assert isinstance(provider, OpenAIChatProvider)
    assert provider.model == "local-model"
