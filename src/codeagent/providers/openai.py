"""OpenAI-compatible chat completions provider."""

import json
from typing import Any

import httpx

from codeagent.errors import ProviderError
from codeagent.providers.base import ModelResponse

_RETRYABLE_STATUS = {408, 409, 429, 500, 502, 503, 504}


class OpenAIChatProvider:
    def __init__(
        self,
        model: str,
        *,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_seconds = max(10.0, float(timeout_seconds))
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    @staticmethod
    def _coerce_text(value: object) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            chunks: list[str] = []
            for item in value:
                if isinstance(item, str):
                    chunks.append(item)
                elif isinstance(item, dict):
                    text = item.get("text")
                    if isinstance(text, str):
                        chunks.append(text)
            return "".join(chunks)
        return ""

    @staticmethod
    def _to_tools(tools: list[dict[str, Any]] | None) -> list[dict[str, Any]] | None:
        if not tools:
            return None
        normalized: list[dict[str, Any]] = []
        for tool in tools:
            name = tool.get("name")
            if not isinstance(name, str) or not name:
                continue
            function: dict[str, Any] = {
                "name": name,
                "parameters": tool.get("parameters") or {"type": "object", "properties": {}},
            }
            description = tool.get("description")
            if isinstance(description, str) and description:
                function["description"] = description
            normalized.append({"type": "function", "function": function})
        return normalized or None

    @staticmethod
    def _parse_arguments(arguments: object) -> dict[str, Any] | str:
        if isinstance(arguments, dict):
            return arguments
        if isinstance(arguments, str):
            if not arguments.strip():
                return {}
            try:
                decoded = json.loads(arguments)
            except json.JSONDecodeError:
                return arguments
            if isinstance(decoded, dict):
                return decoded
            return arguments
        return {}

    @staticmethod
    def _parse_response(payload: dict[str, Any]) -> ModelResponse:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProviderError("model response missing choices", retryable=False)
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise ProviderError("model response message missing", retryable=False)
        content = OpenAIChatProvider._coerce_text(message.get("content"))
        tool_calls: list[dict[str, Any]] = []
        tool_calls_raw = message.get("tool_calls") or []
        if isinstance(tool_calls_raw, list):
            for index, call in enumerate(tool_calls_raw):
                if not isinstance(call, dict):
                    continue
                fn = call.get("function")
                if not isinstance(fn, dict):
                    continue
                name = fn.get("name")
                if not isinstance(name, str) or not name:
                    continue
                call_id = call.get("id")
                tool_calls.append(
                    {
                        "id": call_id if isinstance(call_id, str) and call_id else f"call_{index}",
                        "name": name,
                        "arguments": OpenAIChatProvider._parse_arguments(fn.get("arguments")),
                    }
                )
        return ModelResponse(text=content, tool_calls=tool_calls)

    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> ModelResponse:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        normalized_tools = self._to_tools(tools)
        if normalized_tools is not None:
            body["tools"] = normalized_tools
        endpoint = f"{self._base_url}/chat/completions"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(endpoint, json=body, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ProviderError(f"{type(exc).__name__}: {exc}") from exc
        if response.status_code >= 400:
            raise ProviderError(
                f"model request failed with status {response.status_code}: "
                f"{response.text[:500]}",
                retryable=response.status_code in _RETRYABLE_STATUS,
            )
        payload = response.json()
        if not isinstance(payload, dict):
            raise ProviderError("model response is not an object", retryable=False)
        return self._parse_response(payload)

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.get(f"{self._base_url}/models", headers=self._headers())
            return response.status_code < 400
        except Exception:
            return False
