"""Provider contracts."""

from dataclasses import asdict, dataclass, field
from typing import Any, Protocol


@dataclass(slots=True)
class ModelResponse:
    """One model turn: the assistant text plus any requested tool calls.

    Each tool call is ``{"id": str, "name": str, "arguments": dict | str}``;
    arguments stay a raw string when the model sent something that is not a
    JSON object, so schema validation can reject it.
    """

    text: str
    tool_calls: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ModelResponse":
        calls = payload.get("tool_calls")
        return cls(
            text=str(payload.get("text") or ""),
            tool_calls=list(calls) if isinstance(calls, list) else [],
        )


class ModelProvider(Protocol):
    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> ModelResponse: ...

    async def health_check(self) -> bool: ...
