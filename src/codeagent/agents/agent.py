"""A model-backed agent: one inference plus its tool calls per turn."""

import json
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from codeagent.errors import CodeAgentError, ProviderError
from codeagent.providers.base import ModelProvider, ModelResponse
from codeagent.tools.runtime import ToolRuntime

if TYPE_CHECKING:
    from codeagent.orchestrator.network import Network

logger = logging.getLogger(__name__)

ResponseHook = Callable[[ModelResponse, "Network"], None]


def _assistant_message(response: ModelResponse) -> dict[str, Any]:
    message: dict[str, Any] = {"role": "assistant", "content": response.text}
    if response.tool_calls:
        message["content"] = response.text or None
        message["tool_calls"] = [
            {
                "id": call["id"],
                "type": "function",
                "function": {
                    "name": call["name"],
                    "arguments": (
                        call["arguments"]
                        if isinstance(call["arguments"], str)
                        else json.dumps(call["arguments"])
                    ),
                },
            }
            for call in response.tool_calls
        ]
    return message


class Agent:
    def __init__(
        self,
        name: str,
        description: str,
        system: str,
        provider: ModelProvider,
        tools: ToolRuntime,
        *,
        temperature: float = 0.1,
        max_tokens: int = 4096,
        on_response: Sequence[ResponseHook] = (),
    ) -> None:
        self.name = name
        self.description = description
        self.system = system
        self.provider = provider
        self.tools = tools
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.on_response = tuple(on_response)

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r})"

    async def run_turn(self, network: "Network") -> ModelResponse:
        """Run one turn against the network's shared history and state.

        The inference is a durable step, so a replayed run sees the same
        response and issues the same tool calls in the same order. Tool calls
        run sequentially; their results, including errors, are appended to
        the history as tool messages. Response hooks run last.
        """
        messages = [{"role": "system", "content": self.system}, *network.history]
        schemas = self.tools.registry.schemas()

        async def _infer() -> dict[str, Any]:
            response = await self.provider.generate(
                messages,
                tools=schemas,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            return response.to_dict()

        record = await network.context.step.run(f"{self.name}:inference", _infer)
        if not record.ok:
            error = record.error or {}
            raise ProviderError(
                f"inference failed for agent {self.name}: "
                f"{error.get('type', 'Exception')}: {error.get('message', '')}",
                retryable=False,
            )
        response = ModelResponse.from_dict(record.result)
        network.history.append(_assistant_message(response))

        for call in response.tool_calls:
            content = await self._dispatch(network, call)
            network.history.append(
                {"role": "tool", "tool_call_id": call["id"], "content": content}
            )

        for hook in self.on_response:
            hook(response, network)
        return response

    async def _dispatch(self, network: "Network", call: dict[str, Any]) -> str:
        name = str(call.get("name", ""))
        try:
            return await self.tools.execute(network.context, name, call.get("arguments"))
        except CodeAgentError as exc:
            logger.warning("Tool call %s rejected: %s", name, exc)
            return f"Error: {exc}"
