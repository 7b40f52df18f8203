"""Tool registration helpers."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from codeagent.agents.state import AgentState
from codeagent.sandbox.session import SandboxSession
from codeagent.workflow.executor import StepContext


@dataclass(slots=True)
class ToolContext:
    """What a tool handler may touch during one run."""

    run_id: str
    step: StepContext
    sandbox: SandboxSession
    state: AgentState


ToolHandler = Callable[[Any, ToolContext], Awaitable[str]]


@dataclass(slots=True)
class ToolDef:
    name: str
    description: str
    params_model: type[BaseModel]
    handler: ToolHandler

    @property
    def parameters(self) -> dict[str, Any]:
        return self.params_model.model_json_schema()


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}

    def register(
        self,
        name: str,
        description: str,
        params_model: type[BaseModel],
        handler: ToolHandler,
    ) -> None:
        self._tools[name] = ToolDef(
            name=name,
            description=description,
            params_model=params_model,
            handler=handler,
        )

    def get(self, name: str) -> ToolDef | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            }
            for tool in self._tools.values()
        ]
