"""Agent network: the router-driven turn loop of one run."""

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from codeagent.agents.agent import Agent
from codeagent.agents.state import AgentState
from codeagent.errors import RouterError
from codeagent.tools.registry import ToolContext

DEFAULT_MAX_ITER = 15
logger = logging.getLogger(__name__)

Router = Callable[["Network"], Agent | None | Awaitable[Agent | None]]


def route_until_summary(network: "Network") -> Agent | None:
    """Keep running the first agent until the state holds a summary."""
    if network.state.summary:
        return None
    return network.agents[0]


@dataclass(slots=True)
class NetworkRun:
    state: AgentState
    turns: int


class Network:
    """Runs agent turns until the router returns None or ``max_iter`` is hit.

    ``agents`` is the closed set the router may choose from. The router is
    consulted before every turn, so a summary latched during turn N stops
    the loop before turn N+1. Hitting the cap is a normal stop; callers tell
    the two apart by whether the state has a summary.
    """

    def __init__(
        self,
        name: str,
        agents: Sequence[Agent],
        context: ToolContext,
        *,
        router: Router = route_until_summary,
        max_iter: int = DEFAULT_MAX_ITER,
    ) -> None:
        if not agents:
            raise ValueError("a network needs at least one agent")
        if max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        self.name = name
        self.agents = tuple(agents)
        self.context = context
        self.router = router
        self.max_iter = max_iter
        self.history: list[dict[str, Any]] = []
        self.turns = 0

    @property
    def state(self) -> AgentState:
        return self.context.state

    async def _next_agent(self) -> Agent | None:
        selected = self.router(self)
        if inspect.isawaitable(selected):
            selected = await selected
        if selected is not None and selected not in self.agents:
            raise RouterError(f"router selected an agent outside network {self.name}: {selected!r}")
        return selected

    async def run(self, user_input: str) -> NetworkRun:
        self.history.append({"role": "user", "content": user_input})
        while self.turns < self.max_iter:
            agent = await self._next_agent()
            if agent is None:
                break
            logger.debug("Network %s turn %d: %s", self.name, self.turns + 1, agent.name)
            await agent.run_turn(self)
            self.turns += 1

        if self.state.summary:
            logger.info("Network %s completed after %d turn(s)", self.name, self.turns)
        elif self.turns >= self.max_iter:
            logger.warning(
                "Network %s stopped at the iteration cap (%d) without a summary",
                self.name,
                self.max_iter,
            )
        else:
            logger.info("Network %s stopped by its router after %d turn(s)", self.name, self.turns)
        return NetworkRun(state=self.state, turns=self.turns)
