"""The code-agent workflow: one run per ``code-agent/run`` event."""

import logging

from codeagent.agents.agent import Agent
from codeagent.agents.completion import CompletionDetector, last_assistant_text
from codeagent.agents.state import AgentState
from codeagent.config import Settings, get_settings
from codeagent.errors import CodeAgentError
from codeagent.events.models import CodeAgentEvent
from codeagent.logging import run_context
from codeagent.orchestrator.finalizer import Finalizer, RunResult
from codeagent.orchestrator.network import Network, route_until_summary
from codeagent.orchestrator.prompt import load_system_prompt
from codeagent.providers.base import ModelProvider
from codeagent.sandbox.base import SandboxBackend
from codeagent.sandbox.session import SandboxSession
from codeagent.tools.registry import ToolContext
from codeagent.tools.runtime import ToolRuntime
from codeagent.tools.sandbox_tools import build_tool_registry
from codeagent.workflow.executor import StepExecutor
from codeagent.workflow.store import ConnectionFactory

logger = logging.getLogger(__name__)

AGENT_NAME = "code-agent"
NETWORK_NAME = "code-agent-network"


async def run_code_agent(
    event: CodeAgentEvent,
    *,
    executor: StepExecutor,
    provider: ModelProvider,
    backend: SandboxBackend,
    settings: Settings | None = None,
    system_prompt: str | None = None,
    max_iter: int | None = None,
    trace_events: ConnectionFactory | None = None,
) -> RunResult:
    """Drive one run from trigger to persisted result.

    The event id is the run identity: re-running the same event replays
    every completed step (sandbox creation, inferences, tool calls,
    persistence) from the step store instead of repeating it. Provider and
    tool-level failures end in the generic error result; anything else
    propagates so the caller can retry the run.
    """
    settings = settings or get_settings()
    run_id = event.id
    step = executor.context(run_id)
    sandbox = SandboxSession(
        backend,
        step,
        settings.sandbox_template,
        command_timeout_seconds=settings.command_timeout_seconds,
    )
    state = AgentState()
    finalizer = Finalizer(step, sandbox, port=settings.sandbox_port)
    with run_context(run_id):
        try:
            try:
                await sandbox.sandbox_id()
            except CodeAgentError as exc:
                logger.error("Sandbox setup failed: %s", exc)
                return await finalizer.finalize(state)

            detector = CompletionDetector()
            agent = Agent(
                AGENT_NAME,
                "An expert coding agent",
                system_prompt or load_system_prompt(settings),
                provider,
                ToolRuntime(build_tool_registry(), connect=trace_events),
                temperature=settings.model_temperature,
                max_tokens=settings.model_max_tokens,
                on_response=[
                    lambda response, network: detector.observe(
                        network.state, last_assistant_text(response)
                    )
                ],
            )
            network = Network(
                NETWORK_NAME,
                [agent],
                ToolContext(run_id=run_id, step=step, sandbox=sandbox, state=state),
                router=route_until_summary,
                max_iter=max_iter or settings.agent_max_iterations,
            )
            try:
                await network.run(event.data.value)
            except CodeAgentError as exc:
                logger.error("Agent network stopped with an error: %s", exc)

            result = await finalizer.finalize(state)
            logger.info(
                "Run finished: is_error=%s persisted=%s files=%d",
                result.is_error,
                result.persisted,
                len(result.files),
            )
            return result
        finally:
            executor.release(run_id)
