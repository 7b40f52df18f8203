"""Production wiring of the code-agent workflow."""

from codeagent.config import get_settings
from codeagent.db.connection import get_conn
from codeagent.events.models import CodeAgentEvent
from codeagent.orchestrator.finalizer import RunResult
from codeagent.orchestrator.workflow import run_code_agent
from codeagent.providers.factory import build_provider
from codeagent.sandbox.factory import build_sandbox_backend
from codeagent.workflow.executor import StepExecutor
from codeagent.workflow.store import SqliteStepStore

_executor: StepExecutor | None = None


def get_step_executor() -> StepExecutor:
    global _executor
    if _executor is None:
        _executor = StepExecutor(SqliteStepStore())
    return _executor


async def code_agent_run(event: CodeAgentEvent) -> RunResult:
    settings = get_settings()
    return await run_code_agent(
        event,
        executor=get_step_executor(),
        provider=build_provider(settings),
        backend=build_sandbox_backend(settings),
        settings=settings,
        trace_events=get_conn,
    )
