"""Workflow registration and singleton accessor."""

from __future__ import annotations

from codeagent.events.models import CODE_AGENT_EVENT
from codeagent.tasks.runner import WorkflowRunner

_workflow_runner: WorkflowRunner | None = None


def _register_workflows(runner: WorkflowRunner) -> None:
    from codeagent.tasks.code_agent import code_agent_run

    runner.register(CODE_AGENT_EVENT, code_agent_run)


def get_workflow_runner() -> WorkflowRunner:
    global _workflow_runner
    if _workflow_runner is None:
        _workflow_runner = WorkflowRunner()
        _register_workflows(_workflow_runner)
    return _workflow_runner


def reset_workflow_runner() -> None:
    global _workflow_runner
    _workflow_runner = None
