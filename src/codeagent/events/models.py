"""Event model definitions."""

from dataclasses import dataclass

from pydantic import BaseModel, Field

CODE_AGENT_EVENT = "code-agent/run"


class CodeAgentEventData(BaseModel):
    value: str = Field(..., min_length=1, description="The user's task description.")


class CodeAgentEvent(BaseModel):
    """Inbound trigger for one run. ``id`` is the run's identity."""

    id: str
    name: str = CODE_AGENT_EVENT
    data: CodeAgentEventData


@dataclass(slots=True)
class EventInput:
    run_id: str
    span_id: str
    parent_span_id: str | None
    event_type: str
    component: str
    payload_json: str
