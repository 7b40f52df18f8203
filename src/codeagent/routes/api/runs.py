"""Run trigger and inspection routes."""

import json

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from codeagent.db.connection import get_conn
from codeagent.db.queries import list_step_records
from codeagent.events.models import CodeAgentEvent, CodeAgentEventData
from codeagent.ids import new_run_id
from codeagent.tasks import get_workflow_runner

router = APIRouter(tags=["api-runs"])


class RunRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=10000)


@router.post("/runs", status_code=202)
async def create_run(body: RunRequest) -> dict[str, str]:
    event = CodeAgentEvent(id=new_run_id(), data=CodeAgentEventData(value=body.value))
    if not get_workflow_runner().send(event):
        raise HTTPException(status_code=503, detail="workflow runner unavailable")
    return {"run_id": event.id}


@router.get("/runs/{run_id}/steps")
def run_steps(run_id: str) -> dict[str, object]:
    with get_conn() as conn:
        steps = list_step_records(conn, run_id)
    if not steps:
        raise HTTPException(status_code=404, detail="run not found")
    return {"run_id": run_id, "steps": steps}


@router.get("/runs/{run_id}/events")
def run_events(
    run_id: str,
    limit: int = Query(default=100, ge=1, le=500),
) -> dict[str, object]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT id, span_id, parent_span_id, event_type, component, payload_json, created_at "
            "FROM events WHERE run_id=? ORDER BY created_at, rowid LIMIT ?",
            (run_id, limit),
        ).fetchall()
    items = []
    for row in rows:
        try:
            payload = json.loads(row["payload_json"])
        except json.JSONDecodeError:
            payload = {"raw": row["payload_json"]}
        items.append(
            {
                "id": row["id"],
                "span_id": row["span_id"],
                "parent_span_id": row["parent_span_id"],
                "event_type": row["event_type"],
                "component": row["component"],
                "payload": payload,
                "created_at": row["created_at"],
            }
        )
    return {"run_id": run_id, "items": items}
