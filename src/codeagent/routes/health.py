"""Health and readiness routes."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from codeagent.db.connection import db_ready
from codeagent.tasks import get_workflow_runner

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    return {"ok": True}


@router.get("/readyz")
async def readyz() -> JSONResponse:
    db_ok = db_ready()
    runner = get_workflow_runner()
    payload = {
        "ok": db_ok,
        "db": db_ok,
        "runs_in_flight": runner.in_flight,
        "max_concurrent_runs": runner.max_concurrent,
    }
    return JSONResponse(status_code=200 if db_ok else 503, content=payload)
