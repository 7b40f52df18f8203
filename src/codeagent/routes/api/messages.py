"""Persisted result/error message routes."""

from fastapi import APIRouter, Query

from codeagent.db.connection import get_conn
from codeagent.db.queries import list_messages

router = APIRouter(tags=["api-messages"])


@router.get("/messages")
def get_messages(limit: int = Query(default=50, ge=1, le=200)) -> dict[str, object]:
    with get_conn() as conn:
        items = list_messages(conn, limit=limit)
    return {"items": items}
