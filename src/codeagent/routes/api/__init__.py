"""API v1 router aggregation."""

from fastapi import APIRouter

from codeagent.routes.api import messages, runs

router = APIRouter(prefix="/api/v1", tags=["api"])
router.include_router(runs.router)
router.include_router(messages.router)
