"""FastAPI entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from codeagent.config import get_settings, validate_settings_for_env
from codeagent.db.migrations.runner import run_migrations
from codeagent.logging import configure_logging
from codeagent.routes.api import router as api_router
from codeagent.routes.health import router as health_router
from codeagent.tasks import get_workflow_runner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    validate_settings_for_env(settings)
    configure_logging(settings.log_level, app_env=settings.app_env)
    applied = run_migrations()
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))
    runner = get_workflow_runner()
    logger.info(
        "codeagent ready (sandbox backend=%s, max concurrent runs=%d)",
        settings.sandbox_backend,
        runner.max_concurrent,
    )
    try:
        yield
    finally:
        await runner.shutdown(settings.workflow_shutdown_timeout_seconds)


app = FastAPI(title="codeagent", lifespan=lifespan)
app.include_router(health_router)
app.include_router(api_router)
