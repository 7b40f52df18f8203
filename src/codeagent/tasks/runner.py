"""In-process async workflow runner."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from codeagent.config import get_settings
from codeagent.events.models import CodeAgentEvent
from codeagent.logging import run_context

logger = logging.getLogger(__name__)

EventHandler = Callable[[CodeAgentEvent], Awaitable[Any]]


class WorkflowRunner:
    """Fire-and-forget dispatcher of trigger events to workflow handlers.

    Runs execute concurrently up to ``max_concurrent``; each run is its own
    task and shares nothing with the others.
    """

    def __init__(self, max_concurrent: int | None = None) -> None:
        settings = get_settings()
        self._handlers: dict[str, EventHandler] = {}
        limit = max_concurrent or int(settings.workflow_max_concurrent)
        self._max_concurrent = max(1, limit)
        self._semaphore: asyncio.Semaphore | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._shutdown = False

    @property
    def in_flight(self) -> int:
        return len(self._background_tasks)

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def register(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name] = handler

    def send(self, event: CodeAgentEvent) -> bool:
        """Schedule ``event`` on the running loop. Returns False if not accepted."""
        if self._shutdown:
            logger.warning("Workflow runner is shutting down; dropping event %s", event.id)
            return False
        handler = self._handlers.get(event.name)
        if handler is None:
            logger.error("No handler for event %s", event.name)
            return False
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._execute(handler, event), name=f"run:{event.id}")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return True

    async def _execute(self, handler: EventHandler, event: CodeAgentEvent) -> None:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
        async with self._semaphore:
            try:
                await handler(event)
            except Exception:
                with run_context(event.id):
                    logger.exception("Run failed: %s", event.id)

    async def shutdown(self, timeout_s: float) -> None:
        self._shutdown = True
        if not self._background_tasks:
            return
        try:
            await asyncio.wait_for(
                asyncio.gather(*list(self._background_tasks), return_exceptions=True),
                timeout=max(1.0, float(timeout_s)),
            )
        except TimeoutError:
            logger.warning(
                "Workflow runner shutdown timed out; cancelling %d runs",
                len(self._background_tasks),
            )
            for task in list(self._background_tasks):
                task.cancel()
