"""Durable step execution.

A step is a named unit of work whose outcome is recorded once per run. The
first call for ``(run_id, step_name)`` runs the operation and stores its
result (or its failure); every later call for the same key, including calls
from a restarted process, gets the stored record back and the operation is
not invoked again.

Precondition: step names identify one logical operation within a run. Two
different operations sharing a name within a run get each other's results.
``StepContext`` covers the common case of one call site running many times
by numbering repeated names.
"""

import asyncio
import inspect
import json
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from codeagent.workflow.store import StepRecord, StepStore

logger = logging.getLogger(__name__)

StepOperation = Callable[[], Any]


class StepExecutor:
    def __init__(self, store: StepStore) -> None:
        self._store = store
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    @property
    def store(self) -> StepStore:
        return self._store

    async def execute(
        self,
        run_id: str,
        step_name: str,
        operation: StepOperation,
    ) -> StepRecord:
        """Run ``operation`` at most once for this key and return its record.

        Exceptions raised by the operation are captured in a failed record,
        not propagated. A result that is not JSON-serializable is recorded as
        a failure.
        """
        key = (run_id, step_name)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            existing = self._store.get(run_id, step_name)
            if existing is not None:
                logger.debug("Replaying step %s for run %s", step_name, run_id)
                return replace(existing, replayed=True)

            try:
                value = operation()
                if inspect.isawaitable(value):
                    value = await value
                # Round-trip so a fresh result looks exactly like its replay.
                result = json.loads(json.dumps(value))
                record = StepRecord(run_id=run_id, step_name=step_name, ok=True, result=result)
            except Exception as exc:
                logger.warning("Step %s failed for run %s: %s", step_name, run_id, exc)
                record = StepRecord(
                    run_id=run_id,
                    step_name=step_name,
                    ok=False,
                    error={"type": type(exc).__name__, "message": str(exc)},
                )
            return self._store.put(record)

    def context(self, run_id: str) -> "StepContext":
        return StepContext(self, run_id)

    def release(self, run_id: str) -> None:
        """Drop the in-process locks of a finished run. Stored records stay."""
        for key in [key for key in self._locks if key[0] == run_id]:
            lock = self._locks.get(key)
            if lock is not None and not lock.locked():
                del self._locks[key]


class StepContext:
    """Run-scoped view of the executor handed to tools and the finalizer.

    The n-th use of a base name within the context becomes ``name:n`` (the
    first use keeps the bare name), so a tool that runs several times per
    run records each call separately. Numbering follows call order, which a
    replayed run reproduces.

    ``executed`` counts the steps this context actually ran (not replayed).
    """

    def __init__(self, executor: StepExecutor, run_id: str) -> None:
        self._executor = executor
        self.run_id = run_id
        self._counts: dict[str, int] = {}
        self.executed = 0

    def _step_name(self, name: str) -> str:
        seen = self._counts.get(name, 0)
        self._counts[name] = seen + 1
        return name if seen == 0 else f"{name}:{seen}"

    async def run(self, name: str, operation: StepOperation) -> StepRecord:
        record = await self._executor.execute(self.run_id, self._step_name(name), operation)
        if not record.replayed:
            self.executed += 1
        return record
