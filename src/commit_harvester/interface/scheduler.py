"""Periodic collection trigger.

Runs one pass immediately, then one every ``interval_seconds``.  Passes never
overlap: a timer tick that lands during a manual pass waits for it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from commit_harvester.domain.entities import CollectionReport
from commit_harvester.domain.exceptions import CollectionInProgressError
from commit_harvester.services.collect_metrics import CollectMetricsUseCase

logger = logging.getLogger(__name__)


class CollectionScheduler:
    def __init__(self, use_case: CollectMetricsUseCase, interval_seconds: float) -> None:
        self._use_case = use_case
        self._interval = interval_seconds
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task[None] | None = None
        self._manual_tasks: set[asyncio.Task[CollectionReport]] = set()
        self._latest: CollectionReport | None = None

    @property
    def running(self) -> bool:
        return self._lock.locked() or bool(self._manual_tasks)

    @property
    def latest_report(self) -> CollectionReport | None:
        return self._latest

    async def run_once(self) -> CollectionReport:
        """Run a single collection pass and remember its report."""
        async with self._lock:
            report = await self._use_case.execute()
            self._latest = report
            return report

    def trigger(self) -> asyncio.Task[CollectionReport]:
        """Start a pass in the background; raise if one is already running."""
        if self.running:
            raise CollectionInProgressError("A collection pass is already running.")
        task = asyncio.create_task(self.run_once())
        self._manual_tasks.add(task)
        task.add_done_callback(self._manual_tasks.discard)
        task.add_done_callback(_log_failure)
        return task

    def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._run_forever())
            logger.info("Starting collector (interval: %.0fs)", self._interval)

    async def stop(self) -> None:
        tasks = [t for t in (self._loop_task, *self._manual_tasks) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._loop_task = None

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Collection pass crashed")
            await asyncio.sleep(self._interval)


def _log_failure(task: asyncio.Task[CollectionReport]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Manual collection pass crashed", exc_info=exc)
