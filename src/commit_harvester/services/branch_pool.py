"""Bounded pool of branch workers with an explicit join."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from commit_harvester.domain.entities import BranchReport

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5

BranchJob = Callable[[str], Awaitable[BranchReport]]


class BranchPool:
    """Runs one job per branch with at most ``max_workers`` active at a time.

    ``run`` returns only after every job has finished, so it acts as the
    barrier for the enclosing repository.  A job that raises is recorded as
    a failed :class:`BranchReport` and never affects its siblings.
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._max_workers = max_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    async def run(self, branches: Sequence[str], job: BranchJob) -> list[BranchReport]:
        """Run *job* for every branch; reports come back in branch order."""
        queue: asyncio.Queue[tuple[int, str]] = asyncio.Queue()
        for index, branch in enumerate(branches):
            queue.put_nowait((index, branch))

        reports: list[BranchReport | None] = [None] * len(branches)

        async def _worker() -> None:
            while True:
                try:
                    index, branch = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    reports[index] = await job(branch)
                except Exception as exc:
                    logger.exception("Branch worker for %s failed", branch)
                    reports[index] = BranchReport(branch=branch, failed=str(exc))

        worker_count = min(self._max_workers, len(branches))
        await asyncio.gather(*(_worker() for _ in range(worker_count)))
        return [r for r in reports if r is not None]
