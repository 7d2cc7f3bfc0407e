"""Branch worker: walk one branch and persist each of its commits in order."""

from __future__ import annotations

import asyncio
import logging

from commit_harvester.domain.entities import BranchReport, BranchTarget, Skipped
from commit_harvester.domain.exceptions import PersistenceError
from commit_harvester.domain.ports.metrics_store import MetricsStore
from commit_harvester.domain.ports.source_client import SourceClient
from commit_harvester.services.commit_resolver import resolve_commit
from commit_harvester.services.commit_walker import DEFAULT_COMMIT_CAP, walk_commits

logger = logging.getLogger(__name__)

DEFAULT_PACING_SECONDS = 0.2


class BranchWorker:
    """Drives the commit walker and resolver for a single branch.

    Parameters
    ----------
    source:
        Client for the code-hosting service.
    store:
        Persistence handle shared by every worker of a collection pass.
    pacing_seconds:
        Delay applied before each full-commit fetch.
    commit_cap:
        Safety cap handed to the commit walker.
    """

    def __init__(
        self,
        source: SourceClient,
        store: MetricsStore,
        *,
        pacing_seconds: float = DEFAULT_PACING_SECONDS,
        commit_cap: int = DEFAULT_COMMIT_CAP,
    ) -> None:
        self._source = source
        self._store = store
        self._pacing = pacing_seconds
        self._cap = commit_cap

    async def run(self, target: BranchTarget) -> BranchReport:
        """Process every commit of *target* sequentially, in listing order."""
        report = BranchReport(branch=target.branch)
        commits = await walk_commits(
            self._source, target.project, target.repository, target.branch, cap=self._cap
        )
        report.listed = len(commits)

        for item in commits:
            if not item.hash:
                report.skipped.append(Skipped("listing item without hash"))
                continue

            await asyncio.sleep(self._pacing)
            outcome = await self._process_commit(target, item.hash)
            if isinstance(outcome, Skipped):
                report.skipped.append(outcome)
            elif outcome:
                report.saved += 1
            else:
                report.already_stored += 1

        logger.info(
            "Branch %s done: %d listed, %d saved, %d already stored, %d skipped",
            target.label, report.listed, report.saved, report.already_stored,
            len(report.skipped),
        )
        return report

    async def _process_commit(self, target: BranchTarget, commit_hash: str) -> bool | Skipped:
        resolved = await resolve_commit(
            self._source, target.project, target.repository, commit_hash
        )
        if isinstance(resolved, Skipped):
            return resolved

        try:
            developer_id = await self._store.upsert_developer(resolved.author)
        except PersistenceError as exc:
            logger.error("Save developer %r for %s: %s", resolved.author.email, commit_hash, exc)
            return Skipped(f"developer {resolved.author.email!r}: {exc}")

        try:
            inserted = await self._store.insert_commit(
                resolved,
                branch=target.branch,
                developer_id=developer_id,
                project_id=target.project_id,
                repository_id=target.repository_id,
            )
        except PersistenceError as exc:
            logger.error("Save commit %s on %s: %s", commit_hash, target.label, exc)
            return Skipped(f"commit {commit_hash}: {exc}")

        if inserted:
            logger.debug("Saved commit %s on %s", commit_hash[:8], target.label)
        return inserted
