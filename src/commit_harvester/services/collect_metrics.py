"""Collect-metrics use case: the top-level collection pass.

Projects and repositories are traversed sequentially; parallelism only
exists at branch granularity inside one repository, through
:class:`BranchPool`.  The use case depends only on the two ports
(:class:`SourceClient` and :class:`MetricsStore`); concrete adapters are
injected by the interface layer.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from commit_harvester.domain.entities import (
    DEFAULT_BRANCH_NAME,
    Branch,
    BranchReport,
    BranchTarget,
    CollectionReport,
    ProjectReport,
    RepositoryDetails,
    RepositoryReport,
    Skipped,
)
from commit_harvester.domain.exceptions import CommitHarvesterError, PersistenceError
from commit_harvester.domain.ports.metrics_store import MetricsStore
from commit_harvester.domain.ports.source_client import SourceClient
from commit_harvester.services.branch_pool import DEFAULT_MAX_WORKERS, BranchPool
from commit_harvester.services.branch_worker import DEFAULT_PACING_SECONDS, BranchWorker
from commit_harvester.services.commit_walker import DEFAULT_COMMIT_CAP

logger = logging.getLogger(__name__)


class CollectMetricsUseCase:
    """Orchestrates a full project → repository → branch → commit pass.

    Parameters
    ----------
    source:
        Adapter for the code-hosting service.
    store:
        Persistence handle, shared by all branch workers.
    max_concurrent_branches:
        Size of the per-repository branch worker pool.
    commit_cap:
        Safety cap on commits listed per branch.
    pacing_seconds:
        Delay before each full-commit fetch inside a worker.
    """

    def __init__(
        self,
        source: SourceClient,
        store: MetricsStore,
        *,
        max_concurrent_branches: int = DEFAULT_MAX_WORKERS,
        commit_cap: int = DEFAULT_COMMIT_CAP,
        pacing_seconds: float = DEFAULT_PACING_SECONDS,
    ) -> None:
        self._source = source
        self._store = store
        self._pool = BranchPool(max_concurrent_branches)
        self._worker = BranchWorker(
            source, store, pacing_seconds=pacing_seconds, commit_cap=commit_cap
        )

    # ── Public entry point ──────────────────────────────────────────────

    async def execute(self) -> CollectionReport:
        """Run one collection pass.  Never raises for source or store failures."""
        report = CollectionReport(started_at=datetime.now(timezone.utc))

        try:
            project_names = await self._source.list_projects()
        except CommitHarvesterError as exc:
            logger.error("Fetch projects: %s", exc)
            report.failed = f"list projects: {exc}"
            report.finished_at = datetime.now(timezone.utc)
            return report

        logger.info("Got %d projects", len(project_names))
        for name in project_names:
            report.projects.append(await self._collect_project(name))

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Collection finished: %d projects, %d new commits",
            len(report.projects), report.commits_saved,
        )
        return report

    # ── Projects ────────────────────────────────────────────────────────

    async def _collect_project(self, name: str) -> ProjectReport:
        logger.info("Processing project %s", name)
        report = ProjectReport(name=name)

        try:
            details = await self._source.get_project(name)
        except CommitHarvesterError as exc:
            logger.warning("Skip project details for %s: %s", name, exc)
            report.skipped.append(Skipped(f"project details: {exc}"))
            return report

        # repositories cannot be linked without the project id
        try:
            project_id = await self._store.upsert_project(details)
        except PersistenceError as exc:
            logger.error("Save project %s: %s", name, exc)
            report.skipped.append(Skipped(f"save project: {exc}"))
            return report

        try:
            repo_names = await self._source.list_repositories(name)
        except CommitHarvesterError as exc:
            logger.warning("Skip repos for %s: %s", name, exc)
            report.skipped.append(Skipped(f"list repositories: {exc}"))
            return report

        for repo in repo_names:
            outcome = await self._collect_repository(name, project_id, repo)
            if isinstance(outcome, Skipped):
                report.skipped.append(outcome)
            else:
                report.repositories.append(outcome)
        return report

    # ── Repositories ────────────────────────────────────────────────────

    async def _collect_repository(
        self, project: str, project_id: UUID, repo: str
    ) -> RepositoryReport | Skipped:
        logger.info("Processing repo %s/%s", project, repo)

        details = await self._repository_details(project, repo)
        branches = await self._branches(project, repo)

        try:
            repository_id = await self._store.upsert_repository(
                project_id, details, active_branches=len(branches)
            )
        except PersistenceError as exc:
            logger.error("Save repo %s/%s: %s", project, repo, exc)
            return Skipped(f"save repository {repo}: {exc}")

        async def _job(branch: str) -> BranchReport:
            return await self._worker.run(
                BranchTarget(
                    project=project,
                    repository=repo,
                    branch=branch,
                    project_id=project_id,
                    repository_id=repository_id,
                )
            )

        branch_reports = await self._pool.run([b.name for b in branches], _job)
        return RepositoryReport(
            name=repo, active_branches=len(branches), branches=branch_reports
        )

    async def _repository_details(self, project: str, repo: str) -> RepositoryDetails:
        """Repository metadata, degraded to name-only when the fetch fails."""
        try:
            return await self._source.get_repository(project, repo)
        except CommitHarvesterError as exc:
            logger.warning("Skip repo details for %s/%s: %s", project, repo, exc)
            return RepositoryDetails(name=repo)

    async def _branches(self, project: str, repo: str) -> list[Branch]:
        """Branch list, degraded to a single ``HEAD`` branch when the fetch fails."""
        try:
            return await self._source.list_branches(project, repo)
        except CommitHarvesterError as exc:
            logger.warning("Skip branches for %s/%s: %s", project, repo, exc)
            return [Branch(name=DEFAULT_BRANCH_NAME)]
