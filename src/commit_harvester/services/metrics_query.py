"""Read-side use case backing the HTTP API."""

from __future__ import annotations

from commit_harvester.domain.entities import (
    DeveloperRecord,
    DeveloperStats,
    ProjectRecord,
    RepositoryRecord,
)
from commit_harvester.domain.ports.metrics_store import MetricsReader
from commit_harvester.services.developer_kpi import build_developer_stats


class MetricsQueryService:
    """Answers questions about already collected data.

    Lookups of unknown projects, repositories or developers raise
    :class:`ResourceNotFoundError` from the reader.
    """

    def __init__(self, reader: MetricsReader) -> None:
        self._reader = reader

    async def list_projects(self) -> list[ProjectRecord]:
        return await self._reader.list_projects()

    async def get_project(self, name: str) -> ProjectRecord:
        return await self._reader.get_project(name)

    async def list_repositories(self, project: str) -> list[RepositoryRecord]:
        return (await self._reader.get_project(project)).repositories

    async def list_developers(self, project: str, repo: str) -> list[DeveloperRecord]:
        return await self._reader.list_repository_developers(project, repo)

    async def developer_stats(self, project: str, repo: str, email: str) -> DeveloperStats:
        developer = await self._reader.get_developer(email)
        own = await self._reader.developer_aggregate(project, repo, email)
        repository = await self._reader.repository_aggregate(project, repo)
        return build_developer_stats(developer, own, repository)
