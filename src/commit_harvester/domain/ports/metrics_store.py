"""Port: metrics store, defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from commit_harvester.domain.entities import (
    Author,
    CommitAggregate,
    CommitWithStats,
    DeveloperRecord,
    ProjectDetails,
    ProjectRecord,
    RepositoryDetails,
)


class MetricsStore(Protocol):
    """Idempotent writes used by the collector.

    Each method is a single atomic statement and raises
    :class:`PersistenceError` on failure.
    """

    async def upsert_project(self, project: ProjectDetails) -> UUID:
        """Insert or update a project keyed by name; return its id."""
        ...

    async def upsert_repository(
        self, project_id: UUID, repository: RepositoryDetails, active_branches: int
    ) -> UUID:
        """Insert or update a repository keyed by (name, project); return its id."""
        ...

    async def upsert_developer(self, author: Author) -> UUID:
        """Insert a developer keyed by email, refreshing the name on conflict."""
        ...

    async def insert_commit(
        self,
        commit: CommitWithStats,
        *,
        branch: str,
        developer_id: UUID,
        project_id: UUID,
        repository_id: UUID,
    ) -> bool:
        """Insert a commit keyed by hash; existing rows are left untouched.

        Returns ``True`` when a new row was written.
        """
        ...


class MetricsReader(Protocol):
    """Read-side queries used by the HTTP API."""

    async def list_projects(self) -> list[ProjectRecord]:
        ...

    async def get_project(self, name: str) -> ProjectRecord:
        """Return the project with its repositories; raise ResourceNotFoundError."""
        ...

    async def list_repository_developers(
        self, project: str, repo: str
    ) -> list[DeveloperRecord]:
        ...

    async def get_developer(self, email: str) -> DeveloperRecord:
        ...

    async def developer_aggregate(
        self, project: str, repo: str, email: str
    ) -> CommitAggregate:
        ...

    async def repository_aggregate(self, project: str, repo: str) -> CommitAggregate:
        ...
