"""Port: source client, defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from commit_harvester.domain.entities import (
    Branch,
    CommitPage,
    FullCommit,
    ProjectDetails,
    RepositoryDetails,
)


class SourceClient(Protocol):
    """Abstract contract for reading metadata from the code-hosting service.

    Every method raises :class:`SourceRequestError` or
    :class:`PayloadDecodeError` on failure.
    """

    async def list_projects(self) -> list[str]:
        """Return the names of all visible projects."""
        ...

    async def get_project(self, project: str) -> ProjectDetails:
        ...

    async def list_repositories(self, project: str) -> list[str]:
        """Return the names of the project's repositories."""
        ...

    async def get_repository(self, project: str, repo: str) -> RepositoryDetails:
        ...

    async def list_branches(self, project: str, repo: str) -> list[Branch]:
        ...

    async def list_commits_page(
        self, project: str, repo: str, branch: str, cursor: str = ""
    ) -> CommitPage:
        """Return one page of the branch's commit listing (empty cursor = first page)."""
        ...

    async def get_commit(self, project: str, repo: str, commit_hash: str) -> FullCommit:
        ...

    async def get_commit_diff(self, project: str, repo: str, commit_hash: str) -> str:
        """Return the decoded unified diff text of a commit."""
        ...
