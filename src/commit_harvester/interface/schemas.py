"""Pydantic response DTOs for the API boundary."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RepositoryResponse(_FromDomain):
    id: UUID
    name: str
    description: str
    active_branches: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProjectResponse(_FromDomain):
    id: UUID
    name: str
    full_name: str
    description: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProjectWithRepositoriesResponse(ProjectResponse):
    repositories: list[RepositoryResponse] = []


class DeveloperResponse(_FromDomain):
    id: UUID
    name: str
    email: str
    last_commit_at: datetime | None = None


class DeveloperStatsResponse(_FromDomain):
    """Statistics of one developer inside one repository."""

    id: UUID
    name: str
    email: str
    total_commits: int
    lines_added: int
    lines_deleted: int
    commit_frequency: float
    first_commit_at: datetime | None = None
    last_commit_at: datetime | None = None
    small_commits: int
    large_commits: int
    kpi: float


class SkippedResponse(_FromDomain):
    reason: str


class BranchReportResponse(_FromDomain):
    branch: str
    listed: int
    saved: int
    already_stored: int
    skipped: list[SkippedResponse] = []
    failed: str | None = None


class RepositoryReportResponse(_FromDomain):
    name: str
    active_branches: int
    branches: list[BranchReportResponse] = []


class ProjectReportResponse(_FromDomain):
    name: str
    repositories: list[RepositoryReportResponse] = []
    skipped: list[SkippedResponse] = []


class CollectionReportResponse(_FromDomain):
    """Outcome of the most recent collection pass."""

    started_at: datetime
    finished_at: datetime | None = None
    commits_saved: int
    projects: list[ProjectReportResponse] = []
    failed: str | None = None


class CollectionTriggeredResponse(BaseModel):
    status: str = "accepted"


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
