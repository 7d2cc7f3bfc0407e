"""Domain entities: pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

UNKNOWN_AUTHOR_NAME = "Unknown"
UNKNOWN_AUTHOR_EMAIL = "unknown@example.com"

DEFAULT_BRANCH_NAME = "HEAD"

# commit size buckets, by lines added + deleted
SMALL_COMMIT_MAX_LINES = 5
LARGE_COMMIT_MIN_LINES = 50


# ── Remote source payloads ──────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProjectDetails:
    """Project metadata as reported by the code-hosting service."""

    name: str
    full_name: str = ""
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RepositoryDetails:
    """Repository metadata as reported by the code-hosting service."""

    name: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class Branch:
    name: str


@dataclass(frozen=True, slots=True)
class CommitListItem:
    hash: str


@dataclass(frozen=True, slots=True)
class CommitPage:
    """One page of a commit listing plus the cursor of the next page."""

    items: list[CommitListItem]
    next_cursor: str = ""


@dataclass(frozen=True, slots=True)
class Author:
    name: str = ""
    email: str = ""

    @property
    def is_anonymous(self) -> bool:
        return not self.name and not self.email


@dataclass(frozen=True, slots=True)
class FullCommit:
    """Commit metadata from the single-commit endpoint."""

    hash: str
    author: Author
    message: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class CommitWithStats:
    """A resolved commit, ready to be persisted."""

    hash: str
    author: Author
    message: str
    created_at: datetime
    lines_added: int
    lines_deleted: int


# ── Unit-of-work outcomes ───────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Skipped:
    """A unit of work that was dropped, and why."""

    reason: str


@dataclass(frozen=True, slots=True)
class BranchTarget:
    """Everything a branch worker needs to know about where it is working."""

    project: str
    repository: str
    branch: str
    project_id: UUID
    repository_id: UUID

    @property
    def label(self) -> str:
        return f"{self.project}/{self.repository}@{self.branch}"


@dataclass(slots=True)
class BranchReport:
    """Outcome of one branch worker run."""

    branch: str
    listed: int = 0
    saved: int = 0
    already_stored: int = 0
    skipped: list[Skipped] = field(default_factory=list)
    failed: str | None = None


@dataclass(slots=True)
class RepositoryReport:
    name: str
    active_branches: int = 0
    branches: list[BranchReport] = field(default_factory=list)

    @property
    def saved(self) -> int:
        return sum(b.saved for b in self.branches)


@dataclass(slots=True)
class ProjectReport:
    name: str
    repositories: list[RepositoryReport] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)


@dataclass(slots=True)
class CollectionReport:
    """Summary of a whole collection pass."""

    started_at: datetime
    finished_at: datetime | None = None
    projects: list[ProjectReport] = field(default_factory=list)
    failed: str | None = None

    @property
    def commits_saved(self) -> int:
        return sum(r.saved for p in self.projects for r in p.repositories)


# ── Stored records (read side) ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RepositoryRecord:
    id: UUID
    name: str
    description: str
    active_branches: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ProjectRecord:
    id: UUID
    name: str
    full_name: str
    description: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    repositories: list[RepositoryRecord] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DeveloperRecord:
    id: UUID
    name: str
    email: str
    last_commit_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class CommitAggregate:
    """Commit counters for one developer, or for a whole repository.

    For a repository aggregate ``max_lines_added`` / ``max_lines_deleted``
    are per-commit maxima; for a developer they are unused.
    """

    total_commits: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    max_lines_added: int = 0
    max_lines_deleted: int = 0
    small_commits: int = 0
    large_commits: int = 0
    first_commit_at: datetime | None = None
    last_commit_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class DeveloperStats:
    """Per-repository statistics for a single developer."""

    id: UUID
    name: str
    email: str
    total_commits: int
    lines_added: int
    lines_deleted: int
    commit_frequency: float
    first_commit_at: datetime | None
    last_commit_at: datetime | None
    small_commits: int
    large_commits: int
    kpi: float
