"""SQLAlchemy-backed store, implements the MetricsStore and MetricsReader ports.

Every write is a single ``INSERT ... ON CONFLICT`` statement in its own
transaction; correctness across concurrent branch workers rests on the
unique keys of :mod:`commit_harvester.infrastructure.tables`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable

from commit_harvester.domain.entities import (
    LARGE_COMMIT_MIN_LINES,
    SMALL_COMMIT_MAX_LINES,
    Author,
    CommitAggregate,
    CommitWithStats,
    DeveloperRecord,
    ProjectDetails,
    ProjectRecord,
    RepositoryDetails,
    RepositoryRecord,
)
from commit_harvester.domain.exceptions import PersistenceError, ResourceNotFoundError
from commit_harvester.infrastructure.tables import (
    commits,
    developers,
    metadata,
    projects,
    repositories,
)

logger = logging.getLogger(__name__)


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine; server databases get a pool sized for branch workers."""
    engine_kwargs: dict[str, Any] = {"echo": echo}
    if "sqlite" not in database_url.lower():
        engine_kwargs.update(
            {
                "pool_size": 10,
                "max_overflow": 10,
                "pool_pre_ping": True,
                "pool_recycle": 3600,
            }
        )
    return create_async_engine(database_url, **engine_kwargs)


class SqlMetricsStore:
    """Store for projects, repositories, developers and commits."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> SqlMetricsStore:
        return cls(create_engine_for_url(database_url, echo=echo))

    async def create_all(self) -> None:
        """Create missing tables."""
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Schema ready on %s", self._engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        await self._engine.dispose()

    # ── Writes ──────────────────────────────────────────────────────────

    async def upsert_project(self, project: ProjectDetails) -> UUID:
        stmt = self._insert(projects).values(
            name=project.name,
            full_name=project.full_name,
            description=project.description,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[projects.c.name],
            set_={
                "full_name": stmt.excluded.full_name,
                "description": stmt.excluded.description,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(projects.c.id)
        return await self._returning_id(stmt, f"project {project.name!r}")

    async def upsert_repository(
        self, project_id: UUID, repository: RepositoryDetails, active_branches: int
    ) -> UUID:
        now = datetime.now(timezone.utc)
        stmt = self._insert(repositories).values(
            name=repository.name,
            description=repository.description,
            active_branches=active_branches,
            project_id=project_id,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[repositories.c.name, repositories.c.project_id],
            set_={
                "description": stmt.excluded.description,
                "active_branches": stmt.excluded.active_branches,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(repositories.c.id)
        return await self._returning_id(stmt, f"repository {repository.name!r}")

    async def upsert_developer(self, author: Author) -> UUID:
        stmt = self._insert(developers).values(name=author.name, email=author.email)
        stmt = stmt.on_conflict_do_update(
            index_elements=[developers.c.email],
            set_={"name": stmt.excluded.name},
        ).returning(developers.c.id)
        return await self._returning_id(stmt, f"developer {author.email!r}")

    async def insert_commit(
        self,
        commit: CommitWithStats,
        *,
        branch: str,
        developer_id: UUID,
        project_id: UUID,
        repository_id: UUID,
    ) -> bool:
        stmt = (
            self._insert(commits)
            .values(
                hash=commit.hash,
                message=commit.message,
                created_at=commit.created_at,
                branch_name=branch,
                lines_added=commit.lines_added,
                lines_deleted=commit.lines_deleted,
                developer_id=developer_id,
                project_id=project_id,
                repository_id=repository_id,
            )
            .on_conflict_do_nothing(index_elements=[commits.c.hash])
            .returning(commits.c.id)
        )
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
                return result.first() is not None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Insert commit {commit.hash}: {exc}") from exc

    # ── Reads ───────────────────────────────────────────────────────────

    async def list_projects(self) -> list[ProjectRecord]:
        rows = await self._fetch_all(select(projects).order_by(projects.c.name), "projects")
        return [_project_record(row) for row in rows]

    async def get_project(self, name: str) -> ProjectRecord:
        try:
            async with self._engine.connect() as conn:
                row = (
                    await conn.execute(select(projects).where(projects.c.name == name))
                ).first()
                if row is None:
                    raise ResourceNotFoundError(f"Project not found: {name}")
                repo_rows = (
                    await conn.execute(
                        select(repositories)
                        .where(repositories.c.project_id == row.id)
                        .order_by(repositories.c.name)
                    )
                ).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Load project {name!r}: {exc}") from exc

        return _project_record(row, [_repository_record(r) for r in repo_rows])

    async def list_repository_developers(
        self, project: str, repo: str
    ) -> list[DeveloperRecord]:
        try:
            async with self._engine.connect() as conn:
                repository_id = await self._repository_id(conn, project, repo)
                rows = (
                    await conn.execute(
                        select(
                            developers.c.id,
                            developers.c.name,
                            developers.c.email,
                            func.max(commits.c.created_at).label("last_commit_at"),
                        )
                        .join(commits, commits.c.developer_id == developers.c.id)
                        .where(commits.c.repository_id == repository_id)
                        .group_by(developers.c.id, developers.c.name, developers.c.email)
                        .order_by(developers.c.email)
                    )
                ).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Load developers of {project}/{repo}: {exc}") from exc

        return [
            DeveloperRecord(
                id=row.id, name=row.name, email=row.email, last_commit_at=row.last_commit_at
            )
            for row in rows
        ]

    async def get_developer(self, email: str) -> DeveloperRecord:
        rows = await self._fetch_all(
            select(developers).where(developers.c.email == email), f"developer {email!r}"
        )
        if not rows:
            raise ResourceNotFoundError(f"Developer not found: {email}")
        row = rows[0]
        return DeveloperRecord(id=row.id, name=row.name, email=row.email)

    async def developer_aggregate(
        self, project: str, repo: str, email: str
    ) -> CommitAggregate:
        try:
            async with self._engine.connect() as conn:
                repository_id = await self._repository_id(conn, project, repo)
                row = (
                    await conn.execute(
                        _aggregate_query()
                        .join(developers, developers.c.id == commits.c.developer_id)
                        .where(
                            commits.c.repository_id == repository_id,
                            developers.c.email == email,
                        )
                    )
                ).one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Aggregate {email!r} in {project}/{repo}: {exc}") from exc
        return _aggregate(row)

    async def repository_aggregate(self, project: str, repo: str) -> CommitAggregate:
        try:
            async with self._engine.connect() as conn:
                repository_id = await self._repository_id(conn, project, repo)
                row = (
                    await conn.execute(
                        _aggregate_query().where(commits.c.repository_id == repository_id)
                    )
                ).one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Aggregate {project}/{repo}: {exc}") from exc
        return _aggregate(row)

    # ── Internals ───────────────────────────────────────────────────────

    def _insert(self, table: Any) -> Any:
        dialect = self._engine.dialect.name
        if dialect == "sqlite":
            return sqlite_insert(table)
        if dialect in ("postgres", "postgresql"):
            return pg_insert(table)
        raise ValueError(f"Unsupported SQL dialect for upserts: {dialect}")

    async def _returning_id(self, stmt: Executable, what: str) -> UUID:
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
                return result.scalar_one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Upsert {what}: {exc}") from exc

    async def _fetch_all(self, stmt: Executable, what: str) -> list[Any]:
        try:
            async with self._engine.connect() as conn:
                return list((await conn.execute(stmt)).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Load {what}: {exc}") from exc

    @staticmethod
    async def _repository_id(conn: AsyncConnection, project: str, repo: str) -> UUID:
        repository_id = (
            await conn.execute(
                select(repositories.c.id)
                .join(projects, projects.c.id == repositories.c.project_id)
                .where(projects.c.name == project, repositories.c.name == repo)
            )
        ).scalar_one_or_none()
        if repository_id is None:
            raise ResourceNotFoundError(f"Repository not found: {project}/{repo}")
        return repository_id


# ── Row mapping ─────────────────────────────────────────────────────────────


def _aggregate_query() -> Any:
    size = commits.c.lines_added + commits.c.lines_deleted
    return select(
        func.count(commits.c.id).label("total_commits"),
        func.coalesce(func.sum(commits.c.lines_added), 0).label("lines_added"),
        func.coalesce(func.sum(commits.c.lines_deleted), 0).label("lines_deleted"),
        func.coalesce(func.max(commits.c.lines_added), 0).label("max_lines_added"),
        func.coalesce(func.max(commits.c.lines_deleted), 0).label("max_lines_deleted"),
        func.coalesce(
            func.sum(case((size <= SMALL_COMMIT_MAX_LINES, 1), else_=0)), 0
        ).label("small_commits"),
        func.coalesce(
            func.sum(case((size >= LARGE_COMMIT_MIN_LINES, 1), else_=0)), 0
        ).label("large_commits"),
        func.min(commits.c.created_at).label("first_commit_at"),
        func.max(commits.c.created_at).label("last_commit_at"),
    ).select_from(commits)


def _aggregate(row: Any) -> CommitAggregate:
    return CommitAggregate(
        total_commits=int(row.total_commits),
        lines_added=int(row.lines_added),
        lines_deleted=int(row.lines_deleted),
        max_lines_added=int(row.max_lines_added),
        max_lines_deleted=int(row.max_lines_deleted),
        small_commits=int(row.small_commits),
        large_commits=int(row.large_commits),
        first_commit_at=row.first_commit_at,
        last_commit_at=row.last_commit_at,
    )


def _repository_record(row: Any) -> RepositoryRecord:
    return RepositoryRecord(
        id=row.id,
        name=row.name,
        description=row.description,
        active_branches=row.active_branches,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _project_record(row: Any, repos: list[RepositoryRecord] | None = None) -> ProjectRecord:
    return ProjectRecord(
        id=row.id,
        name=row.name,
        full_name=row.full_name,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
        repositories=repos or [],
    )
