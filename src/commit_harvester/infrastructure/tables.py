"""Relational schema for collected metrics."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)

metadata = MetaData()

projects = Table(
    "projects",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", String(255), nullable=False, unique=True),
    Column("full_name", String(512), nullable=False, default=""),
    Column("description", Text, nullable=False, default=""),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

repositories = Table(
    "repositories",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("active_branches", Integer, nullable=False, default=0),
    Column("project_id", Uuid, ForeignKey("projects.id"), nullable=False),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("name", "project_id", name="uq_repositories_name_project"),
)

developers = Table(
    "developers",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
)

# hash is unique across all repositories
commits = Table(
    "commits",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("hash", String(64), nullable=False, unique=True),
    Column("message", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("branch_name", String(255)),
    Column("lines_added", Integer, nullable=False, default=0),
    Column("lines_deleted", Integer, nullable=False, default=0),
    Column("developer_id", Uuid, ForeignKey("developers.id"), nullable=False),
    Column("project_id", Uuid, ForeignKey("projects.id"), nullable=False),
    Column("repository_id", Uuid, ForeignKey("repositories.id"), nullable=False),
)
Index("idx_commits_repo_developer", commits.c.repository_id, commits.c.developer_id)

__all__ = [
    "metadata",
    "projects",
    "repositories",
    "developers",
    "commits",
]
