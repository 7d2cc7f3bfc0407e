from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from commit_harvester.domain.entities import (
    Author,
    CommitWithStats,
    ProjectDetails,
    RepositoryDetails,
)
from commit_harvester.domain.exceptions import ResourceNotFoundError
from commit_harvester.infrastructure.tables import commits, developers, projects

T0 = datetime(2024, 3, 1, 12, 0)


def _commit(commit_hash, added=1, deleted=0, days=0, author=None):
    return CommitWithStats(
        hash=commit_hash,
        author=author or Author(name="Dev", email="dev@example.com"),
        message=f"msg {commit_hash}",
        created_at=T0 + timedelta(days=days),
        lines_added=added,
        lines_deleted=deleted,
    )


async def _count(store, table):
    async with store._engine.connect() as conn:
        return (await conn.execute(select(func.count()).select_from(table))).scalar_one()


async def _seed(store):
    project_id = await store.upsert_project(ProjectDetails(name="alpha", full_name="Alpha"))
    repo_id = await store.upsert_repository(
        project_id, RepositoryDetails(name="api", description="d"), active_branches=2
    )
    return project_id, repo_id


async def _save(store, commit, project_id, repo_id, branch="main"):
    developer_id = await store.upsert_developer(commit.author)
    return await store.insert_commit(
        commit,
        branch=branch,
        developer_id=developer_id,
        project_id=project_id,
        repository_id=repo_id,
    )


async def test_project_upsert_keeps_id_and_overwrites_fields(sql_store):
    first = await sql_store.upsert_project(ProjectDetails(name="alpha", description="old"))
    second = await sql_store.upsert_project(ProjectDetails(name="alpha", description="new"))

    assert first == second
    assert await _count(sql_store, projects) == 1
    assert (await sql_store.get_project("alpha")).description == "new"


async def test_repository_upsert_is_scoped_to_project(sql_store):
    alpha = await sql_store.upsert_project(ProjectDetails(name="alpha"))
    beta = await sql_store.upsert_project(ProjectDetails(name="beta"))

    a1 = await sql_store.upsert_repository(alpha, RepositoryDetails(name="api"), 1)
    a2 = await sql_store.upsert_repository(alpha, RepositoryDetails(name="api", description="x"), 3)
    b1 = await sql_store.upsert_repository(beta, RepositoryDetails(name="api"), 1)

    assert a1 == a2
    assert a1 != b1
    repo = (await sql_store.get_project("alpha")).repositories[0]
    assert (repo.description, repo.active_branches) == ("x", 3)


async def test_developer_upsert_updates_name_only(sql_store):
    first = await sql_store.upsert_developer(Author(name="Al", email="al@example.com"))
    second = await sql_store.upsert_developer(Author(name="Alan", email="al@example.com"))

    assert first == second
    assert await _count(sql_store, developers) == 1
    assert (await sql_store.get_developer("al@example.com")).name == "Alan"


async def test_commit_insert_is_first_writer_wins(sql_store):
    project_id, repo_id = await _seed(sql_store)

    assert await _save(sql_store, _commit("h1", added=5), project_id, repo_id, "main") is True
    assert await _save(sql_store, _commit("h1", added=99), project_id, repo_id, "dev") is False

    async with sql_store._engine.connect() as conn:
        row = (await conn.execute(select(commits).where(commits.c.hash == "h1"))).one()
    assert (row.branch_name, row.lines_added) == ("main", 5)
    assert await _count(sql_store, commits) == 1


async def test_unknown_project(sql_store):
    with pytest.raises(ResourceNotFoundError):
        await sql_store.get_project("missing")


async def test_unknown_repository(sql_store):
    await _seed(sql_store)
    with pytest.raises(ResourceNotFoundError):
        await sql_store.list_repository_developers("alpha", "missing")


async def test_list_projects_sorted(sql_store):
    await sql_store.upsert_project(ProjectDetails(name="zeta"))
    await sql_store.upsert_project(ProjectDetails(name="alpha"))

    assert [p.name for p in await sql_store.list_projects()] == ["alpha", "zeta"]


async def test_repository_developers_with_last_commit(sql_store):
    project_id, repo_id = await _seed(sql_store)
    bob = Author(name="Bob", email="bob@example.com")
    await _save(sql_store, _commit("h1", days=0), project_id, repo_id)
    await _save(sql_store, _commit("h2", days=4), project_id, repo_id)
    await _save(sql_store, _commit("h3", days=2, author=bob), project_id, repo_id)

    devs = await sql_store.list_repository_developers("alpha", "api")

    assert [(d.email, d.last_commit_at) for d in devs] == [
        ("bob@example.com", T0 + timedelta(days=2)),
        ("dev@example.com", T0 + timedelta(days=4)),
    ]


async def test_aggregates(sql_store):
    project_id, repo_id = await _seed(sql_store)
    bob = Author(name="Bob", email="bob@example.com")
    await _save(sql_store, _commit("h1", added=2, deleted=1, days=0), project_id, repo_id)
    await _save(sql_store, _commit("h2", added=40, deleted=20, days=10), project_id, repo_id)
    await _save(sql_store, _commit("h3", added=10, deleted=0, days=5, author=bob), project_id, repo_id)

    dev = await sql_store.developer_aggregate("alpha", "api", "dev@example.com")
    repo = await sql_store.repository_aggregate("alpha", "api")

    assert (dev.total_commits, dev.lines_added, dev.lines_deleted) == (2, 42, 21)
    assert (dev.small_commits, dev.large_commits) == (1, 1)
    assert (dev.first_commit_at, dev.last_commit_at) == (T0, T0 + timedelta(days=10))
    assert (repo.total_commits, repo.max_lines_added, repo.max_lines_deleted) == (3, 40, 20)
    assert (repo.small_commits, repo.large_commits) == (1, 1)


async def test_aggregate_without_commits(sql_store):
    await _seed(sql_store)

    agg = await sql_store.repository_aggregate("alpha", "api")

    assert agg.total_commits == 0
    assert agg.first_commit_at is None
