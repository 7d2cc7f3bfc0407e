"""End-to-end collection passes against a real (SQLite) database."""

from sqlalchemy import func, select

from commit_harvester.domain.entities import Author
from commit_harvester.infrastructure.tables import commits, developers, projects, repositories
from commit_harvester.services.collect_metrics import CollectMetricsUseCase

from fakes import FakeSource

TABLES = {
    "projects": projects,
    "repositories": repositories,
    "developers": developers,
    "commits": commits,
}


async def _row_counts(store):
    async with store._engine.connect() as conn:
        return {
            name: (await conn.execute(select(func.count()).select_from(table))).scalar_one()
            for name, table in TABLES.items()
        }


def _source():
    source = FakeSource()
    source.add_project("alpha")
    source.add_repository("alpha", "api", branches=["main", "dev", "release"])
    source.add_history("alpha", "api", "main", ["m1", "m2", "m3"])
    source.add_history("alpha", "api", "dev", ["m3", "d1"], author=Author(name="Alice", email=""))
    source.add_history("alpha", "api", "release", ["r1"], author=Author(name="", email=""))
    source.add_project("beta")
    source.add_repository("beta", "tools", branches=["main"])
    source.add_history("beta", "tools", "main", ["t1"])
    return source


def _use_case(store):
    return CollectMetricsUseCase(_source(), store, max_concurrent_branches=1, pacing_seconds=0)


async def test_two_passes_yield_identical_row_counts(sql_store):
    use_case = _use_case(sql_store)

    await use_case.execute()
    first = await _row_counts(sql_store)
    await use_case.execute()
    second = await _row_counts(sql_store)

    assert first == second == {"projects": 2, "repositories": 2, "developers": 3, "commits": 6}


async def test_author_identities_are_persisted_as_normalized(sql_store):
    await _use_case(sql_store).execute()

    async with sql_store._engine.connect() as conn:
        rows = (await conn.execute(select(developers.c.name, developers.c.email))).all()

    assert set(rows) == {
        ("Dev", "dev@example.com"),
        ("Alice", ""),
        ("Unknown", "unknown@example.com"),
    }


async def test_collected_data_is_readable(sql_store):
    await _use_case(sql_store).execute()

    project = await sql_store.get_project("alpha")
    developers_ = await sql_store.list_repository_developers("alpha", "api")

    assert [(r.name, r.active_branches) for r in project.repositories] == [("api", 3)]
    assert len(developers_) == 3
