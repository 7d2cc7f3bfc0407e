import pytest

from commit_harvester.infrastructure.sql_store import SqlMetricsStore


@pytest.fixture
async def sql_store(tmp_path):
    store = SqlMetricsStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'metrics.db'}")
    await store.create_all()
    yield store
    await store.dispose()
