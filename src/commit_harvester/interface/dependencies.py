"""FastAPI dependency injection wiring.

Shared resources live on ``app.state`` and are created in the lifespan
handler; request handlers reach them through the ``get_*`` dependencies.
"""

from __future__ import annotations

import httpx
from fastapi import FastAPI, Request

from commit_harvester.infrastructure.config import Settings
from commit_harvester.infrastructure.source_rest_adapter import SourceRestAdapter
from commit_harvester.infrastructure.sql_store import SqlMetricsStore
from commit_harvester.interface.scheduler import CollectionScheduler
from commit_harvester.services.collect_metrics import CollectMetricsUseCase
from commit_harvester.services.metrics_query import MetricsQueryService


def build_use_case(
    settings: Settings, client: httpx.AsyncClient, store: SqlMetricsStore
) -> CollectMetricsUseCase:
    """Wire the collect-metrics use case with its concrete adapters."""
    source = SourceRestAdapter(
        client,
        settings.source_base_url,
        username=settings.source_username,
        password=settings.source_password.get_secret_value(),
        commit_timeout=settings.commit_fetch_timeout_seconds,
    )
    return CollectMetricsUseCase(
        source,
        store,
        max_concurrent_branches=settings.max_concurrent_branches,
        commit_cap=settings.max_commits_per_branch,
        pacing_seconds=settings.commit_pacing_seconds,
    )


async def startup(app: FastAPI) -> None:
    """Initialise shared resources; called from the lifespan context manager."""
    settings: Settings = app.state.settings

    client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.source_timeout_seconds),
        verify=settings.source_verify_tls,
    )
    store = SqlMetricsStore.from_url(settings.database_url, echo=settings.database_echo)
    await store.create_all()

    scheduler = CollectionScheduler(
        build_use_case(settings, client, store),
        interval_seconds=settings.collection_interval_minutes * 60,
    )
    if settings.collect_on_startup:
        scheduler.start()

    app.state.http_client = client
    app.state.store = store
    app.state.scheduler = scheduler


async def shutdown(app: FastAPI) -> None:
    """Release shared resources."""
    scheduler: CollectionScheduler | None = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        await scheduler.stop()

    client: httpx.AsyncClient | None = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()

    store: SqlMetricsStore | None = getattr(app.state, "store", None)
    if store is not None:
        await store.dispose()


def get_query_service(request: Request) -> MetricsQueryService:
    return MetricsQueryService(request.app.state.store)


def get_scheduler(request: Request) -> CollectionScheduler:
    return request.app.state.scheduler
