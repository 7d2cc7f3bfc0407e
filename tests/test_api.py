import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from commit_harvester.domain.entities import (
    BranchReport,
    CollectionReport,
    CommitAggregate,
    DeveloperRecord,
    ProjectRecord,
    ProjectReport,
    RepositoryRecord,
    RepositoryReport,
    Skipped,
)
from commit_harvester.domain.exceptions import CollectionInProgressError, ResourceNotFoundError
from commit_harvester.infrastructure.config import Settings
from commit_harvester.interface.app import create_app
from commit_harvester.interface.dependencies import get_query_service, get_scheduler
from commit_harvester.services.metrics_query import MetricsQueryService

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeReader:
    def __init__(self) -> None:
        self.projects: dict[str, ProjectRecord] = {}
        self.developers: dict[tuple[str, str], list[DeveloperRecord]] = {}
        self.aggregates: dict[tuple[str, str, str | None], CommitAggregate] = {}

    async def list_projects(self):
        return sorted(self.projects.values(), key=lambda p: p.name)

    async def get_project(self, name):
        if name not in self.projects:
            raise ResourceNotFoundError(f"Project {name!r} not found.")
        return self.projects[name]

    async def list_repository_developers(self, project, repo):
        if (project, repo) not in self.developers:
            raise ResourceNotFoundError(f"Repository {project}/{repo} not found.")
        return self.developers[(project, repo)]

    async def get_developer(self, email):
        for devs in self.developers.values():
            for dev in devs:
                if dev.email == email:
                    return dev
        raise ResourceNotFoundError(f"Developer {email!r} not found.")

    async def developer_aggregate(self, project, repo, email):
        return self.aggregates.get((project, repo, email), CommitAggregate())

    async def repository_aggregate(self, project, repo):
        return self.aggregates.get((project, repo, None), CommitAggregate())


class FakeScheduler:
    def __init__(self) -> None:
        self.running = False
        self.latest_report: CollectionReport | None = None
        self.triggered = 0

    def trigger(self):
        if self.running:
            raise CollectionInProgressError("A collection pass is already running.")
        self.triggered += 1


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def client(reader, scheduler):
    app = create_app(Settings(collect_on_startup=False))
    app.dependency_overrides[get_query_service] = lambda: MetricsQueryService(reader)
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    # no context manager: the lifespan (database, http client) is not started
    return TestClient(app)


def _seed(reader):
    repo = RepositoryRecord(id=uuid.uuid4(), name="api", description="the api", active_branches=2)
    reader.projects["alpha"] = ProjectRecord(
        id=uuid.uuid4(), name="alpha", full_name="Alpha", description="", repositories=[repo]
    )
    dev = DeveloperRecord(
        id=uuid.uuid4(), name="Dev", email="dev@example.com", last_commit_at=T0
    )
    reader.developers[("alpha", "api")] = [dev]
    reader.aggregates[("alpha", "api", "dev@example.com")] = CommitAggregate(
        total_commits=4,
        lines_added=40,
        lines_deleted=10,
        small_commits=1,
        first_commit_at=T0,
        last_commit_at=T0 + timedelta(days=2),
    )
    reader.aggregates[("alpha", "api", None)] = CommitAggregate(
        total_commits=8,
        max_lines_added=30,
        max_lines_deleted=10,
        small_commits=2,
        first_commit_at=T0,
        last_commit_at=T0 + timedelta(days=8),
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_empty_project_list_is_no_content(client):
    resp = client.get("/api/projects")

    assert resp.status_code == 204
    assert resp.content == b""


def test_list_and_get_project(client, reader):
    _seed(reader)

    listed = client.get("/api/projects").json()
    detail = client.get("/api/projects/alpha").json()

    assert [p["name"] for p in listed] == ["alpha"]
    assert detail["full_name"] == "Alpha"
    assert detail["repositories"][0]["active_branches"] == 2


def test_unknown_project_uses_error_envelope(client):
    resp = client.get("/api/projects/missing")

    assert resp.status_code == 404
    assert resp.json() == {"status": "error", "message": "Project 'missing' not found."}


def test_list_repositories(client, reader):
    _seed(reader)

    repos = client.get("/api/projects/alpha/repos").json()

    assert [r["name"] for r in repos] == ["api"]


def test_project_without_repositories_is_no_content(client, reader):
    reader.projects["empty"] = ProjectRecord(
        id=uuid.uuid4(), name="empty", full_name="", description=""
    )

    assert client.get("/api/projects/empty/repos").status_code == 204


def test_list_developers(client, reader):
    _seed(reader)

    devs = client.get("/api/projects/alpha/repos/api/developers").json()

    assert devs[0]["email"] == "dev@example.com"
    assert devs[0]["last_commit_at"].startswith("2024-01-01")


def test_developer_stats(client, reader):
    _seed(reader)

    resp = client.get("/api/projects/alpha/repos/api/developers/dev@example.com")

    assert resp.status_code == 200
    body = resp.json()
    assert (body["total_commits"], body["lines_added"], body["small_commits"]) == (4, 40, 1)
    assert body["commit_frequency"] == pytest.approx(2.0)
    assert 0.0 <= body["kpi"] <= 1.0


def test_unknown_developer(client, reader):
    _seed(reader)

    resp = client.get("/api/projects/alpha/repos/api/developers/ghost@example.com")

    assert resp.status_code == 404
    assert resp.json()["status"] == "error"


def test_trigger_collection(client, scheduler):
    resp = client.post("/api/collections")

    assert resp.status_code == 202
    assert resp.json() == {"status": "accepted"}
    assert scheduler.triggered == 1


def test_trigger_while_running_conflicts(client, scheduler):
    scheduler.running = True

    resp = client.post("/api/collections")

    assert resp.status_code == 409
    assert resp.json()["status"] == "error"


def test_latest_collection_before_any_pass(client):
    assert client.get("/api/collections/latest").status_code == 404


def test_latest_collection_report(client, scheduler):
    report = CollectionReport(started_at=T0, finished_at=T0 + timedelta(minutes=1))
    report.projects.append(
        ProjectReport(
            name="alpha",
            repositories=[
                RepositoryReport(
                    name="api",
                    active_branches=1,
                    branches=[
                        BranchReport(
                            branch="main",
                            listed=3,
                            saved=2,
                            already_stored=1,
                            skipped=[Skipped("diff abc: boom")],
                        )
                    ],
                )
            ],
        )
    )
    scheduler.latest_report = report

    body = client.get("/api/collections/latest").json()

    assert body["commits_saved"] == 2
    branch = body["projects"][0]["repositories"][0]["branches"][0]
    assert branch["skipped"] == [{"reason": "diff abc: boom"}]
