"""API routes: thin controllers that delegate to the use cases."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from commit_harvester.domain.exceptions import ResourceNotFoundError
from commit_harvester.interface.dependencies import get_query_service, get_scheduler
from commit_harvester.interface.scheduler import CollectionScheduler
from commit_harvester.interface.schemas import (
    CollectionReportResponse,
    CollectionTriggeredResponse,
    DeveloperResponse,
    DeveloperStatsResponse,
    ProjectResponse,
    ProjectWithRepositoriesResponse,
    RepositoryResponse,
)
from commit_harvester.services.metrics_query import MetricsQueryService

router = APIRouter(prefix="/api")

_NOT_FOUND = {404: {"description": "Project, repository or developer not found"}}


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    queries: MetricsQueryService = Depends(get_query_service),
) -> list[ProjectResponse] | Response:
    """List every collected project."""
    projects = await queries.list_projects()
    if not projects:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get(
    "/projects/{project}",
    response_model=ProjectWithRepositoriesResponse,
    responses=_NOT_FOUND,
)
async def get_project(
    project: str,
    queries: MetricsQueryService = Depends(get_query_service),
) -> ProjectWithRepositoriesResponse:
    """Return one project together with its repositories."""
    return ProjectWithRepositoriesResponse.model_validate(await queries.get_project(project))


@router.get(
    "/projects/{project}/repos",
    response_model=list[RepositoryResponse],
    responses=_NOT_FOUND,
)
async def list_repositories(
    project: str,
    queries: MetricsQueryService = Depends(get_query_service),
) -> list[RepositoryResponse] | Response:
    repos = await queries.list_repositories(project)
    if not repos:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [RepositoryResponse.model_validate(r) for r in repos]


@router.get(
    "/projects/{project}/repos/{repo}/developers",
    response_model=list[DeveloperResponse],
    responses=_NOT_FOUND,
)
async def list_developers(
    project: str,
    repo: str,
    queries: MetricsQueryService = Depends(get_query_service),
) -> list[DeveloperResponse] | Response:
    """Developers who committed to the repository, with their last commit time."""
    developers = await queries.list_developers(project, repo)
    if not developers:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [DeveloperResponse.model_validate(d) for d in developers]


@router.get(
    "/projects/{project}/repos/{repo}/developers/{email}",
    response_model=DeveloperStatsResponse,
    responses=_NOT_FOUND,
)
async def developer_stats(
    project: str,
    repo: str,
    email: str,
    queries: MetricsQueryService = Depends(get_query_service),
) -> DeveloperStatsResponse:
    """Commit statistics and KPI of one developer inside one repository."""
    stats = await queries.developer_stats(project, repo, email)
    return DeveloperStatsResponse.model_validate(stats)


@router.post(
    "/collections",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=CollectionTriggeredResponse,
    responses={409: {"description": "A collection pass is already running"}},
)
async def trigger_collection(
    scheduler: CollectionScheduler = Depends(get_scheduler),
) -> CollectionTriggeredResponse:
    """Start a collection pass in the background."""
    scheduler.trigger()
    return CollectionTriggeredResponse()


@router.get(
    "/collections/latest",
    response_model=CollectionReportResponse,
    responses={404: {"description": "No collection pass has finished yet"}},
)
async def latest_collection(
    scheduler: CollectionScheduler = Depends(get_scheduler),
) -> CollectionReportResponse:
    report = scheduler.latest_report
    if report is None:
        raise ResourceNotFoundError("No collection pass has finished yet.")
    return CollectionReportResponse.model_validate(report)
