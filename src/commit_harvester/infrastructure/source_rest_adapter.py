"""Code-hosting REST API adapter, implements the SourceClient port.

Every endpoint wraps its payload in a ``{"data": ...}`` envelope; the commit
listing adds ``{"page": {"next_cursor": ...}}`` and the diff endpoint returns
base64 content under ``data.content``.
"""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from commit_harvester.domain.entities import (
    Author,
    Branch,
    CommitListItem,
    CommitPage,
    FullCommit,
    ProjectDetails,
    RepositoryDetails,
)
from commit_harvester.domain.exceptions import (
    PayloadDecodeError,
    SourceAccessDeniedError,
    SourceNotFoundError,
    SourceRateLimitError,
    SourceRequestError,
)

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_TIMEOUT = 80.0


class SourceRestAdapter:
    """Concrete SourceClient backed by the code-hosting v2 REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        username: str = "",
        password: str = "",
        commit_timeout: float = DEFAULT_COMMIT_TIMEOUT,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(username, password) if username else None
        self._commit_timeout = commit_timeout
        self._headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": "commit-harvester/1.0",
        }

    # ── Projects & repositories ─────────────────────────────────────────

    async def list_projects(self) -> list[str]:
        """GET /projects → [name]."""
        body = await self._get_json("/projects")
        return _names(body, "projects")

    async def get_project(self, project: str) -> ProjectDetails:
        """GET /projects/{project} → ProjectDetails."""
        data = await self._get_data(f"/projects/{_seg(project)}")
        return ProjectDetails(
            name=_as_str(data.get("name"), "project name") or project,
            full_name=_as_str(data.get("full_name"), "project full_name"),
            description=_as_str(data.get("description"), "project description"),
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )

    async def list_repositories(self, project: str) -> list[str]:
        """GET /projects/{project}/repos → [name]."""
        body = await self._get_json(f"/projects/{_seg(project)}/repos")
        return _names(body, "repos")

    async def get_repository(self, project: str, repo: str) -> RepositoryDetails:
        """GET /projects/{project}/repos/{repo} → RepositoryDetails."""
        data = await self._get_data(f"/projects/{_seg(project)}/repos/{_seg(repo)}")
        return RepositoryDetails(
            name=_as_str(data.get("name"), "repository name") or repo,
            description=_as_str(data.get("description"), "repository description"),
        )

    async def list_branches(self, project: str, repo: str) -> list[Branch]:
        """GET /projects/{project}/repos/{repo}/branches → [Branch]."""
        body = await self._get_json(f"/projects/{_seg(project)}/repos/{_seg(repo)}/branches")
        return [Branch(name=name) for name in _names(body, "branches")]

    # ── Commits ─────────────────────────────────────────────────────────

    async def list_commits_page(
        self, project: str, repo: str, branch: str, cursor: str = ""
    ) -> CommitPage:
        """GET /projects/{project}/repos/{repo}/commits?rev=&cursor= → CommitPage."""
        params: dict[str, str] = {}
        if branch:
            params["rev"] = branch
        if cursor:
            params["cursor"] = cursor

        body = await self._get_json(
            f"/projects/{_seg(project)}/repos/{_seg(repo)}/commits", params=params
        )
        items = _as_list(body, "commits")
        page = _as_dict(body.get("page"), "commits page")
        return CommitPage(
            items=[
                CommitListItem(hash=_as_str(item.get("hash"), "commit hash")) for item in items
            ],
            next_cursor=_as_str(page.get("next_cursor"), "next_cursor"),
        )

    async def get_commit(self, project: str, repo: str, commit_hash: str) -> FullCommit:
        """GET /projects/{project}/repos/{repo}/commits/{hash} → FullCommit."""
        data = await self._get_data(
            f"/projects/{_seg(project)}/repos/{_seg(repo)}/commits/{_seg(commit_hash)}",
            timeout=self._commit_timeout,
        )
        author = _as_dict(data.get("author"), f"author of {commit_hash}")
        created_at = _parse_time(data.get("created_at"))
        if created_at is None:
            raise PayloadDecodeError(f"Commit {commit_hash} has no created_at")
        return FullCommit(
            hash=_as_str(data.get("hash"), "commit hash") or commit_hash,
            author=Author(
                name=_as_str(author.get("name"), "author name"),
                email=_as_str(author.get("email"), "author email"),
            ),
            message=_as_str(data.get("message"), "commit message"),
            created_at=created_at,
        )

    async def get_commit_diff(self, project: str, repo: str, commit_hash: str) -> str:
        """GET /projects/{project}/repos/{repo}/commits/{hash}/diff → decoded text."""
        data = await self._get_data(
            f"/projects/{_seg(project)}/repos/{_seg(repo)}/commits/{_seg(commit_hash)}/diff",
            timeout=self._commit_timeout,
        )
        content = _as_str(data.get("content"), f"diff content of {commit_hash}")
        try:
            # line breaks inside the encoded block are allowed
            raw = base64.b64decode("".join(content.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise PayloadDecodeError(f"Invalid base64 diff for {commit_hash}: {exc}") from exc
        return raw.decode("utf-8", errors="replace")

    # ── HTTP plumbing ───────────────────────────────────────────────────

    async def _get_data(self, endpoint: str, *, timeout: float | None = None) -> dict[str, Any]:
        body = await self._get_json(endpoint, timeout=timeout)
        data = body.get("data")
        if not isinstance(data, dict):
            raise PayloadDecodeError(f"Expected an object under 'data' for {endpoint}")
        return data

    async def _get_json(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        resp = await self._api_get(endpoint, params=params, timeout=timeout)
        try:
            body = resp.json()
        except ValueError as exc:
            raise PayloadDecodeError(f"Invalid JSON from {endpoint}: {exc}") from exc
        if not isinstance(body, dict):
            raise PayloadDecodeError(f"Expected a JSON object from {endpoint}")
        return body

    async def _api_get(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Perform an API GET request with error translation."""
        url = f"{self._base_url}{endpoint}"
        kwargs: dict[str, Any] = {"headers": self._headers, "params": params}
        if self._auth is not None:
            kwargs["auth"] = self._auth
        if timeout is not None:
            kwargs["timeout"] = timeout
        logger.debug("GET %s params=%s", url, params)

        try:
            resp = await self._client.get(url, **kwargs)
        except httpx.TimeoutException as exc:
            raise SourceRequestError(f"Timed out fetching {url}: {exc!r}") from exc
        except httpx.HTTPError as exc:
            raise SourceRequestError(f"Network error fetching {url}: {exc}") from exc

        if 200 <= resp.status_code < 300:
            return resp

        if resp.status_code == 404:
            raise SourceNotFoundError(f"Not found: {url}")
        if resp.status_code in (401, 403):
            raise SourceAccessDeniedError(
                f"Access denied (HTTP {resp.status_code}) for {url}. "
                "Check SOURCE_USERNAME / SOURCE_PASSWORD."
            )
        if resp.status_code == 429:
            raise SourceRateLimitError(f"Rate limit exceeded (HTTP 429) for {url}")

        raise SourceRequestError(
            f"Source API returned HTTP {resp.status_code} for {url}: {resp.text[:200]}"
        )


# ── Helpers ─────────────────────────────────────────────────────────────────


def _seg(value: str) -> str:
    """Percent-encode a single path segment."""
    return quote(value, safe="")


def _as_list(body: dict[str, Any], what: str) -> list[dict[str, Any]]:
    """Extract the item list from a ``{"data": [...]}`` body (null counts as empty)."""
    value = body.get("data")
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadDecodeError(f"Expected a list of {what}")
    return [item for item in value if isinstance(item, dict)]


def _names(body: dict[str, Any], what: str) -> list[str]:
    """Non-empty ``name`` fields of a listing."""
    names = (_as_str(item.get("name"), f"{what} name") for item in _as_list(body, what))
    return [name for name in names if name]


def _as_dict(value: Any, what: str) -> dict[str, Any]:
    """Nested payload object; null counts as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PayloadDecodeError(f"Expected an object for {what}, got {type(value).__name__}")
    return value


def _as_str(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PayloadDecodeError(f"Expected a string for {what}, got {type(value).__name__}")
    return value


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    if not isinstance(value, str):
        raise PayloadDecodeError(f"Expected an ISO-8601 timestamp, got {value!r}")
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise PayloadDecodeError(f"Invalid timestamp {value!r}") from exc
