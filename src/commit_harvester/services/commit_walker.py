"""Cursor-driven walk over a branch's commit listing."""

from __future__ import annotations

import logging

from commit_harvester.domain.entities import CommitListItem
from commit_harvester.domain.exceptions import CommitHarvesterError
from commit_harvester.domain.ports.source_client import SourceClient

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_CAP = 100_000


async def walk_commits(
    source: SourceClient,
    project: str,
    repo: str,
    branch: str,
    *,
    cap: int = DEFAULT_COMMIT_CAP,
) -> list[CommitListItem]:
    """Collect every commit-list item of *branch*, page by page.

    Stops when a page request fails (the items gathered so far are returned),
    when the next cursor is empty, or once more than *cap* items have been
    accumulated.  Failed pages are never retried.
    """
    commits: list[CommitListItem] = []
    cursor = ""
    page_count = 0

    while True:
        try:
            page = await source.list_commits_page(project, repo, branch, cursor)
        except CommitHarvesterError as exc:
            logger.warning(
                "Skip commits page for %s/%s@%s (cursor=%r): %s",
                project, repo, branch, cursor, exc,
            )
            break

        commits.extend(page.items)
        page_count += 1
        logger.info(
            "%s/%s@%s page %d: %d commits (total: %d)",
            project, repo, branch, page_count, len(page.items), len(commits),
        )

        if not page.next_cursor:
            break
        cursor = page.next_cursor

        if len(commits) > cap:
            logger.warning(
                "Too many commits (>%d), stopping walk of %s/%s@%s",
                cap, project, repo, branch,
            )
            break

    return commits
