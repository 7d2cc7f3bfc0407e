"""Turn a commit hash into a persistable :class:`CommitWithStats`."""

from __future__ import annotations

import logging

from commit_harvester.domain.entities import (
    UNKNOWN_AUTHOR_EMAIL,
    UNKNOWN_AUTHOR_NAME,
    Author,
    CommitWithStats,
    Skipped,
)
from commit_harvester.domain.exceptions import CommitHarvesterError
from commit_harvester.domain.ports.source_client import SourceClient
from commit_harvester.services.diff_stats import parse_diff_stats

logger = logging.getLogger(__name__)

SENTINEL_AUTHOR = Author(name=UNKNOWN_AUTHOR_NAME, email=UNKNOWN_AUTHOR_EMAIL)


def normalize_author(author: Author) -> Author:
    """Substitute the sentinel identity only when name and email are both empty."""
    if author.is_anonymous:
        return SENTINEL_AUTHOR
    return author


async def resolve_commit(
    source: SourceClient, project: str, repo: str, commit_hash: str
) -> CommitWithStats | Skipped:
    """Fetch metadata and diff for *commit_hash* and compute its line stats.

    Any fetch or decode failure yields :class:`Skipped`; nothing is returned
    half-filled.
    """
    try:
        full = await source.get_commit(project, repo, commit_hash)
    except CommitHarvesterError as exc:
        logger.warning("Skip full commit %s/%s %s: %s", project, repo, commit_hash, exc)
        return Skipped(f"full commit {commit_hash}: {exc}")

    try:
        diff = await source.get_commit_diff(project, repo, commit_hash)
    except CommitHarvesterError as exc:
        logger.warning("Skip diff for %s/%s %s: %s", project, repo, commit_hash, exc)
        return Skipped(f"diff {commit_hash}: {exc}")

    added, deleted = parse_diff_stats(diff)
    return CommitWithStats(
        hash=commit_hash,
        author=normalize_author(full.author),
        message=full.message,
        created_at=full.created_at,
        lines_added=added,
        lines_deleted=deleted,
    )
