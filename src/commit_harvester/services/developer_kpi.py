"""Developer statistics and KPI scoring within one repository.

Each KPI term is the developer's value normalised by the matching
repository-wide value (floored at 1) and capped at 1.0, so the weighted
sum stays in ``[0, 1]``.
"""

from __future__ import annotations

from datetime import datetime

from commit_harvester.domain.entities import CommitAggregate, DeveloperRecord, DeveloperStats

_KPI_WEIGHTS: dict[str, float] = {
    "normal_commits": 0.30,
    "lines_added": 0.25,
    "lines_deleted": 0.25,
    "few_small_commits": 0.10,
    "large_commits": 0.05,
    "commit_frequency": 0.05,
}


def span_days(first: datetime | None, last: datetime | None) -> float:
    """Whole days between *first* and *last* (0 when either is missing)."""
    if first is None or last is None:
        return 0.0
    return float((last - first).days)


def fractional_span_days(first: datetime | None, last: datetime | None) -> float:
    """Days between *first* and *last*, including the partial last day."""
    if first is None or last is None:
        return 0.0
    return (last - first).total_seconds() / 86400


def commit_frequency(total_commits: int, first: datetime | None, last: datetime | None) -> float:
    """Commits per day over the developer's active span (at least one day)."""
    if total_commits == 0:
        return 0.0
    return total_commits / max(span_days(first, last), 1.0)


def _ratio(value: float, ceiling: float) -> float:
    return min(1.0, value / max(ceiling, 1.0))


def calculate_kpi(developer: CommitAggregate, repository: CommitAggregate) -> float:
    """Weighted, repository-normalised score for *developer*."""
    normal = developer.total_commits - developer.small_commits - developer.large_commits
    frequency = commit_frequency(
        developer.total_commits, developer.first_commit_at, developer.last_commit_at
    )
    repo_span = fractional_span_days(repository.first_commit_at, repository.last_commit_at)

    terms = {
        "normal_commits": _ratio(normal, repository.total_commits),
        "lines_added": _ratio(developer.lines_added, repository.max_lines_added),
        "lines_deleted": _ratio(developer.lines_deleted, repository.max_lines_deleted),
        "few_small_commits": 1.0 - _ratio(developer.small_commits, repository.small_commits),
        "large_commits": _ratio(developer.large_commits, repository.large_commits),
        "commit_frequency": _ratio(frequency, repo_span),
    }
    return sum(_KPI_WEIGHTS[name] * value for name, value in terms.items())


def build_developer_stats(
    developer: DeveloperRecord,
    own: CommitAggregate,
    repository: CommitAggregate,
) -> DeveloperStats:
    return DeveloperStats(
        id=developer.id,
        name=developer.name,
        email=developer.email,
        total_commits=own.total_commits,
        lines_added=own.lines_added,
        lines_deleted=own.lines_deleted,
        commit_frequency=commit_frequency(
            own.total_commits, own.first_commit_at, own.last_commit_at
        ),
        first_commit_at=own.first_commit_at,
        last_commit_at=own.last_commit_at,
        small_commits=own.small_commits,
        large_commits=own.large_commits,
        kpi=calculate_kpi(own, repository),
    )
