"""Line-change statistics from unified diff text.

This is an approximation of change size: binary-file markers and
``\\ No newline at end of file`` lines are not special-cased.
"""

from __future__ import annotations


def parse_diff_stats(diff: str) -> tuple[int, int]:
    """Return ``(added, deleted)`` line counts for *diff*.

    A line is added when it starts with ``+`` but not ``+++`` (file header),
    and deleted when it starts with ``-`` but not ``---``.
    """
    added = deleted = 0
    # split on "\n" only: str.splitlines() also breaks on form feeds inside lines
    for line in diff.split("\n"):
        if line.startswith("+") and not line.startswith("+++"):
            added += 1
        elif line.startswith("-") and not line.startswith("---"):
            deleted += 1
    return added, deleted
