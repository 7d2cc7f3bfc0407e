"""Domain exception hierarchy.

Adapters translate library errors into these at the boundary.  Services catch
them at the smallest enclosing unit of work (commit, branch, repository,
project); only the read API lets them reach the interface layer, where they
map to HTTP status codes.
"""

from __future__ import annotations


class CommitHarvesterError(Exception):
    """Base exception for the entire application."""


# ── Remote source errors ────────────────────────────────────────────────────


class SourceRequestError(CommitHarvesterError):
    """A call to the code-hosting service failed (network, timeout, non-2xx)."""


class SourceNotFoundError(SourceRequestError):
    """The requested resource does not exist on the source (404)."""


class SourceAccessDeniedError(SourceRequestError):
    """The source rejected our credentials (401 / 403)."""


class SourceRateLimitError(SourceRequestError):
    """The source is throttling us (429)."""


class PayloadDecodeError(CommitHarvesterError):
    """A source payload could not be parsed or decoded."""


# ── Storage errors ──────────────────────────────────────────────────────────


class PersistenceError(CommitHarvesterError):
    """A statement against the relational store failed."""


class ResourceNotFoundError(CommitHarvesterError):
    """A stored project, repository or developer does not exist."""


# ── Scheduling ──────────────────────────────────────────────────────────────


class CollectionInProgressError(CommitHarvesterError):
    """A collection pass is already running."""
