"""
Error types and HTTP helpers for common error patterns.

Pipeline code raises the FeedNotesError family; routes turn missing
resources into 404s with the require_* helpers.
"""

from typing import TypeVar

from fastapi import HTTPException

T = TypeVar("T")


class FeedNotesError(Exception):
    """Base class for pipeline errors."""


class FeedFetchError(FeedNotesError):
    """Raised when a feed cannot be retrieved (network or HTTP status)."""


class FeedFormatError(FeedNotesError):
    """Raised when feed content is not parseable RSS 2.0 or Atom."""


class StorageError(FeedNotesError):
    """Raised when the storage backend cannot complete an operation."""


def require_resource(resource: T | None, detail: str = "Resource not found") -> T:
    """
    Raise 404 if resource is None, otherwise return the resource.

    Usage:
        feed = require_resource(find_feed(settings, index), "Feed not found")
    """
    if resource is None:
        raise HTTPException(status_code=404, detail=detail)
    return resource


def require_feed(feed: T | None) -> T:
    """Raise 404 if feed is None."""
    return require_resource(feed, "Feed not found")


def require_group(group: T | None) -> T:
    """Raise 404 if group is None."""
    return require_resource(group, "Group not found")
