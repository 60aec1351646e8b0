from __future__ import annotations


class SearchError(Exception):
    """Base class for search engine errors."""

    user_message = "Search failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class NetworkFailure(SearchError):
    """A collaborator (directory, places provider) could not be reached."""

    user_message = "Search failed. Please check your connection and try again."


class LocationPermissionDenied(SearchError):
    user_message = "Location access was denied"


class InvalidFilter(SearchError, ValueError):
    """Raised before any I/O when a filter set does not validate."""

    user_message = "Invalid search filter"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class CacheCorruption(SearchError):
    """A persisted cache or history payload could not be decoded."""

    user_message = "Cached data is unreadable"


class Cancelled(SearchError):
    """A request was superseded by a newer one. Never surfaced to callers."""

    user_message = "Request cancelled"
