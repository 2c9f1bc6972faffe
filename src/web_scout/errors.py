"""Custom exceptions for the scouting domain."""

from __future__ import annotations

from typing import Any


class ScoutError(Exception):
    """Base exception for this project."""


class ConfigError(ScoutError):
    """Raised when runtime configuration is invalid."""


class ValidationError(ScoutError):
    """Raised when an input URL, email, or domain is malformed."""


class BudgetExceededError(ScoutError):
    """Raised when a per-request wall-clock budget is used up.

    ``partial`` carries whatever was gathered before the budget ran out.
    """

    def __init__(self, message: str, *, partial: Any = None, retry_after: int = 5) -> None:
        super().__init__(message)
        self.partial = partial
        self.retry_after = retry_after


class StateError(ScoutError):
    """Raised when a write-once record is written twice."""


class FetchError(ScoutError):
    """Raised when fetching a URL fails."""

    kind = "network"

    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    """DNS or connection failure."""

    kind = "network"


class FetchTimeoutError(FetchError):
    """The request did not finish within its timeout."""

    kind = "timeout"


class HttpStatusError(FetchError):
    """The server answered with an error status."""

    kind = "status"

    def __init__(self, message: str, *, url: str = "", status_code: int = 0) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code
