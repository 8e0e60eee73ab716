"""
Core types and protocols used across modules.

This module provides base types, enums, and protocol definitions that are
shared across the library to ensure consistency and type safety.
"""

from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should retry with backoff
                   (e.g., network timeouts, 429/503 errors)
        AUTH: Authentication failures requiring credential refresh
              (e.g., 401 errors, expired tokens, broken credentials)
        PERMANENT: Non-retriable failures that won't succeed on retry
                   (e.g., 404, validation errors, configuration issues)
        UNKNOWN: Unclassified errors, may retry conservatively
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


# Called with the new access token string every time the cached token changes.
TokenListener = Callable[[str], None]


@runtime_checkable
class TokenSource(Protocol):
    """
    Protocol for anything that can mint an access token.

    The result (or the awaited result) must be a mapping with a string
    ``access_token`` and a numeric ``expires_in`` (seconds).
    """

    def get_access_token(self) -> Mapping[str, Any] | Awaitable[Mapping[str, Any]]:
        ...


@runtime_checkable
class StatefulService(Protocol):
    """
    Protocol for service clients holding resources that must be released.

    App.delete() invokes ``delete()`` on every cached service conforming to
    this protocol and waits for all of them to settle.
    """

    def delete(self) -> Awaitable[None] | None:
        ...


__all__ = [
    "ErrorCategory",
    "TokenListener",
    "TokenSource",
    "StatefulService",
]
