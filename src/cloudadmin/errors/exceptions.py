"""
Unified exception hierarchy for cloudadmin.

Provides typed exceptions with retry classification so service clients can
decide whether to refresh credentials, back off, or fail fast.
"""

from enum import Enum

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from cloudadmin.types import ErrorCategory


class CloudAdminError(Exception):
    """
    Base exception for all cloudadmin errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    @property
    def should_refresh_auth(self) -> bool:
        return self.category == ErrorCategory.AUTH

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Application Errors
# =============================================================================


class AppErrorCode(Enum):
    """Error codes raised by the application lifecycle and token core."""

    APP_DELETED = "app-deleted"
    DUPLICATE_APP = "duplicate-app"
    INVALID_APP_NAME = "invalid-app-name"
    INVALID_APP_OPTIONS = "invalid-app-options"
    INVALID_CREDENTIAL = "invalid-credential"
    NO_APP = "no-app"


class AppError(CloudAdminError):
    """
    Error raised by App, AppRegistry and TokenManager.

    Configuration and lifecycle errors are permanent. Credential errors are
    classified as AUTH so callers can retry after the credential recovers,
    but they never request a forced token refresh.
    """

    def __init__(
        self,
        code: AppErrorCode,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.code = code

    @property
    def category(self) -> ErrorCategory:
        if self.code == AppErrorCode.INVALID_CREDENTIAL:
            return ErrorCategory.AUTH
        return ErrorCategory.PERMANENT

    @property
    def should_refresh_auth(self) -> bool:
        # Raised by the token fetch itself; forcing another fetch cannot help.
        return False

    @property
    def full_code(self) -> str:
        return f"app/{self.code.value}"


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthError(CloudAdminError):
    """Base class for authentication errors."""

    category = ErrorCategory.AUTH


class CredentialFetchError(AuthError):
    """A credential could not obtain an access token from its identity provider."""

    pass


# =============================================================================
# Network/Connection Errors (Transient)
# =============================================================================


class TransientError(CloudAdminError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class ThrottlingError(TransientError):
    """Rate limited (429) - should back off."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.retry_after = retry_after  # Seconds to wait if provided


# =============================================================================
# Permanent Errors (Don't Retry)
# =============================================================================


class PermanentError(CloudAdminError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Error Classification Utilities
# =============================================================================

# Markers for string-based detection (fallback for non-CloudAdminError exceptions)
AUTH_ERROR_MARKERS = frozenset(
    {
        "401",
        "unauthorized",
        "authentication",
        "token expired",
        "invalid token",
        "invalid_grant",
    }
)

TRANSIENT_ERROR_MARKERS = frozenset(
    {
        "429",
        "503",
        "502",
        "504",
        "timeout",
        "connection",
        "throttl",
        "rate limit",
        "temporarily unavailable",
        "service unavailable",
    }
)


def is_auth_error(exc: Exception) -> bool:
    """
    Check if exception is authentication-related.

    Returns True if this is an auth error that should trigger token refresh.
    """
    if isinstance(exc, CloudAdminError):
        return exc.category == ErrorCategory.AUTH

    error_str = str(exc).lower()
    return any(marker in error_str for marker in AUTH_ERROR_MARKERS)


def is_retryable_error(exc: Exception) -> bool:
    """
    Check if exception should be retried.

    Retryable errors include transient errors, auth errors (after a token
    refresh) and unknown errors. Permanent errors are not.
    """
    if isinstance(exc, CloudAdminError):
        return exc.is_retryable

    category = classify_exception(exc)
    return category in (
        ErrorCategory.TRANSIENT,
        ErrorCategory.AUTH,
        ErrorCategory.UNKNOWN,
    )


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code == 429:
        return ErrorCategory.TRANSIENT  # Rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    if isinstance(exc, CloudAdminError):
        return exc.category

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    if isinstance(exc, (TimeoutError, ConnectionError)):
        return ErrorCategory.TRANSIENT

    connection_markers = (
        "connectionerror",
        "connection refused",
        "connection reset",
        "server disconnected",
        "name resolution",
        "broken pipe",
    )
    if any(m in exc_type or m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "timeout" in exc_type or "timeout" in exc_str:
        return ErrorCategory.TRANSIENT

    if any(m in exc_str for m in AUTH_ERROR_MARKERS):
        return ErrorCategory.AUTH

    if "429" in exc_str or "throttl" in exc_str or "rate limit" in exc_str:
        return ErrorCategory.TRANSIENT

    if "503" in exc_str or "502" in exc_str or "504" in exc_str:
        return ErrorCategory.TRANSIENT

    if "403" in exc_str or "forbidden" in exc_str or "404" in exc_str:
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def error_for_status(
    status_code: int,
    body: str = "",
    retry_after: float | None = None,
    context: dict | None = None,
) -> CloudAdminError:
    """Build the typed exception matching a failed HTTP response."""
    context = dict(context or {})
    context["http_status"] = status_code
    message = f"HTTP {status_code}: {body[:200]}" if body else f"HTTP {status_code}"

    category = classify_http_status(status_code)
    if category == ErrorCategory.AUTH:
        return AuthError(message, context=context)
    if status_code == 429:
        return ThrottlingError(message, retry_after=retry_after, context=context)
    if category == ErrorCategory.TRANSIENT:
        return TransientError(message, context=context)
    if category == ErrorCategory.PERMANENT:
        return PermanentError(message, context=context)
    return CloudAdminError(message, context=context)


def wrap_exception(
    exc: Exception,
    default_class: type = CloudAdminError,
    context: dict | None = None,
) -> CloudAdminError:
    """Wrap a generic exception in appropriate CloudAdminError subclass."""
    if isinstance(exc, CloudAdminError):
        if context:
            exc.context.update(context)
        return exc

    category = classify_exception(exc)
    context = context or {}

    if category == ErrorCategory.AUTH:
        return AuthError(str(exc), cause=exc, context=context)
    if category == ErrorCategory.TRANSIENT:
        return TransientError(str(exc), cause=exc, context=context)
    if category == ErrorCategory.PERMANENT:
        return PermanentError(str(exc), cause=exc, context=context)

    return default_class(str(exc), cause=exc, context=context)
