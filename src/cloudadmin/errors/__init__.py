"""
Error classification and exception hierarchy.

Provides:
- AppError and AppErrorCode for lifecycle, configuration and credential errors
- CloudAdminError hierarchy for typed, retry-classified exceptions
- Classification utilities for error handling
"""

from cloudadmin.errors.exceptions import (
    AppError,
    AppErrorCode,
    AuthError,
    # Base classes
    CloudAdminError,
    CredentialFetchError,
    PermanentError,
    ThrottlingError,
    TransientError,
    # Classification utilities
    classify_exception,
    classify_http_status,
    error_for_status,
    is_auth_error,
    is_retryable_error,
    wrap_exception,
)
from cloudadmin.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    "AppErrorCode",
    # Base classes
    "CloudAdminError",
    "AppError",
    "AuthError",
    "CredentialFetchError",
    "TransientError",
    "ThrottlingError",
    "PermanentError",
    # Classification utilities
    "is_auth_error",
    "is_retryable_error",
    "classify_http_status",
    "classify_exception",
    "error_for_status",
    "wrap_exception",
]
