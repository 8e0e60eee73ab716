"""Tests for the exception hierarchy and classification helpers."""

import pytest

from cloudadmin.errors import (
    AppError,
    AppErrorCode,
    AuthError,
    CloudAdminError,
    CredentialFetchError,
    PermanentError,
    ThrottlingError,
    TransientError,
    classify_exception,
    classify_http_status,
    error_for_status,
    is_auth_error,
    is_retryable_error,
    wrap_exception,
)
from cloudadmin.types import ErrorCategory


class TestCloudAdminError:
    def test_str_includes_cause(self):
        error = CloudAdminError("outer", cause=ValueError("inner"))

        assert str(error) == "outer | Caused by: inner"

    def test_context_defaults_to_empty_dict(self):
        assert CloudAdminError("x").context == {}

    @pytest.mark.parametrize(
        "error, retryable, refresh",
        [
            (AuthError("x"), True, True),
            (CredentialFetchError("x"), True, True),
            (TransientError("x"), True, False),
            (ThrottlingError("x", retry_after=3), True, False),
            (PermanentError("x"), False, False),
            (CloudAdminError("x"), True, False),
        ],
    )
    def test_retry_flags(self, error, retryable, refresh):
        assert error.is_retryable is retryable
        assert error.should_refresh_auth is refresh


class TestAppError:
    @pytest.mark.parametrize(
        "code, expected",
        [
            (AppErrorCode.APP_DELETED, "app/app-deleted"),
            (AppErrorCode.DUPLICATE_APP, "app/duplicate-app"),
            (AppErrorCode.INVALID_APP_NAME, "app/invalid-app-name"),
            (AppErrorCode.INVALID_APP_OPTIONS, "app/invalid-app-options"),
            (AppErrorCode.INVALID_CREDENTIAL, "app/invalid-credential"),
            (AppErrorCode.NO_APP, "app/no-app"),
        ],
    )
    def test_full_code(self, code, expected):
        assert AppError(code, "message").full_code == expected

    def test_invalid_credential_is_auth(self):
        error = AppError(AppErrorCode.INVALID_CREDENTIAL, "bad credential")

        assert error.category == ErrorCategory.AUTH
        assert is_auth_error(error)
        assert error.is_retryable
        assert error.should_refresh_auth is False

    def test_lifecycle_errors_are_permanent(self):
        error = AppError(AppErrorCode.APP_DELETED, "gone")

        assert error.category == ErrorCategory.PERMANENT
        assert not is_retryable_error(error)

    def test_message_attribute(self):
        assert AppError(AppErrorCode.NO_APP, "missing").message == "missing"


class TestClassifyHttpStatus:
    @pytest.mark.parametrize(
        "status, category",
        [
            (401, ErrorCategory.AUTH),
            (429, ErrorCategory.TRANSIENT),
            (500, ErrorCategory.TRANSIENT),
            (503, ErrorCategory.TRANSIENT),
            (400, ErrorCategory.PERMANENT),
            (403, ErrorCategory.PERMANENT),
            (404, ErrorCategory.PERMANENT),
            (200, ErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, status, category):
        assert classify_http_status(status) == category


class TestErrorForStatus:
    def test_unauthorized(self):
        error = error_for_status(401, "expired")

        assert isinstance(error, AuthError)
        assert error.message == "HTTP 401: expired"
        assert error.context["http_status"] == 401

    def test_throttled_keeps_retry_after(self):
        error = error_for_status(429, retry_after=12.0)

        assert isinstance(error, ThrottlingError)
        assert error.retry_after == 12.0
        assert error.message == "HTTP 429"

    def test_server_error(self):
        assert isinstance(error_for_status(502), TransientError)

    def test_client_error(self):
        error = error_for_status(404, context={"http_url": "https://api.example.com/x"})

        assert isinstance(error, PermanentError)
        assert error.context == {"http_url": "https://api.example.com/x", "http_status": 404}

    def test_body_truncated(self):
        error = error_for_status(500, "x" * 1000)

        assert len(error.message) == len("HTTP 500: ") + 200


class TestClassifyException:
    @pytest.mark.parametrize(
        "exc, category",
        [
            (TimeoutError(), ErrorCategory.TRANSIENT),
            (ConnectionResetError(), ErrorCategory.TRANSIENT),
            (RuntimeError("Server disconnected"), ErrorCategory.TRANSIENT),
            (RuntimeError("401 Unauthorized"), ErrorCategory.AUTH),
            (RuntimeError("invalid_grant"), ErrorCategory.AUTH),
            (RuntimeError("HTTP 503"), ErrorCategory.TRANSIENT),
            (RuntimeError("403 Forbidden"), ErrorCategory.PERMANENT),
            (RuntimeError("something odd"), ErrorCategory.UNKNOWN),
            (PermanentError("x"), ErrorCategory.PERMANENT),
        ],
    )
    def test_categories(self, exc, category):
        assert classify_exception(exc) == category


class TestWrapException:
    def test_passes_through_cloudadmin_errors(self):
        error = TransientError("x")

        assert wrap_exception(error, context={"attempt": 1}) is error
        assert error.context == {"attempt": 1}

    def test_wraps_transient(self):
        cause = TimeoutError("timed out")

        wrapped = wrap_exception(cause)

        assert isinstance(wrapped, TransientError)
        assert wrapped.cause is cause

    def test_wraps_unknown_with_default_class(self):
        wrapped = wrap_exception(RuntimeError("odd"))

        assert type(wrapped) is CloudAdminError
