"""Tests for RetryConfig and with_retry_async."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cloudadmin.errors import AuthError, PermanentError, ThrottlingError, TransientError
from cloudadmin.resilience.retry import DEFAULT_RETRY, RetryConfig, with_retry_async


class TestRetryConfig:
    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            RetryConfig(max_attempts=0)

    def test_delay_uses_equal_jitter(self):
        config = RetryConfig(base_delay=2.0, max_delay=100.0)

        for attempt in range(4):
            base = 2.0 * (2**attempt)
            assert base / 2 <= config.get_delay(attempt) <= base

    def test_delay_capped(self):
        config = RetryConfig(base_delay=10.0, max_delay=5.0)

        assert config.get_delay(3) == 5.0

    def test_delay_honors_retry_after(self):
        config = RetryConfig(max_delay=30.0)

        assert config.get_delay(0, ThrottlingError("slow down", retry_after=7)) == 7

    def test_retry_after_capped_by_max_delay(self):
        config = RetryConfig(max_delay=30.0)

        assert config.get_delay(0, ThrottlingError("slow down", retry_after=120)) == 30.0

    def test_should_retry_stops_at_last_attempt(self):
        config = RetryConfig(max_attempts=3)

        assert config.should_retry(TransientError("x"), 1)
        assert not config.should_retry(TransientError("x"), 2)

    def test_should_not_retry_permanent(self):
        assert not DEFAULT_RETRY.should_retry(PermanentError("x"), 0)

    def test_never_retry_overrides_classification(self):
        config = RetryConfig(never_retry={TransientError})

        assert not config.should_retry(TransientError("x"), 0)

    def test_plain_exceptions_classified(self):
        assert DEFAULT_RETRY.should_retry(TimeoutError(), 0)
        assert not DEFAULT_RETRY.should_retry(RuntimeError("404 not found"), 0)


class TestWithRetryAsync:
    @pytest.mark.asyncio
    async def test_returns_result_without_retry(self):
        func = AsyncMock(return_value="ok")
        func.__name__ = "func"

        result = await with_retry_async()(func)()

        assert result == "ok"
        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        func = AsyncMock(side_effect=[TransientError("blip"), "ok"])
        func.__name__ = "func"

        with patch("cloudadmin.resilience.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await with_retry_async(RetryConfig(max_attempts=3))(func)()

        assert result == "ok"
        assert func.await_count == 2
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_permanent_error_fails_fast(self):
        func = AsyncMock(side_effect=PermanentError("bad request"))
        func.__name__ = "func"

        with pytest.raises(PermanentError):
            await with_retry_async()(func)()

        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_auth_error_invokes_async_callback(self):
        func = AsyncMock(side_effect=[AuthError("expired"), "ok"])
        func.__name__ = "func"
        refresh = AsyncMock()

        with patch("cloudadmin.resilience.retry.asyncio.sleep", new_callable=AsyncMock):
            result = await with_retry_async(on_auth_error=refresh)(func)()

        assert result == "ok"
        refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_auth_error_invokes_sync_callback(self):
        func = AsyncMock(side_effect=[AuthError("expired"), "ok"])
        func.__name__ = "func"
        refresh = MagicMock(return_value=None)

        with patch("cloudadmin.resilience.retry.asyncio.sleep", new_callable=AsyncMock):
            await with_retry_async(on_auth_error=refresh)(func)()

        refresh.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_wrapped_error(self):
        cause = TimeoutError("timed out")
        func = AsyncMock(side_effect=cause)
        func.__name__ = "func"

        with patch("cloudadmin.resilience.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(TransientError) as exc_info:
                await with_retry_async(RetryConfig(max_attempts=2))(func)()

        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_unwrapped_errors_reraised_as_is(self):
        func = AsyncMock(side_effect=RuntimeError("404 missing"))
        func.__name__ = "func"

        with pytest.raises(RuntimeError, match="404 missing"):
            await with_retry_async(wrap_errors=False)(func)()

        func.assert_awaited_once()
