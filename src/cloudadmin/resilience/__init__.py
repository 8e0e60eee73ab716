"""Resilience helpers: exception-aware retry with backoff."""

from cloudadmin.resilience.retry import (
    DEFAULT_RETRY,
    RetryConfig,
    with_retry_async,
)

__all__ = [
    "RetryConfig",
    "with_retry_async",
    "DEFAULT_RETRY",
]
