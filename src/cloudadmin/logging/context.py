"""Context variables for structured logging."""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Optional

_app_name: ContextVar[str] = ContextVar("app_name", default="")
_service: ContextVar[str] = ContextVar("service", default="")
_trace_id: ContextVar[str] = ContextVar("trace_id", default="")


def set_log_context(
    app_name: Optional[str] = None,
    service: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> None:
    if app_name is not None:
        _app_name.set(app_name)
    if service is not None:
        _service.set(service)
    if trace_id is not None:
        _trace_id.set(trace_id)


def get_log_context() -> Dict[str, str]:
    return {
        "app_name": _app_name.get(),
        "service": _service.get(),
        "trace_id": _trace_id.get(),
    }


def clear_log_context() -> None:
    _app_name.set("")
    _service.set("")
    _trace_id.set("")


@contextmanager
def log_context(
    app_name: Optional[str] = None,
    service: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> Iterator[None]:
    """
    Temporarily set logging context, restoring the previous values on exit.

    Usage:
        with log_context(app_name=app.name, service="api-client"):
            logger.info("Sending request")
    """
    tokens = []
    if app_name is not None:
        tokens.append((_app_name, _app_name.set(app_name)))
    if service is not None:
        tokens.append((_service, _service.set(service)))
    if trace_id is not None:
        tokens.append((_trace_id, _trace_id.set(trace_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
