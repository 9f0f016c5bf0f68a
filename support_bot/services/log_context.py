from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

LogContext = dict[str, str]

_log_context: ContextVar[LogContext] = ContextVar("support_log_context", default={})


def get_log_context() -> LogContext:
    return _log_context.get()


def describe_log_context() -> str:
    context = get_log_context()
    if not context:
        return "context=none"
    return "context=" + ",".join(f"{key}={value}" for key, value in context.items())


@contextmanager
def request_context(**values: object) -> Iterator[LogContext]:
    """Tag log lines for the duration of one inbound event."""
    context = {key: str(value) for key, value in values.items() if value is not None}
    token = _log_context.set(context)
    try:
        yield context
    finally:
        _log_context.reset(token)
