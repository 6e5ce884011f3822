"""Per-thread registry fields (subject, schema id, version) attached to log records."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class LogContext:
    """Fields bound to the current thread; each thread starts with none."""

    _state = threading.local()

    @classmethod
    def fields(cls) -> dict[str, Any]:
        """Copy of the fields bound to the calling thread."""
        return dict(getattr(cls._state, "fields", {}))

    @classmethod
    def bind(cls, **fields: Any) -> dict[str, Any]:
        """Merge ``fields`` into the thread's fields and return the previous ones."""
        previous = cls.fields()
        cls._state.fields = {**previous, **fields}
        return previous

    @classmethod
    def restore(cls, snapshot: dict[str, Any]) -> None:
        cls._state.fields = dict(snapshot)

    @classmethod
    def reset(cls) -> None:
        cls._state.fields = {}


class ContextFilter(logging.Filter):
    """Copies bound fields onto records that do not set them through ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, value in LogContext.fields().items():
            if name not in record.__dict__:
                record.__dict__[name] = value
        return True


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind fields for the duration of the block; enclosing fields come back on exit."""
    snapshot = LogContext.bind(**fields)
    try:
        yield
    finally:
        LogContext.restore(snapshot)


@contextmanager
def log_subject_context(subject: str, **fields: Any) -> Iterator[None]:
    with log_context(subject=subject, **fields):
        yield
