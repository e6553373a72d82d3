"""
Structured JSON logging for the guard hours ledger.

Every logger handed out by :func:`get_logger` lives under the
``guard_kernel`` namespace, so one handler attached by
:func:`configure_logging` sees roster, payroll, alert, batch and engine
events alike. Each record is written as one JSON object per line.

Request-scoped identifiers (correlation, actor, guard, roster row, batch
run) are carried in context variables and merged into every record
emitted while they are bound, so a service never threads them through
``extra=`` by hand.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Iterator
from uuid import UUID

_NAMESPACE = "guard_kernel"

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "guard_id", "row_id", "batch_id")

_context_vars: dict[str, ContextVar[str | None]] = {
    field: ContextVar(f"guard_log_{field}", default=None) for field in _CONTEXT_FIELDS
}


class LogContext:
    """Namespace over the request-scoped log fields.

    Unknown field names are ignored by :meth:`bind`; :meth:`set` accepts
    only the known ones as keywords.
    """

    @staticmethod
    def set(
        *,
        correlation_id: str | None = None,
        actor_id: str | None = None,
        guard_id: str | None = None,
        row_id: str | None = None,
        batch_id: str | None = None,
    ) -> None:
        """Overwrite the given fields; ``None`` leaves a field untouched."""
        values = {
            "correlation_id": correlation_id,
            "actor_id": actor_id,
            "guard_id": guard_id,
            "row_id": row_id,
            "batch_id": batch_id,
        }
        for field, value in values.items():
            if value is not None:
                _context_vars[field].set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            field: var.get()
            for field, var in _context_vars.items()
            if var.get() is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (_context_vars[name], _context_vars[name].set(str(value)))
            for name, value in fields.items()
            if value is not None and name in _context_vars
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord carries; anything else on a record came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # GuardLedgerError subclasses keep their identifiers as plain attributes
    for name, value in vars(exc).items():
        if name != "code" and not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, bound context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Return ``guard_kernel.<name>``."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")


_configured = False
_configure_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``guard_kernel`` logger.

    Only the first call has an effect; later calls return immediately so
    that library entry points (``init_engine_from_url``) can call it
    unconditionally.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())

    namespace_logger = logging.getLogger(_NAMESPACE)
    namespace_logger.setLevel(level)
    namespace_logger.propagate = False
    namespace_logger.addHandler(target)


def reset_logging() -> None:
    """Undo :func:`configure_logging`. Used by the test suite."""
    global _configured
    with _configure_lock:
        _configured = False
    namespace_logger = logging.getLogger(_NAMESPACE)
    namespace_logger.handlers.clear()
    namespace_logger.setLevel(logging.WARNING)
