"""
Structured JSON logging for the procurement kernel.

Every record under the ``procure_kernel`` logger namespace is written as
one JSON object per line.  Request-scoped identifiers (the correlation id
of a match run, the acting user, the invoice or purchase order being
reconciled) live in ``LogContext`` and are merged into each line.
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "invoice_id",
    "purchase_order_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"procure_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _context_vars[name]
    except KeyError:
        raise TypeError(f"unknown log context field: {name!r}") from None


class LogContext:
    """Context-local identifiers merged into every structured log line.

    Values are stored as strings; UUIDs and other ids are converted on the
    way in.  Backed by contextvars, so threads and tasks each see their
    own values.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Set the given fields; None values are ignored."""
        for name, value in fields.items():
            var = _context_var(name)
            if value is not None:
                var.set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (var, var.set(str(value)))
            for var, value in (
                (_context_var(name), value) for name, value in fields.items()
            )
            if value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # ProcureKernelError subclasses keep their structured attributes public
    fields.update(
        (f"exc_{key}", value)
        for key, value in vars(exc).items()
        if not key.startswith("_") and key != "code"
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_NAMESPACE = "procure_kernel"

_installed_handler: logging.Handler | None = None
_setup_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger ``procure_kernel.<name>``."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``procure_kernel`` logger.

    Only the first call takes effect until ``reset_logging`` runs.  Records
    do not propagate to the root logger.
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return
        _installed_handler = handler or logging.StreamHandler(stream or sys.stderr)
        _installed_handler.setFormatter(StructuredFormatter())

        namespace_logger = logging.getLogger(_NAMESPACE)
        namespace_logger.setLevel(level)
        namespace_logger.propagate = False
        namespace_logger.addHandler(_installed_handler)


def reset_logging() -> None:
    """Remove every handler from the namespace logger. For tests."""
    global _installed_handler
    with _setup_lock:
        _installed_handler = None
        namespace_logger = logging.getLogger(_NAMESPACE)
        for existing in list(namespace_logger.handlers):
            namespace_logger.removeHandler(existing)
        namespace_logger.setLevel(logging.WARNING)
