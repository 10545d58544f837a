"""
Structured JSON logging for the ledger.

Responsibility:
    Renders every log record as one JSON object per line and provides the
    logger factory used by the kernel, the sub-ledger modules and the
    integrity tools.  All loggers live under the ``ledger_kernel``
    namespace, so a single handler sees every posting, reversal, period
    close and sweep event.

Architecture position:
    Kernel -- infrastructure with no dependency on the rest of the package.

Audit relevance:
    Fields bound through ``LogContext`` (correlation id, actor, journal
    entry id, transaction id, source kind) are stamped on every line
    emitted while they are bound, so a sub-ledger call can be followed down
    to the cached balance update it caused.  Exceptions logged with
    ``exc_info`` carry their ``code`` and structured attributes as
    ``exc_*`` fields.
"""

__all__ = [
    "LOGGER_NAMESPACE",
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
from enum import Enum
from typing import Any, Iterator

LOGGER_NAMESPACE = "ledger_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "entry_id",
    "transaction_id",
    "source_kind",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"ledger_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _context_vars[name]
    except KeyError:
        raise TypeError(
            f"Unknown log context field {name!r}; expected one of {CONTEXT_FIELDS}"
        ) from None


class LogContext:
    """
    Request-scoped log fields, safe across threads and asyncio tasks.

    ``None`` values are ignored by ``set`` and ``bind``; every value is
    stored as a string.
    """

    @staticmethod
    def set(**fields: object) -> None:
        for name, value in fields.items():
            if value is not None:
                _context_var(name).set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        """Bound fields only."""
        bound: dict[str, str] = {}
        for name in CONTEXT_FIELDS:
            value = _context_vars[name].get()
            if value is not None:
                bound[name] = value
        return bound

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: object) -> Iterator[None]:
        """Bind fields for the duration of a ``with`` block, then restore."""
        tokens = [
            (_context_var(name), _context_var(name).set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Keys: ``ts`` (UTC ISO-8601), ``level``, ``logger``, ``message``, the
    bound ``LogContext`` fields, then every ``extra`` field.  Context
    fields win over extras of the same name.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``ledger_kernel.<name>``, e.g. ``get_logger("services.journal")``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_installed_handler: logging.Handler | None = None
_setup_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Attach a JSON handler to the ``ledger_kernel`` logger.

    Idempotent: once a handler is installed later calls return it and
    change nothing.  Records do not propagate to the root logger.
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return _installed_handler

        installed = handler or logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
        namespace_logger.setLevel(level)
        namespace_logger.propagate = False
        namespace_logger.addHandler(installed)
        _installed_handler = installed
        return installed


def reset_logging() -> None:
    """Remove the installed handler and restore defaults.  For tests."""
    global _installed_handler
    with _setup_lock:
        namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
        if _installed_handler is not None:
            namespace_logger.removeHandler(_installed_handler)
            _installed_handler = None
        namespace_logger.setLevel(logging.NOTSET)
        namespace_logger.propagate = True
