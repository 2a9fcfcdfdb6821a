"""
Structured logging (``budget_kernel.logging_config``).

Responsibility
--------------
Every ledger component logs through ``get_logger(name)``, which hangs the
logger under the ``budget_kernel`` namespace.  ``StructuredFormatter``
renders each record as one JSON object: the envelope (``ts``, ``level``,
``logger``, ``message``), the bound ``LogContext`` fields, the record's
``extra`` fields and, when present, the exception with the structured
attributes of ``BudgetKernelError`` subclasses.

Invariants enforced
-------------------
* Envelope and context keys are never overwritten by ``extra``; domain
  timestamps travel under their own names (``transition_ts``).
* Only the fields in ``CONTEXT_FIELDS`` can be bound.
* ``configure_logging()`` installs one handler per process until
  ``reset_logging()`` is called.
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
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# Who acted, on which unit and entity, within which request.
CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "unit_id",
    "entity_id",
    "trace_id",
)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"budget_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _CONTEXT_VARS[name]
    except KeyError:
        raise ValueError(
            f"Unknown log context field '{name}'; expected one of {', '.join(CONTEXT_FIELDS)}"
        ) from None


class LogContext:
    """Request-scoped log fields carried on contextvars."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Set the given fields; None values leave the current value alone."""
        for name, value in fields.items():
            var = _context_var(name)
            if value is not None:
                var.set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        values = {name: var.get() for name, var in _CONTEXT_VARS.items()}
        return {name: value for name, value in values.items() if value is not None}

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Bind fields for the duration of a ``with`` block.

        Values are stringified; None values are skipped so an outer binding
        stays visible.
        """
        bound = [(_context_var(name), value) for name, value in fields.items()]
        tokens = [(var, var.set(str(value))) for var, value in bound if value is not None]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON rendering
# ---------------------------------------------------------------------------

_RESERVED_RECORD_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    fields.update(
        (f"exc_{key}", value) for key, value in vars(exc).items()
        if not key.startswith("_") and key != "code"
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_RECORD_KEYS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        try:
            return json.dumps(payload, default=_to_json)
        except TypeError:
            return json.dumps(payload, default=str)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_NAMESPACE = "budget_kernel"
_setup_lock = threading.Lock()
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Logger ``budget_kernel.<name>``."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``budget_kernel`` namespace.

    Later calls are no-ops until ``reset_logging()``.
    """
    global _configured
    with _setup_lock:
        if _configured:
            return
        _configured = True

        namespace = logging.getLogger(_NAMESPACE)
        namespace.setLevel(level)
        namespace.propagate = False
        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        namespace.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging()`` again. Test use only."""
    global _configured
    with _setup_lock:
        _configured = False
        namespace = logging.getLogger(_NAMESPACE)
        namespace.handlers.clear()
        namespace.setLevel(logging.WARNING)
