"""
Structured JSON logging for the payroll kernel.

Every record is one JSON object per line.  The envelope is ``ts``, ``level``,
``logger`` and ``message`` (a snake_case event name such as
``payday_computed``), followed by the fields of the operation in progress
(see LogContext), then the record's ``extra`` fields.

Kernel errors logged with ``exc_info`` contribute ``exc_code`` and one
``exc_<attr>`` field per public attribute, so a rolled-back payday can be
found by ``exc_code == "TRANSFER_FAILED"`` without parsing messages.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "operation_context",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import dataclasses
import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID, uuid4

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "employee_id",
    "operation",
    "trace_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"payroll_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _context_vars[name]
    except KeyError:
        raise TypeError(f"unknown log context field {name!r}") from None


class LogContext:
    """
    Operation-scoped log fields, held in contextvars.

    Values are stored as strings; ``None`` leaves a field unchanged.
    Thread- and task-local, so concurrent ledger calls never see each
    other's correlation ids.
    """

    FIELDS = _CONTEXT_FIELDS

    @classmethod
    def set(cls, **fields: Any) -> None:
        for name, val in fields.items():
            var = _context_var(name)
            if val is not None:
                var.set(str(val))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        ctx: dict[str, str] = {}
        for name in cls.FIELDS:
            val = _context_vars[name].get()
            if val is not None:
                ctx[name] = val
        return ctx

    @classmethod
    def clear(cls) -> None:
        for var in _context_vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of the block, then restore them."""
        tokens: list[tuple[ContextVar[str | None], Token]] = []
        for name, val in fields.items():
            var = _context_var(name)
            if val is not None:
                tokens.append((var, var.set(str(val))))
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


@contextmanager
def operation_context(actor: str | None, operation: str) -> Iterator[str]:
    """
    Bind a fresh correlation id with the caller and operation name.

    Yields the correlation id.
    """
    correlation_id = str(uuid4())
    with LogContext.bind(
        correlation_id=correlation_id,
        actor_id=actor,
        operation=operation,
    ):
        yield correlation_id


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _PayrollEncoder(json.JSONEncoder):
    """UUIDs, instants, Decimals, enums and frozen DTOs in log payloads."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (UUID, Decimal)):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    from payroll_kernel.exceptions import PayrollKernelError

    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    if isinstance(exc, PayrollKernelError):
        for attr, val in vars(exc).items():
            if not attr.startswith("_") and attr not in ("args", "code"):
                fields[f"exc_{attr}"] = val
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        payload.update(
            (key, val)
            for key, val in vars(record).items()
            if key not in _STDLIB_KEYS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_PayrollEncoder, default=str)


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "payroll_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the payroll_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the payroll_kernel logger.  Idempotent."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
