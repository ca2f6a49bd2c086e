"""
BTCU Observability Framework

Structured logging and contract event emission.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                  Contract entry points                   │
    │  logger.operation("mint-for-student", ...)  events.emit  │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │              ContractLogger / EventLog                   │
    │   correlation IDs, layers, hash-chained event records    │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                    Log Handlers                          │
    │          StructuredHandler (json) │ text Formatter       │
    └─────────────────────────────────────────────────────────┘

Copyright (c) 2026 BTC University. All rights reserved.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import sys
import threading
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar

# Context variable for call-scoped correlation
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

GENESIS_HASH = "0" * 64


class ContractLayer(Enum):
    """BTCU system layers for categorization."""
    REGISTRY = "registry"
    LEDGER = "ledger"
    TOKEN = "token"
    SESSION = "session"
    CONFIG = "config"
    SCENARIO = "scenario"
    CLI = "cli"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: Optional[int] = None
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                layer=getattr(record, "layer", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", None),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "warning", fmt: str = "json", stream: Any = None) -> logging.Logger:
    """
    Configure the ``btcu`` logger hierarchy.

    Replaces any handler previously installed here, so calling it twice
    does not duplicate output.
    """
    root = logging.getLogger("btcu")
    root.setLevel(getattr(logging, level.upper()))

    for handler in list(root.handlers):
        if getattr(handler, "_btcu_handler", False):
            root.removeHandler(handler)

    if fmt == "json":
        handler: logging.Handler = StructuredHandler(stream)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._btcu_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


class ContractLogger:
    """
    Structured logger for BTCU components.

    Automatically includes correlation IDs and layer information
    in all log events. Handlers live on the ``btcu`` parent logger
    (see ``configure_logging``); records propagate up to it.
    """

    def __init__(self, name: str, layer: ContractLayer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"btcu.{layer.value}.{name}")

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: Optional[int] = None,
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        """Internal log method."""
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: Optional[int] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        error_code: Optional[int] = None,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.INFO if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            error_code=error_code,
            duration_ms=duration_ms,
            **context,
        )


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Current correlation ID, or a fresh one when no call scope is set."""
    return correlation_id_var.get() or generate_correlation_id()


def get_logger(name: str, layer: ContractLayer) -> ContractLogger:
    """Get a logger for a BTCU component."""
    return ContractLogger(name, layer)


T = TypeVar("T")


def timed_operation(
    logger: ContractLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                result = func(*args, **kwargs)
                return result
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator


# =============================================================================
# CONTRACT EVENTS
# =============================================================================

@dataclass
class ContractEvent:
    """A state-changing call recorded by a contract."""
    sequence: int
    contract: str
    function: str
    caller: str
    timestamp: str
    payload: Dict[str, Any] = field(default_factory=dict)
    correlation_id: str = ""
    prev_hash: str = GENESIS_HASH
    event_hash: str = ""

    def body(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("event_hash")
        return d

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EventLog:
    """
    Append-only contract event log.

    Generates a tamper-evident trail with hash chaining: each event
    commits to the hash of its predecessor.
    """

    def __init__(self, contract: str, logger: ContractLogger):
        self.contract = contract
        self._logger = logger
        self._events: List[ContractEvent] = []
        self._last_hash: str = GENESIS_HASH
        self._lock = threading.Lock()

    @staticmethod
    def _compute_hash(event: ContractEvent) -> str:
        data = json.dumps(event.body(), sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()

    def emit(self, function: str, caller: str, **payload: Any) -> ContractEvent:
        """Record an event."""
        with self._lock:
            event = ContractEvent(
                sequence=len(self._events),
                contract=self.contract,
                function=function,
                caller=caller,
                timestamp=datetime.now(timezone.utc).isoformat(),
                payload=payload,
                correlation_id=get_correlation_id(),
                prev_hash=self._last_hash,
            )
            event.event_hash = self._compute_hash(event)
            self._last_hash = event.event_hash
            self._events.append(event)

        self._logger.debug(
            f"EVENT: {function} on {self.contract}",
            operation="event",
            sequence=event.sequence,
            event_hash=event.event_hash,
        )
        return event

    @property
    def head(self) -> str:
        return self._last_hash

    def events(self, function: Optional[str] = None) -> List[ContractEvent]:
        with self._lock:
            if function is None:
                return list(self._events)
            return [e for e in self._events if e.function == function]

    def verify(self) -> bool:
        """Recompute the chain and report whether it is intact."""
        prev = GENESIS_HASH
        for i, event in enumerate(self.events()):
            if event.sequence != i or event.prev_hash != prev:
                return False
            if self._compute_hash(event) != event.event_hash:
                return False
            prev = event.event_hash
        return prev == self._last_hash

    def __len__(self) -> int:
        return len(self._events)
