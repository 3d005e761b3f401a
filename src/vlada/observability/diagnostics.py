"""Structured diagnostic events with mandatory redaction.

Every event emitted here goes through ``redact`` before the event object is
built, so neither the log stream nor any registered listener ever sees a
full private key or a credential object. Events are written as one JSON
line each on the ``vlada.diagnostics`` logger.
"""

from collections import deque
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from functools import lru_cache
import json
import logging
import threading
from typing import Any

from pydantic import BaseModel, Field

from vlada.core.config import get_settings

KEY_FIELDS = frozenset({"privateKey", "private_key"})
CREDENTIAL_FIELDS = frozenset({"credential", "credentials"})

KEY_PREFIX_LENGTH = 20
KEY_REDACTION_MARKER = "... [REDACTED]"
CREDENTIAL_REDACTION_MARKER = "[CREDENTIAL OBJECT REDACTED]"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _redact_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return redact(value)
    if isinstance(value, list | tuple):
        return [_redact_value(item) for item in value]
    return value


def redact(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with key material and credentials masked.

    ``privateKey``/``private_key`` values keep a short prefix followed by a
    fixed marker; ``credential``/``credentials`` values are replaced
    wholesale. Nested mappings and sequences are handled recursively.
    """
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if key in CREDENTIAL_FIELDS:
            sanitized[key] = CREDENTIAL_REDACTION_MARKER
        elif key in KEY_FIELDS:
            prefix = value[:KEY_PREFIX_LENGTH] if isinstance(value, str) else ""
            sanitized[key] = prefix + KEY_REDACTION_MARKER
        else:
            sanitized[key] = _redact_value(value)
    return sanitized


class DiagnosticEvent(BaseModel):
    """A single sanitized diagnostic record."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    level: str
    source: str
    message: str
    data: dict[str, Any] | None = None
    error_type: str | None = None
    error_message: str | None = None

    def to_json(self) -> str:
        """Serialize the event as a single JSON line."""
        entry = self.model_dump(exclude_none=True)
        entry["timestamp"] = self.timestamp.isoformat()
        return json.dumps(entry, default=str, ensure_ascii=False)


DiagnosticListener = Callable[[DiagnosticEvent], None]


class DiagnosticEmitter:
    """Emit sanitized diagnostic events to the log and to listeners.

    Listeners are registered explicitly, either at construction or through
    ``add_listener``; the emitter's methods are never replaced at runtime.
    """

    def __init__(
        self,
        name: str = "vlada.diagnostics",
        listeners: Iterable[DiagnosticListener] = (),
    ) -> None:
        self._logger = logging.getLogger(name)
        self._listeners: list[DiagnosticListener] = list(listeners)
        self._lock = threading.Lock()

    def add_listener(self, listener: DiagnosticListener) -> None:
        """Register a listener called with every emitted event."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: DiagnosticListener) -> None:
        """Unregister a listener; unknown listeners are ignored."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def debug(
        self, source: str, message: str, data: Mapping[str, Any] | None = None
    ) -> DiagnosticEvent:
        return self._emit("DEBUG", source, message, data)

    def info(
        self, source: str, message: str, data: Mapping[str, Any] | None = None
    ) -> DiagnosticEvent:
        return self._emit("INFO", source, message, data)

    def warning(
        self,
        source: str,
        message: str,
        error: BaseException | Mapping[str, Any] | None = None,
    ) -> DiagnosticEvent:
        return self._emit_with_error("WARNING", source, message, error)

    def error(
        self,
        source: str,
        message: str,
        error: BaseException | Mapping[str, Any] | None = None,
    ) -> DiagnosticEvent:
        return self._emit_with_error("ERROR", source, message, error)

    def firebase_init(
        self, source: str, message: str, config: Mapping[str, Any] | None = None
    ) -> DiagnosticEvent:
        """Record a Firebase initialization milestone with its sanitized config."""
        return self._emit("INFO", source, f"Firebase Init: {message}", config or {})

    def _emit_with_error(
        self,
        level: str,
        source: str,
        message: str,
        error: BaseException | Mapping[str, Any] | None,
    ) -> DiagnosticEvent:
        if isinstance(error, BaseException):
            return self._emit(
                level,
                source,
                message,
                None,
                error_type=type(error).__name__,
                error_message=str(error),
            )
        return self._emit(level, source, message, error)

    def _emit(
        self,
        level: str,
        source: str,
        message: str,
        data: Mapping[str, Any] | None,
        *,
        error_type: str | None = None,
        error_message: str | None = None,
    ) -> DiagnosticEvent:
        event = DiagnosticEvent(
            level=level,
            source=source,
            message=message,
            data=redact(data) if data is not None else None,
            error_type=error_type,
            error_message=error_message,
        )
        self._logger.log(_LEVELS[level], event.to_json())

        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                self._logger.exception("Diagnostic listener %r failed", listener)
        return event


class RecentDiagnostics:
    """Thread-safe listener keeping the most recent events, newest first."""

    def __init__(self, max_events: int = 100) -> None:
        self._events: deque[DiagnosticEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def __call__(self, event: DiagnosticEvent) -> None:
        with self._lock:
            self._events.appendleft(event)

    def snapshot(self) -> list[DiagnosticEvent]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


@lru_cache
def get_recent_diagnostics() -> RecentDiagnostics:
    """Process-wide buffer of recent events, served by the logs endpoint."""
    return RecentDiagnostics(max_events=get_settings().diagnostics_buffer_size)


@lru_cache
def get_diagnostic_emitter() -> DiagnosticEmitter:
    """Process-wide emitter feeding ``get_recent_diagnostics()``."""
    return DiagnosticEmitter(listeners=[get_recent_diagnostics()])
