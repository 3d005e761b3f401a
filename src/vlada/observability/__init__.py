"""Diagnostic event emission for credential bootstrapping."""

from vlada.observability.diagnostics import (
    DiagnosticEmitter,
    DiagnosticEvent,
    RecentDiagnostics,
    redact,
)

__all__ = ["DiagnosticEmitter", "DiagnosticEvent", "RecentDiagnostics", "redact"]
