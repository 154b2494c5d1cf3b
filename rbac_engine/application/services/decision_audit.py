"""Logging decision audit sinks (implement IDecisionAuditSink).

record() is synchronous: the gate records and returns with no await in between.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rbac_engine.shared.telemetry.logging import get_audit_logger

if TYPE_CHECKING:
    from rbac_engine.application.dtos.authorization import DecisionAuditEntry
    from rbac_engine.application.interfaces.services import IDecisionAuditSink


class LoggingDecisionAuditSink:
    """Writes one line per decision to the audit logger (denials at WARNING)."""

    def __init__(self, audit_logger: logging.Logger | None = None) -> None:
        self._logger = audit_logger or get_audit_logger()

    def record(self, entry: DecisionAuditEntry) -> None:
        level = logging.INFO if entry.allowed else logging.WARNING
        self._logger.log(
            level,
            "authz decision tenant=%s user=%s capability=%s:%s allowed=%s scope=%s reason=%s",
            entry.tenant_id,
            entry.user_id,
            entry.resource,
            entry.action,
            entry.allowed,
            entry.scope.value,
            entry.reason.value,
        )


class CompositeDecisionAuditSink:
    """Fans a record out to several sinks in order."""

    def __init__(self, *sinks: IDecisionAuditSink) -> None:
        self._sinks = sinks

    def record(self, entry: DecisionAuditEntry) -> None:
        for sink in self._sinks:
            sink.record(entry)
