"""Shared telemetry: logging setup, decision audit logger and tracing."""

from rbac_engine.shared.telemetry.logging import (
    AUDIT_LOGGER_NAME,
    get_audit_logger,
    setup_logging,
)
from rbac_engine.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "AUDIT_LOGGER_NAME",
    "setup_logging",
    "get_audit_logger",
    "traced",
    "add_span_attributes",
]
