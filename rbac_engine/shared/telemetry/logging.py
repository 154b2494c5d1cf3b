"""Logging setup for seed scripts and embedding processes.

Decision audit records go to the ``rbac_engine.audit`` logger so they can be
routed separately from operational logs. Library modules only call
``logging.getLogger(__name__)``; nothing is configured at import time.
"""

import logging
import sys

from rbac_engine.core.config import get_settings

AUDIT_LOGGER_NAME = "rbac_engine.audit"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int | None = None) -> None:
    """Send engine logs to stdout.

    Args:
        level: Root level. Defaults to DEBUG when settings.debug is set,
            otherwise INFO.

    The audit logger never goes below INFO, so allow records are kept when
    the root level is raised to WARNING.
    """
    if level is None:
        level = logging.DEBUG if get_settings().debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    get_audit_logger().setLevel(min(level, logging.INFO))


def get_audit_logger() -> logging.Logger:
    """Logger for authorization decision records."""
    return logging.getLogger(AUDIT_LOGGER_NAME)
