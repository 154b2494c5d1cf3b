"""Shared utilities: datetime and ID generators."""

from rbac_engine.shared.utils.datetime import ensure_utc, is_expired, utc_now
from rbac_engine.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "is_expired",
]
