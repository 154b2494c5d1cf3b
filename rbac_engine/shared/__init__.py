"""Shared helpers: acting administrator, telemetry, ids and UTC time.

Used by domain, application, and infrastructure. No authorization logic.
"""

from rbac_engine.shared.context import (
    SYSTEM_ACTOR,
    Actor,
    ActorType,
    acting_as,
    get_current_actor,
    get_current_actor_id,
)
from rbac_engine.shared.utils import ensure_utc, generate_cuid, is_expired, utc_now

__all__ = [
    "Actor",
    "ActorType",
    "SYSTEM_ACTOR",
    "acting_as",
    "get_current_actor",
    "get_current_actor_id",
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "is_expired",
]
