"""Acting administrator for policy writes, held in a context variable.

UserRoleRepository stamps ``assigned_by`` from it and PolicyAdminService
attributes its log lines to it. Outside an ``acting_as`` block the actor
is the system (seed scripts, migrations of legacy assignments).
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum


class ActorType(str, Enum):
    USER = "user"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Who performs an administrative write."""

    actor_type: ActorType
    user_id: str | None = None

    def __str__(self) -> str:
        return self.user_id if self.user_id else self.actor_type.value


SYSTEM_ACTOR = Actor(ActorType.SYSTEM)

_current_actor: ContextVar[Actor] = ContextVar("rbac_current_actor", default=SYSTEM_ACTOR)


def get_current_actor() -> Actor:
    return _current_actor.get()


def get_current_actor_id() -> str | None:
    """User id of the acting administrator, or None for the system."""
    return _current_actor.get().user_id


@contextmanager
def acting_as(user_id: str | None) -> Iterator[Actor]:
    """Run the block as the given administrator; None runs it as the system.

    The previous actor is restored on exit, also when the block raises.
    Scoped to the current task, so concurrent requests do not see each other.

    Raises:
        ValueError: If user_id is an empty string.
    """
    if user_id is not None and not user_id.strip():
        raise ValueError("Acting user_id must be non-empty")
    actor = SYSTEM_ACTOR if user_id is None else Actor(ActorType.USER, user_id)
    token = _current_actor.set(actor)
    try:
        yield actor
    finally:
        _current_actor.reset(token)
