"""Role resolver: which roles a user holds in a tenant context."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rbac_engine.shared.telemetry.tracing import traced

if TYPE_CHECKING:
    from rbac_engine.application.dtos.role import ResolvedRole
    from rbac_engine.application.interfaces.services import IPolicyStore

logger = logging.getLogger(__name__)


class RoleResolver:
    """Resolves tenant-scoped and system roles for (user, tenant).

    A tenant role counts only inside its own tenant; a system role counts
    in every tenant. Missing, inactive and expired roles are not returned.
    """

    def __init__(self, store: IPolicyStore) -> None:
        self.store = store

    @traced("rbac.resolve_roles")
    async def resolve_roles(self, user_id: str, tenant_id: str) -> frozenset[ResolvedRole]:
        """Return the roles held in the tenant context (empty when none)."""
        roles = frozenset(await self.store.get_user_roles(user_id, tenant_id))
        if not roles:
            logger.debug("No roles for user %s in tenant %s", user_id, tenant_id)
        return roles

    async def resolve_role_codes(self, user_id: str, tenant_id: str) -> list[str]:
        """Sorted role keys held in the tenant context."""
        return sorted(r.code for r in await self.resolve_roles(user_id, tenant_id))
