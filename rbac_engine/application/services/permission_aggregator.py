"""Permission aggregator: merges the policies of a role set into decisions."""

from __future__ import annotations

from collections.abc import Collection
from typing import TYPE_CHECKING

from rbac_engine.domain.enums import DecisionReason
from rbac_engine.domain.policy import (
    Decision,
    PermissionMap,
    build_permission_map,
    merge_policies,
)

if TYPE_CHECKING:
    from rbac_engine.application.dtos.role import ResolvedRole
    from rbac_engine.application.interfaces.services import IPolicyStore


class PermissionAggregator:
    """Loads policies for a role set and applies the deny-overrides merge."""

    def __init__(self, store: IPolicyStore) -> None:
        self.store = store

    async def aggregate(
        self,
        roles: Collection[ResolvedRole],
        resource: str,
        action: str,
    ) -> Decision:
        """Merged decision for one capability.

        No roles, or no policy among them, denies with NO_MATCHING_POLICY.
        Any deny wins; otherwise the widest allow applies.
        """
        if not roles:
            return Decision.deny(DecisionReason.NO_MATCHING_POLICY, resource, action)
        records = await self.store.get_policies(
            sorted(r.id for r in roles), resource, action
        )
        return merge_policies((r.policy for r in records), resource, action)

    async def build_permission_map(self, roles: Collection[ResolvedRole]) -> PermissionMap:
        """Merged decisions for every capability the roles have a policy for."""
        if not roles:
            return {}
        records = await self.store.get_policies(sorted(r.id for r in roles))
        return build_permission_map((r.resource, r.action, r.policy) for r in records)
