"""SQL read side of the policy store (implements IPolicyStore and IIdentityDirectory).

Each read opens its own short session. Connection-level driver failures
are raised as TransientStoreError so the gate can retry and then fail
closed; everything else propagates unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Collection
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rbac_engine.application.dtos.directory import TenantResult, UserResult
from rbac_engine.application.dtos.permission import PolicyRecord
from rbac_engine.application.dtos.role import ResolvedRole
from rbac_engine.domain.exceptions import TransientStoreError
from rbac_engine.infrastructure.persistence.repositories.directory_repo import (
    DirectoryRepository,
)
from rbac_engine.infrastructure.persistence.repositories.role_permission_repo import (
    RolePermissionRepository,
)
from rbac_engine.infrastructure.persistence.repositories.user_role_repo import (
    UserRoleRepository,
)

logger = logging.getLogger(__name__)


class SqlPolicyStore:
    """Policy store reads over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _read(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            logger.warning("Policy store %s failed: %s", operation, e)
            raise TransientStoreError(operation, str(e)) from e
        except DBAPIError as e:
            if not e.connection_invalidated:
                raise
            logger.warning("Policy store %s lost its connection: %s", operation, e)
            raise TransientStoreError(operation, str(e)) from e
        except (OSError, TimeoutError) as e:
            logger.warning("Policy store %s unreachable: %s", operation, e)
            raise TransientStoreError(operation, str(e)) from e

    async def get_user_roles(self, user_id: str, tenant_id: str) -> list[ResolvedRole]:
        async with self._read("get_user_roles") as session:
            return await UserRoleRepository(session).get_active_roles(user_id, tenant_id)

    async def get_policies(
        self,
        role_ids: Collection[str],
        resource: str | None = None,
        action: str | None = None,
    ) -> list[PolicyRecord]:
        if not role_ids:
            return []
        async with self._read("get_policies") as session:
            return await RolePermissionRepository(session).get_policy_records(
                role_ids, resource, action
            )

    async def get_tenant(self, tenant_id: str) -> TenantResult | None:
        async with self._read("get_tenant") as session:
            return await DirectoryRepository(session).get_tenant(tenant_id)

    async def get_user(self, user_id: str) -> UserResult | None:
        async with self._read("get_user") as session:
            return await DirectoryRepository(session).get_user(user_id)
