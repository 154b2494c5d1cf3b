"""Tests for PolicySeeder: catalog, default roles and the access matrix."""

import pytest

from rbac_engine.application.dtos.authorization import UserContext
from rbac_engine.domain.enums import DecisionReason, Scope
from rbac_engine.domain.exceptions import ResourceNotFoundException, ValidationException
from rbac_engine.infrastructure.persistence.repositories.permission_repo import (
    PermissionRepository,
)
from rbac_engine.infrastructure.persistence.repositories.role_repo import RoleRepository
from rbac_engine.infrastructure.services.policy_seeder import (
    ACCESS_MATRIX,
    TENANT_ROLES,
    PolicySeeder,
    role_key_for,
)


async def _seed(session_factory, tenant_id=None):
    async with session_factory() as session:
        async with session.begin():
            seeder = PolicySeeder(session)
            if tenant_id is None:
                return await seeder.seed_system_roles()
            return await seeder.seed_tenant_roles(tenant_id)


def test_every_default_role_has_a_matrix_row() -> None:
    assert {r["name"] for r in TENANT_ROLES} <= set(ACCESS_MATRIX)


@pytest.mark.asyncio
async def test_seed_catalog_is_idempotent(db_session) -> None:
    seeder = PolicySeeder(db_session)
    assert await seeder.seed_catalog() == 100
    assert await seeder.seed_catalog() == 0
    assert len(await PermissionRepository(db_session).list_all()) == 100


@pytest.mark.asyncio
async def test_system_roles(session_factory) -> None:
    roles = await _seed(session_factory)
    assert [r.code for r in roles] == ["system:SUPER_ADMIN", "system:SUPPORT_ENGINEER"]
    assert all(r.is_system_role and r.tenant_id is None for r in roles)


@pytest.mark.asyncio
async def test_tenant_roles(session_factory, make_tenant, db_session) -> None:
    tenant_id = await make_tenant("greenwood")
    roles = await _seed(session_factory, tenant_id)
    assert len(roles) == 10
    assert roles[0].code == f"tenant:{tenant_id}:SCHOOL_ADMIN"
    stored = await RoleRepository(db_session).get_by_tenant(tenant_id)
    assert len(stored) == 10


@pytest.mark.asyncio
async def test_unknown_tenant(session_factory) -> None:
    with pytest.raises(ResourceNotFoundException):
        await _seed(session_factory, "nowhere")


@pytest.mark.asyncio
async def test_seeding_twice_changes_nothing(session_factory, make_tenant, admin_service) -> None:
    tenant_id = await make_tenant("greenwood")
    first = await _seed(session_factory, tenant_id)
    before = await admin_service.get_role_permissions(first[0].id)
    second = await _seed(session_factory, tenant_id)
    assert [r.id for r in second] == [r.id for r in first]
    after = await admin_service.get_role_permissions(first[0].id)
    assert [m.to_dict() for m in after] == [m.to_dict() for m in before]


class TestSeededDecisions:
    @pytest.fixture
    async def tenant_id(self, session_factory, make_tenant):
        tenant_id = await make_tenant("greenwood")
        await _seed(session_factory)
        await _seed(session_factory, tenant_id)
        return tenant_id

    async def _holder(self, session_factory, make_user, tenant_id, legacy_name):
        user_id = await make_user(tenant_id, f"{legacy_name.replace(' ', '.')}@greenwood.test")
        async with session_factory() as session:
            async with session.begin():
                await PolicySeeder(session).import_legacy_assignment(
                    user_id, tenant_id, legacy_name
                )
        return UserContext(user_id=user_id, tenant_id=tenant_id)

    @pytest.mark.asyncio
    async def test_school_admin_has_tenant_scope(
        self, gate, session_factory, make_user, tenant_id
    ) -> None:
        context = await self._holder(session_factory, make_user, tenant_id, "school admin")
        decision = await gate.authorize(context, "fees", "delete")
        assert decision.allowed
        assert decision.scope == Scope.TENANT

    @pytest.mark.asyncio
    async def test_teacher_reads_only_own_students(
        self, gate, session_factory, make_user, tenant_id
    ) -> None:
        context = await self._holder(session_factory, make_user, tenant_id, "TEACHER")
        decision = await gate.authorize(context, "students", "read")
        assert decision.scope == Scope.OWNED
        assert [c.field for c in decision.conditions] == ["teacherId"]
        denied = await gate.authorize(context, "hostel", "read")
        assert denied.reason == DecisionReason.NO_MATCHING_POLICY

    @pytest.mark.asyncio
    async def test_legacy_name_falls_back_to_system_role(
        self, gate, session_factory, make_user, make_tenant, tenant_id
    ) -> None:
        context = await self._holder(session_factory, make_user, tenant_id, "super admin")
        other = await make_tenant("riverside")
        decision = await gate.authorize(
            UserContext(user_id=context.user_id, tenant_id=other), "tenant_management", "delete"
        )
        assert decision.allowed
        assert decision.scope == Scope.ALL
        # Read level stays tenant-wide for system roles.
        fees = await gate.authorize(context, "fees", "read")
        assert fees.scope == Scope.TENANT

    @pytest.mark.asyncio
    async def test_unknown_legacy_name(self, session_factory, make_user, tenant_id) -> None:
        user_id = await make_user(tenant_id, "x@greenwood.test")
        async with session_factory() as session:
            async with session.begin():
                seeder = PolicySeeder(session)
                with pytest.raises(ResourceNotFoundException):
                    await seeder.import_legacy_assignment(user_id, tenant_id, "janitor")
                with pytest.raises(ValidationException):
                    await seeder.import_legacy_assignment(user_id, tenant_id, "--")


def test_role_key_for() -> None:
    assert str(role_key_for("HR Manager", "t1")) == "tenant:t1:HR_MANAGER"
    assert str(role_key_for("Super Admin")) == "system:SUPER_ADMIN"
