# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for rbac_service."""

import uuid
from collections.abc import Sequence

import pytest

from src.models import Permission as PermissionModel
from src.models import Role, User
from src.rbac.permissions import Permission
from src.rbac.permissions import Role as DomainRole
from src.rbac.roles import COMPANY_ADMIN_ROLE, SUPER_ADMIN_ROLE
from src.services import rbac_service
from src.services.rbac_seed_service import seed_rbac_data
from src.services.stores import PermissionStoreError


class FakePermissionStore:
    """In-memory permission store."""

    def __init__(self, records: dict[str, Permission] | None = None) -> None:
        self.records = records or {}
        self.calls: list[list[str]] = []

    async def fetch_permissions(self, ids: Sequence[str]) -> list[Permission]:
        self.calls.append(list(ids))
        return [self.records[i] for i in ids if i in self.records]


class FailingPermissionStore:
    """Store whose backing table does not exist."""

    async def fetch_permissions(self, ids: Sequence[str]) -> list[Permission]:
        raise PermissionStoreError('relation "permissions" does not exist')


def _permission_id(db_session, resource: str, action: str, scope: str = "company"):
    return (
        db_session.query(PermissionModel)
        .filter_by(resource=resource, action=action, scope=scope)
        .one()
        .id
    )


class TestMergePermissions:
    def test_role_permissions_come_first(self):
        role = [Permission("projects", "read", id="p1")]
        custom = [Permission("invoices", "read", id="p2")]

        merged = rbac_service.merge_permissions(role, custom)

        assert [p.id for p in merged] == ["p1", "p2"]

    def test_dedup_by_id_keeps_role_version(self):
        role = [Permission("users", "read", "company", id="p1")]
        custom = [Permission("invoices", "delete", "all", id="p1")]

        merged = rbac_service.merge_permissions(role, custom)

        assert len([p for p in merged if p.id == "p1"]) == 1
        assert merged == (Permission("users", "read", "company", id="p1"),)

    def test_same_triple_different_ids_both_kept(self):
        role = [Permission("users", "read", id="p1")]
        custom = [Permission("users", "read", id="p2")]

        assert len(rbac_service.merge_permissions(role, custom)) == 2

    def test_duplicate_customs_collapse(self):
        custom = [
            Permission("users", "read", id="p1"),
            Permission("users", "read", id="p1"),
        ]

        assert len(rbac_service.merge_permissions([], custom)) == 1

    def test_result_is_immutable_tuple(self):
        assert isinstance(rbac_service.merge_permissions([], []), tuple)


class TestResolveEffectivePermissions:
    @pytest.mark.asyncio
    async def test_role_only(self):
        role = DomainRole(
            id="r1", name="PM", permissions=(Permission("projects", "*", id="p1"),)
        )
        store = FakePermissionStore()

        result = await rbac_service.resolve_effective_permissions(role, (), store)

        assert result == (Permission("projects", "*"),)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_adds_custom_permissions(self):
        role = DomainRole(
            id="r1", name="PM", permissions=(Permission("projects", "read", id="p1"),)
        )
        store = FakePermissionStore(
            {"p2": Permission("invoices", "export", id="p2")}
        )

        result = await rbac_service.resolve_effective_permissions(
            role, ["p2", "unknown"], store
        )

        assert [p.id for p in result] == ["p1", "p2"]
        assert store.calls == [["p2", "unknown"]]

    @pytest.mark.asyncio
    async def test_no_role_grants_nothing(self):
        store = FakePermissionStore(
            {"p2": Permission("invoices", "delete", "all", id="p2")}
        )

        result = await rbac_service.resolve_effective_permissions(None, ["p2"], store)

        assert result == ()
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_failing_store_falls_back_to_role(self):
        role = DomainRole(
            id="r1", name="PM", permissions=(Permission("projects", "read", id="p1"),)
        )

        result = await rbac_service.resolve_effective_permissions(
            role, ["x"], FailingPermissionStore()
        )

        assert result == role.permissions


class TestEffectivePermissionsForUser:
    def test_role_and_custom_grants(self, db_session, make_user, company):
        export_id = _permission_id(db_session, "reports", "export")
        user = make_user(
            "viewer@example.com",
            role_name="Viewer",
            company=company,
            custom_permissions=[str(export_id)],
        )

        permissions = rbac_service.get_effective_permissions(db_session, user)

        assert Permission("reports", "export") in permissions
        assert rbac_service.user_has_permission(db_session, user, "reports", "export")
        assert not rbac_service.user_has_permission(
            db_session, user, "projects", "delete"
        )

    def test_inactive_user_has_nothing(self, db_session, make_user, company):
        user = make_user("gone@example.com", role_name="Viewer", company=company)
        user.is_active = False
        db_session.commit()

        assert not rbac_service.user_has_permission(
            db_session, user, "projects", "read"
        )

    def test_user_without_role(self, db_session, make_user, company):
        export_id = _permission_id(db_session, "reports", "export")
        user = make_user(
            "norole@example.com",
            company=company,
            custom_permissions=[str(export_id)],
        )

        assert rbac_service.get_effective_permissions(db_session, user) == ()
        assert not rbac_service.user_has_permission(
            db_session, user, "reports", "export"
        )


class TestRoleAdministration:
    def test_list_roles_filters_by_company(self, seeded, company, other_company):
        own = rbac_service.create_role(seeded, "Site Lead", company.id)
        rbac_service.create_role(seeded, "Site Lead", other_company.id)

        roles = rbac_service.list_roles(seeded, company.id)
        names = [role.name for role in roles]

        assert own in roles
        assert names.count("Site Lead") == 1
        assert SUPER_ADMIN_ROLE in names

        assert len(rbac_service.list_roles(seeded, all_companies=True)) == len(
            roles
        ) + 1

    def test_create_role_keeps_permission_order(self, seeded, company):
        ids = [
            _permission_id(seeded, "invoices", "read"),
            _permission_id(seeded, "projects", "read"),
        ]

        role = rbac_service.create_role(
            seeded, "Auditor", company.id, ids, description="Reads things"
        )

        assert [rp.permission_id for rp in role.role_permissions] == ids
        assert role.is_system is False

    def test_create_role_duplicate_name(self, seeded, company):
        rbac_service.create_role(seeded, "Auditor", company.id)

        with pytest.raises(rbac_service.RoleServiceError):
            rbac_service.create_role(seeded, "Auditor", company.id)

    def test_create_role_unknown_permission(self, seeded, company):
        with pytest.raises(rbac_service.UnknownPermissionError):
            rbac_service.create_role(seeded, "Auditor", company.id, [uuid.uuid4()])

    def test_set_role_permissions_replaces_grants(self, seeded, company):
        role = rbac_service.create_role(
            seeded, "Auditor", company.id, [_permission_id(seeded, "invoices", "read")]
        )
        new_id = _permission_id(seeded, "reports", "export")

        role = rbac_service.set_role_permissions(seeded, role, [new_id, new_id])

        assert [rp.permission_id for rp in role.role_permissions] == [new_id]

    def test_system_role_cannot_be_modified(self, seeded):
        role = rbac_service.get_role_by_name(seeded, SUPER_ADMIN_ROLE)

        with pytest.raises(rbac_service.SystemRoleError):
            rbac_service.set_role_permissions(seeded, role, [])

    def test_assign_role(self, db_session, make_user, company):
        user = make_user("pm@example.com", role_name="Viewer", company=company)
        role = rbac_service.get_role_by_name(db_session, COMPANY_ADMIN_ROLE)

        user = rbac_service.assign_role_to_user(db_session, user, role)

        assert user.role_id == role.id

    def test_assign_role_of_other_company_rejected(
        self, db_session, make_user, company, other_company
    ):
        user = make_user("pm@example.com", company=company)
        foreign = rbac_service.create_role(db_session, "Foreign", other_company.id)

        with pytest.raises(rbac_service.RoleServiceError):
            rbac_service.assign_role_to_user(db_session, user, foreign)

    def test_set_custom_permissions(self, db_session, make_user, company):
        user = make_user("pm@example.com", company=company)
        perm_id = _permission_id(db_session, "invoices", "export")

        user = rbac_service.set_custom_permissions(db_session, user, [perm_id, perm_id])

        assert user.custom_permissions == [str(perm_id)]

    def test_register_permission_is_idempotent(self, db_session):
        first = rbac_service.register_permission(db_session, "widgets", "read", "own")
        second = rbac_service.register_permission(db_session, "widgets", "read", "own")

        assert first.id == second.id

    def test_register_permission_validates(self, db_session):
        with pytest.raises(ValueError):
            rbac_service.register_permission(db_session, "widgets", "read", "galaxy")


class TestSeed:
    def test_seed_is_idempotent(self, seeded):
        roles_before = seeded.query(Role).count()
        permissions_before = seeded.query(PermissionModel).count()

        seed_rbac_data(seeded)

        assert seeded.query(Role).count() == roles_before
        assert seeded.query(PermissionModel).count() == permissions_before

    def test_seeded_roles_are_global(self, seeded):
        assert all(role.company_id is None for role in seeded.query(Role).all())
        super_admin = rbac_service.get_role_by_name(seeded, SUPER_ADMIN_ROLE)
        assert super_admin.is_system is True
        assert [rp.permission.code for rp in super_admin.role_permissions] == [
            "*.*.all"
        ]

    def test_no_users_created(self, seeded):
        assert seeded.query(User).count() == 0
