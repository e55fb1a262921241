# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for rbac_service."""

import pytest
from sqlalchemy.exc import OperationalError

from dare.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from dare.models import Role, RolePermission, User
from dare.rbac.permissions import ACTIONS, RESOURCES
from dare.schemas.rbac import PermissionGrantChange, RoleUpdateSchema
from dare.services import rbac_service


def grant_set(db_session, role_name):
    return {
        (g.resource, g.action)
        for g in rbac_service.list_permissions_for_role(db_session, role_name)
    }


def grant_count(db_session):
    return db_session.query(RolePermission).count()


class TestHasPermission:
    """Tests for the permission evaluator."""

    @pytest.mark.parametrize("role_name", ["admin", "Admin", "ADMIN"])
    def test_admin_bypass_with_empty_grant_table(self, db_session, role_name):
        assert grant_count(db_session) == 0
        for resource in RESOURCES:
            for action in ACTIONS:
                assert rbac_service.has_permission(
                    db_session, role_name, resource, action
                )

    def test_admin_bypass_does_not_query(self, db_session, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("admin must not hit the database")

        monkeypatch.setattr(db_session, "query", fail)
        assert rbac_service.has_permission(db_session, "admin", "roles", "delete")

    def test_unknown_role_is_denied(self, db_session):
        for resource in RESOURCES:
            for action in ACTIONS:
                assert not rbac_service.has_permission(
                    db_session, "nonexistent_role", resource, action
                )

    def test_missing_role_name_is_denied(self, db_session):
        assert not rbac_service.has_permission(db_session, None, "businesses", "view")
        assert not rbac_service.has_permission(db_session, "", "businesses", "view")

    def test_unknown_resource_or_action_is_denied(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        assert not rbac_service.has_permission(db_session, "auditor", "spaceships", "view")
        assert not rbac_service.has_permission(db_session, "auditor", "reports", "fly")

    def test_manage_does_not_imply_edit(self, db_session):
        rbac_service.create_role(db_session, "coordinator")
        rbac_service.create_role_permission(
            db_session, "coordinator", "businesses", "manage"
        )

        assert rbac_service.has_permission(
            db_session, "coordinator", "businesses", "manage"
        )
        for action in ("view", "create", "edit", "delete"):
            assert not rbac_service.has_permission(
                db_session, "coordinator", "businesses", action
            )

    def test_role_name_lookup_is_exact(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        rbac_service.create_role_permission(db_session, "auditor", "reports", "view")
        assert not rbac_service.has_permission(db_session, "Auditor", "reports", "view")

    def test_storage_failure_raises(self, db_session, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "query", broken)
        with pytest.raises(StorageError):
            rbac_service.has_permission(db_session, "mentor", "businesses", "view")

    def test_check_access_matches_has_permission(self, db_session):
        rbac_service.create_role(db_session, "auditor", permissions=[("reports", "view")])
        assert rbac_service.check_access(db_session, "auditor", "reports", "view")
        assert not rbac_service.check_access(db_session, "auditor", "reports", "edit")


class TestGrantMutators:
    """Tests for creating and deleting grants."""

    def test_create_is_idempotent(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        first = rbac_service.create_role_permission(
            db_session, "auditor", "reports", "view"
        )
        second = rbac_service.create_role_permission(
            db_session, "auditor", "reports", "view"
        )

        assert first.id == second.id
        assert grant_count(db_session) == 1
        assert rbac_service.has_permission(db_session, "auditor", "reports", "view")

    def test_concurrent_duplicate_returns_existing(self, db_session, monkeypatch):
        rbac_service.create_role(db_session, "auditor")
        first = rbac_service.create_role_permission(
            db_session, "auditor", "reports", "view"
        )
        first_id = first.id

        find_grant = rbac_service._find_grant
        calls = []

        def miss_once(db, role_id, resource, action):
            calls.append(resource)
            # Another writer inserted the row after this lookup
            if len(calls) == 1:
                return None
            return find_grant(db, role_id, resource, action)

        monkeypatch.setattr(rbac_service, "_find_grant", miss_once)

        grant = rbac_service.create_role_permission(
            db_session, "auditor", "reports", "view"
        )

        monkeypatch.undo()
        assert len(calls) == 2
        assert grant.id == first_id
        assert grant_count(db_session) == 1

    def test_create_for_unknown_role_fails(self, db_session):
        with pytest.raises(NotFoundError):
            rbac_service.create_role_permission(db_session, "ghost", "reports", "view")

    def test_create_rejects_values_outside_catalog(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        with pytest.raises(ValidationError):
            rbac_service.create_role_permission(db_session, "auditor", "reports", "update")
        with pytest.raises(ValidationError):
            rbac_service.create_role_permission(db_session, "auditor", "profiles", "view")
        assert grant_count(db_session) == 0

    def test_validation_runs_before_role_lookup(self, db_session):
        with pytest.raises(ValidationError):
            rbac_service.create_role_permission(db_session, "ghost", "reports", "fly")

    def test_create_stores_role_id(self, db_session):
        role = rbac_service.create_role(db_session, "auditor")
        grant = rbac_service.create_role_permission(
            db_session, "auditor", "reports", "view"
        )
        assert grant.role_id == role.id
        assert grant.role_name == "auditor"

    def test_delete_missing_grant_is_noop(self, db_session):
        rbac_service.create_role(db_session, "auditor", permissions=[("reports", "view")])

        rbac_service.delete_role_permission(db_session, "auditor", "reports", "edit")
        rbac_service.delete_role_permission(db_session, "ghost", "reports", "view")

        assert grant_set(db_session, "auditor") == {("reports", "view")}

    def test_delete_removes_one_grant(self, db_session):
        rbac_service.create_role(
            db_session,
            "auditor",
            permissions=[("reports", "view"), ("reports", "create")],
        )
        rbac_service.delete_role_permission(db_session, "auditor", "reports", "view")
        assert grant_set(db_session, "auditor") == {("reports", "create")}

    def test_delete_all_for_role(self, db_session):
        rbac_service.create_role(
            db_session,
            "auditor",
            permissions=[("reports", "view"), ("businesses", "view")],
        )
        rbac_service.create_role(db_session, "other", permissions=[("reports", "view")])

        assert rbac_service.delete_all_role_permissions(db_session, "auditor") == 2
        assert grant_set(db_session, "auditor") == set()
        assert grant_set(db_session, "other") == {("reports", "view")}

    def test_delete_all_for_role_without_grants(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        assert rbac_service.delete_all_role_permissions(db_session, "auditor") == 0

    def test_delete_all_for_unknown_role_fails(self, db_session):
        with pytest.raises(NotFoundError):
            rbac_service.delete_all_role_permissions(db_session, "ghost")

    def test_list_for_unknown_role_is_empty(self, db_session):
        assert rbac_service.list_permissions_for_role(db_session, "ghost") == []

    def test_get_role_permission(self, db_session):
        rbac_service.create_role(db_session, "auditor", permissions=[("reports", "view")])
        assert rbac_service.get_role_permission(db_session, "auditor", "reports", "view")
        assert rbac_service.get_role_permission(db_session, "auditor", "reports", "edit") is None
        assert rbac_service.get_role_permission(db_session, "ghost", "reports", "view") is None

    def test_list_all_role_permissions(self, db_session):
        rbac_service.create_role(db_session, "b_role", permissions=[("reports", "view")])
        rbac_service.create_role(db_session, "a_role", permissions=[("users", "view")])

        grants = rbac_service.list_all_role_permissions(db_session)
        assert [(g.role_name, g.resource) for g in grants] == [
            ("a_role", "users"),
            ("b_role", "reports"),
        ]


class TestSetRolePermissions:
    """Tests for batch reconciliation."""

    def test_adds_and_removes(self, db_session):
        rbac_service.create_role(
            db_session, "auditor", permissions=[("businesses", "view")]
        )

        result = rbac_service.set_role_permissions(
            db_session,
            "auditor",
            [
                PermissionGrantChange(resource="businesses", action="view", granted=False),
                PermissionGrantChange(resource="youth_profiles", action="edit", granted=True),
            ],
        )

        assert result == {"added": 1, "removed": 1}
        assert grant_set(db_session, "auditor") == {("youth_profiles", "edit")}

    def test_entries_already_in_desired_state_are_ignored(self, db_session):
        rbac_service.create_role(
            db_session, "auditor", permissions=[("businesses", "view")]
        )

        result = rbac_service.set_role_permissions(
            db_session,
            "auditor",
            [
                PermissionGrantChange(resource="businesses", action="view", granted=True),
                PermissionGrantChange(resource="reports", action="view", granted=False),
            ],
        )

        assert result == {"added": 0, "removed": 0}
        assert grant_set(db_session, "auditor") == {("businesses", "view")}

    def test_duplicate_entries_count_once(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        change = PermissionGrantChange(resource="reports", action="view", granted=True)

        result = rbac_service.set_role_permissions(
            db_session, "auditor", [change, change]
        )

        assert result == {"added": 1, "removed": 0}
        assert grant_count(db_session) == 1

    def test_invalid_entry_applies_nothing(self, db_session):
        rbac_service.create_role(
            db_session, "auditor", permissions=[("businesses", "view")]
        )

        with pytest.raises(ValidationError):
            rbac_service.set_role_permissions(
                db_session,
                "auditor",
                [
                    PermissionGrantChange(resource="businesses", action="view", granted=False),
                    PermissionGrantChange(resource="reports", action="approve", granted=True),
                ],
            )

        assert grant_set(db_session, "auditor") == {("businesses", "view")}

    def test_unknown_role_fails(self, db_session):
        with pytest.raises(NotFoundError):
            rbac_service.set_role_permissions(
                db_session,
                "ghost",
                [PermissionGrantChange(resource="reports", action="view", granted=True)],
            )

    def test_failure_rolls_back_everything(self, db_session, monkeypatch):
        rbac_service.create_role(
            db_session, "auditor", permissions=[("businesses", "view")]
        )

        original_insert = rbac_service._insert_grant
        calls = []

        def flaky_insert(db, role_id, resource, action):
            calls.append(resource)
            if len(calls) == 2:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return original_insert(db, role_id, resource, action)

        monkeypatch.setattr(rbac_service, "_insert_grant", flaky_insert)

        with pytest.raises(StorageError):
            rbac_service.set_role_permissions(
                db_session,
                "auditor",
                [
                    PermissionGrantChange(resource="businesses", action="view", granted=False),
                    PermissionGrantChange(resource="reports", action="view", granted=True),
                    PermissionGrantChange(resource="youth_profiles", action="edit", granted=True),
                ],
            )

        monkeypatch.undo()
        assert grant_set(db_session, "auditor") == {("businesses", "view")}


class TestRoleStore:
    """Tests for role creation, update and deletion."""

    def test_create_and_list(self, db_session):
        role = rbac_service.create_role(db_session, "auditor", description="Audits")

        assert role.id is not None
        assert role.is_system is False
        assert role.is_editable is True
        assert rbac_service.get_role_by_name(db_session, "auditor") == role
        assert [r.name for r in rbac_service.list_roles(db_session)] == ["auditor"]

    def test_create_duplicate_name_conflicts(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        with pytest.raises(ConflictError):
            rbac_service.create_role(db_session, "auditor")
        assert db_session.query(Role).count() == 1

    def test_unique_constraint_is_authoritative(self, db_session, monkeypatch):
        rbac_service.create_role(db_session, "auditor")
        # Simulate a concurrent creator that passed the pre-check
        monkeypatch.setattr(rbac_service, "_name_in_use", lambda db, name: False)

        with pytest.raises(ConflictError):
            rbac_service.create_role(db_session, "auditor")

        monkeypatch.undo()
        assert db_session.query(Role).count() == 1

    def test_unique_index_ignores_case(self, db_session, monkeypatch):
        rbac_service.create_role(db_session, "auditor")
        monkeypatch.setattr(rbac_service, "_name_in_use", lambda db, name: False)

        with pytest.raises(ConflictError):
            rbac_service.create_role(db_session, "Auditor")

        monkeypatch.undo()
        assert [r.name for r in rbac_service.list_roles(db_session)] == ["auditor"]

    def test_create_name_differing_in_case_conflicts(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        with pytest.raises(ConflictError):
            rbac_service.create_role(db_session, "AUDITOR")
        assert db_session.query(Role).count() == 1

    @pytest.mark.parametrize("name", ["admin", "Admin", "ADMIN"])
    def test_admin_name_is_reserved_for_custom_roles(self, db_session, name):
        rbac_service.create_role(db_session, "admin", is_system=True)

        with pytest.raises(ConflictError):
            rbac_service.create_role(db_session, name)

        assert [r.name for r in rbac_service.list_roles(db_session)] == ["admin"]

    def test_admin_name_is_reserved_without_admin_role(self, db_session):
        with pytest.raises(ConflictError):
            rbac_service.create_role(db_session, "Admin")
        assert db_session.query(Role).count() == 0

    @pytest.mark.parametrize("name", ["admin", "Admin", "ADMIN"])
    def test_rename_to_admin_name_conflicts(self, db_session, name):
        rbac_service.create_role(db_session, "admin", is_system=True)
        role = rbac_service.create_role(db_session, "auditor")

        with pytest.raises(ConflictError):
            rbac_service.update_role(db_session, role.id, RoleUpdateSchema(name=name))

        assert rbac_service.get_role(db_session, role.id).name == "auditor"
        assert not rbac_service.has_permission(db_session, "auditor", "system", "manage")

    def test_rename_to_other_role_name_in_different_case_conflicts(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        other = rbac_service.create_role(db_session, "inspector")
        with pytest.raises(ConflictError):
            rbac_service.update_role(
                db_session, other.id, RoleUpdateSchema(name="Auditor")
            )

    def test_rename_changing_only_case(self, db_session):
        role = rbac_service.create_role(db_session, "auditor")
        updated = rbac_service.update_role(
            db_session, role.id, RoleUpdateSchema(name="Auditor")
        )
        assert updated.name == "Auditor"

    def test_create_with_invalid_grant_persists_nothing(self, db_session):
        with pytest.raises(ValidationError):
            rbac_service.create_role(
                db_session, "auditor", permissions=[("reports", "approve")]
            )
        assert rbac_service.get_role_by_name(db_session, "auditor") is None

    def test_update_description_and_name(self, db_session):
        role = rbac_service.create_role(db_session, "auditor")
        updated = rbac_service.update_role(
            db_session, role.id, RoleUpdateSchema(name="inspector", description="New")
        )
        assert updated.name == "inspector"
        assert updated.description == "New"

    def test_update_rename_conflict(self, db_session):
        rbac_service.create_role(db_session, "auditor")
        other = rbac_service.create_role(db_session, "inspector")
        with pytest.raises(ConflictError):
            rbac_service.update_role(
                db_session, other.id, RoleUpdateSchema(name="auditor")
            )
        assert rbac_service.get_role(db_session, other.id).name == "inspector"

    def test_update_keeping_same_name_is_allowed(self, db_session):
        role = rbac_service.create_role(db_session, "auditor")
        updated = rbac_service.update_role(
            db_session, role.id, RoleUpdateSchema(name="auditor", description="x")
        )
        assert updated.description == "x"

    def test_system_role_cannot_be_renamed(self, db_session):
        admin = rbac_service.create_role(db_session, "admin", is_system=True)
        with pytest.raises(ForbiddenError):
            rbac_service.update_role(db_session, admin.id, RoleUpdateSchema(name="root"))

        updated = rbac_service.update_role(
            db_session, admin.id, RoleUpdateSchema(description="Everything")
        )
        assert updated.name == "admin"
        assert updated.description == "Everything"

    def test_non_editable_role_rejects_updates(self, db_session):
        role = rbac_service.create_role(db_session, "locked", is_editable=False)
        with pytest.raises(ForbiddenError):
            rbac_service.update_role(db_session, role.id, RoleUpdateSchema(description="x"))

    def test_update_unknown_role(self, db_session):
        with pytest.raises(NotFoundError):
            rbac_service.update_role(db_session, 999, RoleUpdateSchema(description="x"))

    def test_delete_system_role_is_refused(self, db_session):
        admin = rbac_service.create_role(
            db_session, "admin", is_system=True, permissions=[("users", "view")]
        )

        with pytest.raises(ForbiddenError):
            rbac_service.delete_role(db_session, admin.id)

        assert rbac_service.get_role(db_session, admin.id) is not None
        assert grant_set(db_session, "admin") == {("users", "view")}

    def test_delete_cascades_grants(self, db_session):
        grants = [("reports", "view"), ("reports", "create"), ("businesses", "view")]
        role = rbac_service.create_role(db_session, "auditor", permissions=grants)
        role_id = role.id
        assert grant_count(db_session) == 3

        rbac_service.delete_role(db_session, role_id)

        assert rbac_service.get_role(db_session, role_id) is None
        assert rbac_service.list_permissions_for_role(db_session, "auditor") == []
        assert grant_count(db_session) == 0

    def test_delete_unknown_role(self, db_session):
        with pytest.raises(NotFoundError):
            rbac_service.delete_role(db_session, 999)

    def test_delete_detaches_users(self, db_session):
        role = rbac_service.create_role(db_session, "auditor")
        user = User(username="ama", full_name="Ama", role_id=role.id)
        db_session.add(user)
        db_session.commit()

        rbac_service.delete_role(db_session, role.id)
        db_session.refresh(user)

        assert user.role_id is None
        assert user.role_name is None


def test_auditor_lifecycle(db_session):
    role = rbac_service.create_role(db_session, "auditor")
    rbac_service.create_role_permission(db_session, "auditor", "reports", "view")

    assert rbac_service.has_permission(db_session, "auditor", "reports", "view")
    assert not rbac_service.has_permission(db_session, "auditor", "reports", "edit")

    rbac_service.delete_role(db_session, role.id)

    assert not rbac_service.has_permission(db_session, "auditor", "reports", "view")


def test_effective_permissions(db_session):
    rbac_service.create_role(db_session, "auditor", permissions=[("reports", "view")])

    assert rbac_service.get_effective_permissions(db_session, "admin") == [
        {"resource": "*", "action": "*"}
    ]
    assert rbac_service.get_effective_permissions(db_session, "auditor") == [
        {"resource": "reports", "action": "view"}
    ]
    assert rbac_service.get_effective_permissions(db_session, "ghost") == []
    assert rbac_service.get_effective_permissions(db_session, None) == []
