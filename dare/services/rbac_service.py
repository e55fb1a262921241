# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Role store, grant table and permission evaluation.

Roles are addressed by name at this boundary and resolved to their numeric id
once; grant rows only ever store the id.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from dare.database import transaction
from dare.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
)
from dare.models import Permission, Role, RolePermission
from dare.rbac.permissions import is_valid_action, is_valid_resource, validate_pair
from dare.rbac.roles import ADMIN_ROLE_NAME
from dare.schemas.rbac import PermissionGrantChange, RoleUpdateSchema

logger = logging.getLogger(__name__)

WILDCARD = "*"


# Roles


def get_role(db: Session, role_id: int) -> Role | None:
    """Get a role by its id."""
    return db.query(Role).filter(Role.id == role_id).first()


def get_role_by_name(db: Session, name: str) -> Role | None:
    """Get a role by its name."""
    return db.query(Role).filter(Role.name == name).first()


def list_roles(db: Session) -> list[Role]:
    """List all roles ordered by name."""
    return db.query(Role).order_by(Role.name).all()


def _require_role(db: Session, name: str) -> Role:
    role = get_role_by_name(db, name)
    if role is None:
        raise NotFoundError(f"Role '{name}' not found")
    return role


def _name_in_use(db: Session, name: str, exclude_id: int | None = None) -> bool:
    """Check whether another role already holds this name, ignoring case."""
    query = db.query(Role.id).filter(func.lower(Role.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Role.id != exclude_id)
    return query.first() is not None


def _is_admin_name(name: str) -> bool:
    return name.lower() == ADMIN_ROLE_NAME


def create_role(
    db: Session,
    name: str,
    description: str | None = None,
    is_system: bool = False,
    is_editable: bool = True,
    permissions: Iterable[tuple[str, str]] = (),
) -> Role:
    """Create a role, optionally with an initial grant set.

    Args:
        db: Database session
        name: Unique role name
        description: Free text description
        is_system: System roles cannot be deleted or renamed
        is_editable: Non-editable roles reject metadata updates
        permissions: Initial (resource, action) grants

    Returns:
        The created Role

    Raises:
        ValidationError: a grant is outside the catalog
        ConflictError: the name is taken in any letter case, or is the admin
            name on a non-system role
    """
    grants = list(dict.fromkeys(permissions))
    for resource, action in grants:
        validate_pair(resource, action)

    # The admin name carries the evaluator bypass
    if _is_admin_name(name) and not is_system:
        raise ConflictError(f"Role name '{name}' is reserved")
    if _name_in_use(db, name):
        raise ConflictError(f"Role '{name}' already exists")

    with transaction(db):
        role = Role(
            name=name,
            description=description,
            is_system=is_system,
            is_editable=is_editable,
        )
        db.add(role)
        try:
            db.flush()
        except IntegrityError as exc:
            # Lost the race against a concurrent insert of the same name
            raise ConflictError(f"Role '{name}' already exists") from exc

        for resource, action in grants:
            _insert_grant(db, role.id, resource, action)

    db.refresh(role)
    logger.info("Created role %r with %d grants", role.name, len(grants))
    return role


def update_role(db: Session, role_id: int, data: RoleUpdateSchema) -> Role:
    """Apply a partial update to a role.

    Raises:
        NotFoundError: unknown role id
        ForbiddenError: role is not editable, or a system role is renamed
        ConflictError: the new name belongs to another role in any letter
            case, or is the admin name
    """
    role = get_role(db, role_id)
    if role is None:
        raise NotFoundError(f"Role {role_id} not found")
    if not role.is_editable:
        raise ForbiddenError(f"Role '{role.name}' is not editable")

    update_data = data.model_dump(exclude_unset=True)
    new_name = update_data.get("name")
    if new_name is None:
        update_data.pop("name", None)
    elif new_name != role.name:
        if role.is_system:
            raise ForbiddenError(f"System role '{role.name}' cannot be renamed")
        if _is_admin_name(new_name):
            raise ConflictError(f"Role name '{new_name}' is reserved")
        if _name_in_use(db, new_name, exclude_id=role.id):
            raise ConflictError(f"Role '{new_name}' already exists")

    with transaction(db):
        for key, value in update_data.items():
            setattr(role, key, value)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Role '{new_name}' already exists") from exc

    db.refresh(role)
    logger.info("Updated role %d (%s)", role.id, ", ".join(update_data) or "no changes")
    return role


def delete_role(db: Session, role_id: int) -> None:
    """Delete a non-system role together with all of its grants.

    Raises:
        NotFoundError: unknown role id
        ForbiddenError: the role is a system role
    """
    role = get_role(db, role_id)
    if role is None:
        raise NotFoundError(f"Role {role_id} not found")
    if role.is_system:
        raise ForbiddenError(f"Cannot delete system role: {role.name}")

    name = role.name
    with transaction(db):
        removed = (
            db.query(RolePermission)
            .filter(RolePermission.role_id == role.id)
            .delete(synchronize_session="fetch")
        )
        # Grants are gone; keep the ORM cascade from visiting them again
        db.expire(role, ["permissions"])
        db.delete(role)

    logger.info("Deleted role %r and %d grants", name, removed)


# Grants


def _find_grant(
    db: Session, role_id: int, resource: str, action: str
) -> RolePermission | None:
    return (
        db.query(RolePermission)
        .filter(
            RolePermission.role_id == role_id,
            RolePermission.resource == resource,
            RolePermission.action == action,
        )
        .first()
    )


def _insert_grant(db: Session, role_id: int, resource: str, action: str) -> RolePermission:
    grant = RolePermission(role_id=role_id, resource=resource, action=action)
    db.add(grant)
    db.flush()
    return grant


def get_role_permission(
    db: Session, role_name: str, resource: str, action: str
) -> RolePermission | None:
    """Return the matching grant, or None when the role or grant is missing."""
    role = get_role_by_name(db, role_name)
    if role is None:
        return None
    return _find_grant(db, role.id, resource, action)


def list_permissions_for_role(db: Session, role_name: str) -> list[RolePermission]:
    """List a role's grants. An unknown role has none."""
    role = get_role_by_name(db, role_name)
    if role is None:
        return []
    return (
        db.query(RolePermission)
        .filter(RolePermission.role_id == role.id)
        .order_by(RolePermission.resource, RolePermission.action)
        .all()
    )


def list_all_role_permissions(db: Session) -> list[RolePermission]:
    """List every grant together with its role, ordered by role name."""
    return (
        db.query(RolePermission)
        .join(Role, RolePermission.role_id == Role.id)
        .options(joinedload(RolePermission.role))
        .order_by(Role.name, RolePermission.resource, RolePermission.action)
        .all()
    )


def list_catalog_permissions(db: Session) -> list[Permission]:
    """List the persisted permission catalog."""
    return db.query(Permission).order_by(Permission.resource, Permission.action).all()


def create_role_permission(
    db: Session, role_name: str, resource: str, action: str
) -> RolePermission:
    """Grant an action on a resource to a role.

    Creating a grant that already exists returns the existing row.

    Raises:
        ValidationError: resource or action outside the catalog
        NotFoundError: unknown role
    """
    validate_pair(resource, action)
    role = _require_role(db, role_name)
    role_id = role.id

    existing = _find_grant(db, role_id, resource, action)
    if existing is not None:
        return existing

    try:
        grant = _insert_grant(db, role_id, resource, action)
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = _find_grant(db, role_id, resource, action)
        if existing is None:
            raise StorageError("Grant insert failed") from None
        return existing
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("Grant insert failed") from exc

    db.refresh(grant)
    logger.info("Granted %s:%s to role %r", resource, action, role_name)
    return grant


def delete_role_permission(
    db: Session, role_name: str, resource: str, action: str
) -> None:
    """Revoke a grant. Missing role or grant is a no-op."""
    role = get_role_by_name(db, role_name)
    if role is None:
        return

    grant = _find_grant(db, role.id, resource, action)
    if grant is None:
        return

    with transaction(db):
        db.delete(grant)
    logger.info("Revoked %s:%s from role %r", resource, action, role_name)


def delete_all_role_permissions(db: Session, role_name: str) -> int:
    """Revoke every grant of a role.

    Returns:
        Number of grants removed, 0 for a role without grants

    Raises:
        NotFoundError: unknown role
    """
    role = _require_role(db, role_name)
    with transaction(db):
        removed = (
            db.query(RolePermission)
            .filter(RolePermission.role_id == role.id)
            .delete(synchronize_session="fetch")
        )
    logger.info("Revoked all %d grants from role %r", removed, role_name)
    return removed


def set_role_permissions(
    db: Session, role_name: str, desired: Iterable[PermissionGrantChange]
) -> dict[str, int]:
    """Reconcile a role's grants against a desired state.

    Entries that already match the current grants are left alone. All
    additions and removals are applied in a single transaction.

    Args:
        db: Database session
        role_name: Role to update
        desired: Desired (resource, action, granted) entries

    Returns:
        Dict with ``added`` and ``removed`` counts

    Raises:
        ValidationError: an entry is outside the catalog (nothing is applied)
        NotFoundError: unknown role
    """
    changes = list(desired)
    for change in changes:
        validate_pair(change.resource, change.action)

    role = _require_role(db, role_name)
    current = {
        (grant.resource, grant.action): grant
        for grant in db.query(RolePermission)
        .filter(RolePermission.role_id == role.id)
        .all()
    }

    to_add: dict[tuple[str, str], None] = {}
    to_remove: dict[tuple[str, str], None] = {}
    for change in changes:
        key = (change.resource, change.action)
        if change.granted and key not in current:
            to_add[key] = None
        elif not change.granted and key in current:
            to_remove[key] = None

    with transaction(db):
        for resource, action in to_add:
            _insert_grant(db, role.id, resource, action)
        for key in to_remove:
            db.delete(current[key])

    result = {"added": len(to_add), "removed": len(to_remove)}
    logger.info(
        "Reconciled role %r: %d added, %d removed",
        role_name,
        result["added"],
        result["removed"],
    )
    return result


# Evaluation


def has_permission(db: Session, role_name: str | None, resource: str, action: str) -> bool:
    """Decide whether a role may perform an action on a resource.

    The admin role is allowed everything without a lookup. Unknown roles,
    resources and actions are denied. Only a storage failure raises.
    """
    if not role_name:
        return False
    if role_name.lower() == ADMIN_ROLE_NAME:
        return True
    if not (is_valid_resource(resource) and is_valid_action(action)):
        return False

    try:
        match = (
            db.query(RolePermission.id)
            .join(Role, RolePermission.role_id == Role.id)
            .filter(
                Role.name == role_name,
                RolePermission.resource == resource,
                RolePermission.action == action,
            )
            .first()
        )
    except SQLAlchemyError as exc:
        logger.error("Permission lookup failed for role %r: %s", role_name, exc)
        raise StorageError("Permission lookup failed") from exc
    return match is not None


def check_access(db: Session, role_name: str | None, resource: str, action: str) -> bool:
    """Gate used by request handlers before touching the underlying data."""
    allowed = has_permission(db, role_name, resource, action)
    if not allowed:
        logger.info("Denied %s:%s for role %r", resource, action, role_name)
    return allowed


def get_effective_permissions(db: Session, role_name: str | None) -> list[dict[str, str]]:
    """List what a role may do, using a wildcard entry for admin."""
    if not role_name:
        return []
    if role_name.lower() == ADMIN_ROLE_NAME:
        return [{"resource": WILDCARD, "action": WILDCARD}]
    return [
        {"resource": grant.resource, "action": grant.action}
        for grant in list_permissions_for_role(db, role_name)
    ]
