# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Deploy-time seeding of roles, grants and the permission catalog."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from dare.database import transaction
from dare.exceptions import NotFoundError
from dare.models import Permission, Role, RolePermission, SystemSettings
from dare.rbac.permissions import catalog_entries
from dare.rbac.roles import ADMIN_ROLE_NAME, DEFAULT_ROLES

from . import rbac_service

logger = logging.getLogger(__name__)

SEED_MARKER_KEY = "rbac_seed_completed"


def is_seeded(db: Session) -> bool:
    return db.get(SystemSettings, SEED_MARKER_KEY) is not None


def _sync_catalog(db: Session) -> tuple[int, int]:
    existing = {
        (p.resource, p.action) for p in db.query(Permission.resource, Permission.action)
    }
    created = 0
    for entry in catalog_entries():
        if (entry["resource"], entry["action"]) in existing:
            continue
        db.add(Permission(**entry))
        created += 1
    db.flush()
    return len(existing), created


def sync_permission_catalog(db: Session) -> dict[str, int]:
    """Insert catalog rows missing from the permissions table.

    Returns:
        Dict with ``existing``, ``created`` and ``total_possible`` counts
    """
    with transaction(db):
        existing, created = _sync_catalog(db)
    total = existing + created
    logger.info("Permission catalog synced: %d created, %d total", created, total)
    return {"existing": existing, "created": created, "total_possible": total}


def seed_rbac_data(db: Session) -> bool:
    """Seed the permission catalog and the default roles with their grants.

    Runs once: a ``system_settings`` marker row records completion and later
    calls return without touching anything. Roles that already exist keep
    their current grants.

    Returns:
        True if seeding ran, False if the marker was already present
    """
    if is_seeded(db):
        logger.debug("RBAC seed marker present, skipping")
        return False

    with transaction(db):
        _sync_catalog(db)

        for role_data in DEFAULT_ROLES:
            role = rbac_service.get_role_by_name(db, role_data["name"])
            if role is not None:
                logger.info("Role %r already present, leaving grants as-is", role.name)
                continue

            role = Role(
                name=role_data["name"],
                description=role_data["description"],
                is_system=role_data["is_system"],
                is_editable=role_data["is_editable"],
            )
            db.add(role)
            db.flush()  # Flush to get the role ID

            for resource, action in role_data["permissions"]:
                db.add(RolePermission(role_id=role.id, resource=resource, action=action))
            logger.info(
                "Seeded role %r with %d grants", role.name, len(role_data["permissions"])
            )

        db.add(
            SystemSettings(
                key=SEED_MARKER_KEY, value=datetime.now(UTC).isoformat()
            )
        )

    return True


def reset_admin_permissions(db: Session) -> int:
    """Replace the admin role's grants with every catalog entry.

    Returns:
        Number of grants the admin role holds afterwards

    Raises:
        NotFoundError: the admin role has not been seeded
    """
    admin = rbac_service.get_role_by_name(db, ADMIN_ROLE_NAME)
    if admin is None:
        raise NotFoundError("Admin role not found")

    entries = list(catalog_entries())
    with transaction(db):
        db.query(RolePermission).filter(RolePermission.role_id == admin.id).delete(
            synchronize_session="fetch"
        )
        for entry in entries:
            db.add(
                RolePermission(
                    role_id=admin.id, resource=entry["resource"], action=entry["action"]
                )
            )

    logger.info("Reset admin role to %d grants", len(entries))
    return len(entries)
