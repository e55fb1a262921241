# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Role and permission administration endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from dare.api.deps import get_current_user, get_db, require_permission
from dare.exceptions import NotFoundError
from dare.models import User
from dare.models.enums import PermissionAction as A
from dare.models.enums import PermissionResource as R
from dare.rbac.permissions import resources_and_actions
from dare.schemas.rbac import (
    AccessCheckRequest,
    AccessCheckResponse,
    BatchPermissionResponse,
    BatchPermissionUpdate,
    CatalogSyncResult,
    MessageResponse,
    MyPermissionsSchema,
    PermissionRef,
    PermissionSchema,
    ResourcesActionsSchema,
    RoleCreateSchema,
    RolePermissionRequest,
    RolePermissionSchema,
    RoleSchema,
    RoleUpdateSchema,
    RoleWithPermissionsSchema,
)
from dare.services import rbac_seed_service, rbac_service
from dare.services.permission_matrix_service import PermissionMatrixReport

router = APIRouter(prefix="/rbac", tags=["rbac"])

EXPORT_MEDIA_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}


@router.get(
    "/resources-actions",
    response_model=ResourcesActionsSchema,
    summary="List the permission vocabulary",
)
def get_resources_actions(
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.VIEW)),
):
    """Return every resource and action a grant may name."""
    return resources_and_actions()


@router.get(
    "/permissions",
    response_model=list[PermissionSchema],
    summary="List the permission catalog",
)
def list_permissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.VIEW)),
):
    return rbac_service.list_catalog_permissions(db)


@router.get("/roles", response_model=list[RoleSchema], summary="List all roles")
def list_roles(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.ROLES, A.VIEW)),
):
    return rbac_service.list_roles(db)


@router.get(
    "/roles/{role_id}",
    response_model=RoleWithPermissionsSchema,
    summary="Get a role with its grants",
)
def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.ROLES, A.VIEW)),
):
    role = rbac_service.get_role(db, role_id)
    if role is None:
        raise NotFoundError(f"Role {role_id} not found")

    grants = rbac_service.list_permissions_for_role(db, role.name)
    return RoleWithPermissionsSchema(
        **RoleSchema.model_validate(role).model_dump(),
        permissions=[
            PermissionRef(resource=g.resource, action=g.action) for g in grants
        ],
    )


@router.post(
    "/roles",
    response_model=RoleSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create a custom role",
)
def create_role(
    role_in: RoleCreateSchema,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.ROLES, A.CREATE)),
):
    """Create a non-system role, optionally with an initial grant set."""
    return rbac_service.create_role(
        db,
        name=role_in.name,
        description=role_in.description,
        is_editable=role_in.is_editable,
        permissions=[(p.resource, p.action) for p in role_in.permissions],
    )


@router.patch("/roles/{role_id}", response_model=RoleSchema, summary="Update a role")
def update_role(
    role_id: int,
    role_in: RoleUpdateSchema,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.ROLES, A.EDIT)),
):
    """Rename or re-describe a role. System roles keep their name."""
    return rbac_service.update_role(db, role_id, role_in)


@router.delete(
    "/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a custom role",
)
def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.ROLES, A.DELETE)),
):
    """Delete a role and its grants. System roles cannot be deleted."""
    rbac_service.delete_role(db, role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/role-permissions",
    response_model=list[RolePermissionSchema],
    summary="List every grant",
)
def list_all_role_permissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.VIEW)),
):
    return rbac_service.list_all_role_permissions(db)


@router.get(
    "/role-permissions/{role_name}",
    response_model=list[RolePermissionSchema],
    summary="List a role's grants",
)
def list_role_permissions(
    role_name: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.VIEW)),
):
    return rbac_service.list_permissions_for_role(db, role_name)


@router.post(
    "/role-permissions",
    response_model=RolePermissionSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Grant a permission to a role",
)
def create_role_permission(
    grant_in: RolePermissionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.MANAGE)),
):
    """Grant a permission. Granting an existing permission returns it unchanged."""
    return rbac_service.create_role_permission(
        db, grant_in.role, grant_in.resource, grant_in.action
    )


@router.delete(
    "/role-permissions",
    response_model=MessageResponse,
    summary="Revoke a permission from a role",
)
def delete_role_permission(
    grant_in: RolePermissionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.MANAGE)),
):
    rbac_service.delete_role_permission(
        db, grant_in.role, grant_in.resource, grant_in.action
    )
    return MessageResponse(message="Permission deleted successfully")


@router.put(
    "/role-permissions/batch",
    response_model=BatchPermissionResponse,
    summary="Reconcile a role's grants",
)
def batch_update_role_permissions(
    batch: BatchPermissionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.MANAGE)),
):
    """Bring a role's grants in line with the submitted granted flags."""
    results = rbac_service.set_role_permissions(db, batch.role, batch.permissions)
    return BatchPermissionResponse(
        message="Permissions updated successfully", results=results
    )


@router.delete(
    "/role-permissions/{role_name}",
    response_model=MessageResponse,
    summary="Revoke all of a role's permissions",
)
def delete_all_role_permissions(
    role_name: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.PERMISSIONS, A.MANAGE)),
):
    removed = rbac_service.delete_all_role_permissions(db, role_name)
    return MessageResponse(
        message=f"Removed {removed} permissions from role '{role_name}'"
    )


@router.post(
    "/check",
    response_model=AccessCheckResponse,
    summary="Check the caller's access",
)
def check_access(
    check: AccessCheckRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Evaluate a resource/action pair against the caller's role."""
    role_name = current_user.role_name
    return AccessCheckResponse(
        role=role_name,
        resource=check.resource,
        action=check.action,
        allowed=rbac_service.check_access(db, role_name, check.resource, check.action),
    )


@router.get(
    "/me/permissions",
    response_model=MyPermissionsSchema,
    summary="Get the caller's effective permissions",
)
def get_my_permissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    role_name = current_user.role_name
    return MyPermissionsSchema(
        role=role_name,
        permissions=rbac_service.get_effective_permissions(db, role_name),
    )


@router.get("/reports/permission-matrix", summary="Export the role/permission matrix")
def export_permission_matrix(
    format: Literal["xlsx", "csv"] = "xlsx",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.REPORTS, A.VIEW)),
):
    report = PermissionMatrixReport(db)
    content = report.to_excel() if format == "xlsx" else report.to_csv()
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={
            "Content-Disposition": (
                f'attachment; filename="{report.get_filename(format)}"'
            )
        },
    )


@router.post(
    "/admin/reset-permissions",
    response_model=MessageResponse,
    summary="Reset admin grants to the full catalog",
)
def reset_admin_permissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.SYSTEM, A.MANAGE)),
):
    count = rbac_seed_service.reset_admin_permissions(db)
    return MessageResponse(message=f"Admin role now holds {count} permissions")


@router.post(
    "/admin/sync-catalog",
    response_model=CatalogSyncResult,
    summary="Create missing catalog entries",
)
def sync_catalog(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(R.SYSTEM, A.MANAGE)),
):
    return rbac_seed_service.sync_permission_catalog(db)
