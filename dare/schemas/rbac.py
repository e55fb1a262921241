# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Schemas for roles, grants and permission checks."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PermissionSchema(BaseModel):
    """Schema representing a catalog entry."""

    model_config = ConfigDict(from_attributes=True)

    resource: str
    action: str
    module: str
    description: str | None


class PermissionRef(BaseModel):
    """A bare (resource, action) pair."""

    resource: str = Field(min_length=1)
    action: str = Field(min_length=1)


class RoleSchema(BaseModel):
    """Schema representing a role."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    is_system: bool
    is_editable: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RolePermissionSchema(BaseModel):
    """Schema representing a grant."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role_id: int
    role_name: str
    resource: str
    action: str
    created_at: datetime | None = None


class RoleWithPermissionsSchema(RoleSchema):
    """Schema representing a role along with its grants."""

    permissions: list[PermissionRef]


class RoleCreateSchema(BaseModel):
    """Schema for creating a new role."""

    name: str = Field(min_length=1, max_length=50)
    description: str | None = None
    is_editable: bool = True
    permissions: list[PermissionRef] = []


class RoleUpdateSchema(BaseModel):
    """Schema for updating a role."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = None


class RolePermissionRequest(BaseModel):
    """Body for granting or revoking a single permission."""

    role: str = Field(min_length=1)
    resource: str = Field(min_length=1)
    action: str = Field(min_length=1)


class PermissionGrantChange(BaseModel):
    """Desired state of one (resource, action) pair for a role."""

    resource: str = Field(min_length=1)
    action: str = Field(min_length=1)
    granted: bool


class BatchPermissionUpdate(BaseModel):
    """Body for reconciling a role's grants against a desired set."""

    role: str = Field(min_length=1)
    permissions: list[PermissionGrantChange]


class ReconciliationResult(BaseModel):
    added: int
    removed: int


class BatchPermissionResponse(BaseModel):
    message: str
    results: ReconciliationResult


class ResourcesActionsSchema(BaseModel):
    resources: list[str]
    actions: list[str]


class AccessCheckRequest(BaseModel):
    resource: str
    action: str


class AccessCheckResponse(BaseModel):
    role: str | None
    resource: str
    action: str
    allowed: bool


class MyPermissionsSchema(BaseModel):
    """Effective permissions of the calling user."""

    role: str | None
    permissions: list[PermissionRef]


class CatalogSyncResult(BaseModel):
    existing: int
    created: int
    total_possible: int


class MessageResponse(BaseModel):
    message: str
