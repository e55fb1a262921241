# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Database models package."""

from dare.models.base import Base, TimestampMixin
from dare.models.enums import PermissionAction, PermissionResource
from dare.models.permission import Permission
from dare.models.role import Role
from dare.models.role_permission import RolePermission
from dare.models.system_settings import SystemSettings
from dare.models.user import User

__all__ = [
    "Base",
    "Permission",
    "PermissionAction",
    "PermissionResource",
    "Role",
    "RolePermission",
    "SystemSettings",
    "TimestampMixin",
    "User",
]
