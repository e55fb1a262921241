# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""API dependencies for dependency injection."""

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session, joinedload

from dare.config import settings
from dare.database import get_db
from dare.exceptions import ForbiddenError
from dare.models import User
from dare.models.enums import PermissionAction, PermissionResource
from dare.services import rbac_service

__all__ = ["get_current_user", "get_db", "require_permission"]


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the caller from the header set by the authenticating proxy."""
    username = request.headers.get(settings.auth_user_header)
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = (
        db.query(User)
        .options(joinedload(User.role))
        .filter(User.username == username)
        .first()
    )
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    return user


def require_permission(
    resource: PermissionResource, action: PermissionAction
) -> Callable[..., User]:
    """Dependency for permission-based authorization."""

    def dependency(
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
    ) -> User:
        if not rbac_service.check_access(
            db, current_user.role_name, resource.value, action.value
        ):
            raise ForbiddenError(
                f"You don't have permission to {action.value} {resource.value}"
            )
        return current_user

    return dependency
