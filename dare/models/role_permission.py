# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Grant table: which role may perform which action on which resource."""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dare.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from dare.models.role import Role


class RolePermission(Base, TimestampMixin):
    """A single (role, resource, action) grant.

    Roles are referenced by id only. Names are resolved in the service layer.
    """

    __tablename__ = "role_permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resource: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "role_id", "resource", "action", name="uq_role_permissions_grant"
        ),
    )

    role: Mapped["Role"] = relationship("Role", back_populates="permissions")

    @property
    def role_name(self) -> str:
        return self.role.name
