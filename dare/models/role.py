# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Role model."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dare.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from dare.models.role_permission import RolePermission
    from dare.models.user import User


class Role(Base, TimestampMixin):
    """Named role holding a set of grants.

    System roles cannot be deleted or renamed. Names are unique regardless
    of case; the functional index on ``lower(name)`` is the authoritative
    duplicate check.
    """

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_editable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    permissions: Mapped[list["RolePermission"]] = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    # users.role_id is SET NULL when the role goes away
    users: Mapped[list["User"]] = relationship("User", back_populates="role")

    def __repr__(self) -> str:
        return f"<Role {self.name!r}>"


Index("uq_roles_name_lower", func.lower(Role.name), unique=True)
