# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Key/value store for persisted system flags."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dare.models.base import Base, TimestampMixin


class SystemSettings(Base, TimestampMixin):
    """System-wide setting, e.g. the RBAC seed completion marker."""

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
