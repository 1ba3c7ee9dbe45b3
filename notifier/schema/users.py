"""SQLAlchemy model for the user directory fields the notifier reads and writes."""

from __future__ import annotations

import datetime
from enum import Enum

from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from notifier.core.database import Base


class UserRole(str, Enum):
  TRUST = "Trust"
  USER = "User"
  ADMIN = "Admin"


class User(Base):
  """A user with at most one current device token."""

  __tablename__ = "users"
  __table_args__ = (Index("ix_users_role_device_token", "role", "device_token"),)

  id: Mapped[str] = mapped_column(String(64), primary_key=True)
  role: Mapped[str] = mapped_column(String(32), nullable=False, default=UserRole.USER.value)
  device_token: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
