from __future__ import annotations

import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ocrbase.core.database import Base
from ocrbase.utils.ids import create_id


class ApiKey(Base):
  __tablename__ = "api_keys"

  id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: create_id("api_key"))
  organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  key_hash: Mapped[str] = mapped_column(String, nullable=False, unique=True)
  key_prefix: Mapped[str] = mapped_column(String, nullable=False)
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
  request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
  last_used_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class AuthSession(Base):
  """Browser session row written by the auth provider; read-only here."""

  __tablename__ = "session"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  token: Mapped[str] = mapped_column(String, nullable=False, unique=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  active_organization_id: Mapped[str | None] = mapped_column(String, nullable=True)
  expires_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
