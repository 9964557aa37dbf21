"""
SQLAlchemy models for the Cal.com proxy: stored credentials (current and legacy) and user profiles.
"""
import json
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class CalcomToken(Base):
    """Current credential record, one per mentor."""

    __tablename__ = "calcom_tokens_secure"

    mentor_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    cal_com_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    migrated_from_legacy: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class LegacyCalcomToken(Base):
    """Pre-migration credential record. Read once, copied into calcom_tokens_secure, then deleted."""

    __tablename__ = "calcom_tokens"

    mentor_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    cal_com_username: Mapped[str | None] = mapped_column(String(255), nullable=True)


class UserProfile(Base):
    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Older profiles carry a top-level admin flag; newer ones use roles = {"admin": true}
    admin: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    roles: Mapped[str | None] = mapped_column(Text, nullable=True)  # stored as JSON string

    def get_roles(self) -> dict:
        if not self.roles:
            return {}
        try:
            roles = json.loads(self.roles)
        except ValueError:
            return {}
        return roles if isinstance(roles, dict) else {}
