"""
SQLAlchemy models for users and authentication state
Project: AutoService CRM

Contains:
- User: masters (technicians) and staff (admin, director)
- UserSession: server-side session every bearer token is bound to
- PhoneCode: one-time codes for phone login
"""

from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrm.models import Base
from autocrm.models.mixins import CreatedAtMixin, TimestampMixin, UUIDMixin


class UserRole(str, Enum):
    """Roles of system users."""
    MASTER = "master"
    ADMIN = "admin"
    DIRECTOR = "director"


STAFF_ROLES = (UserRole.ADMIN.value, UserRole.DIRECTOR.value)


class User(Base, UUIDMixin, TimestampMixin):
    """
    A person who logs into the CRM.

    Masters earn commission on the orders they are assigned to;
    admins and the director see and manage everything.

    Attributes:
        email: Unique login email
        full_name: Display name
        phone: Unique phone, used by phone login
        role: master | admin | director
        hashed_password: bcrypt hash, NULL for OAuth/phone-only accounts
        is_active: Disabled users cannot authenticate
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        doc="Unique login email",
    )

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Full name",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        unique=True,
        nullable=True,
        doc="Phone number",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.MASTER.value,
        doc="User role",
    )

    hashed_password: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Password hash (local authentication)",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Inactive users cannot log in",
    )

    sessions: Mapped[list["UserSession"]] = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_users_role", "role"),
        CheckConstraint(
            "role IN ('master', 'admin', 'director')",
            name="ck_users_role",
        ),
    )

    @property
    def is_staff(self) -> bool:
        """Admins and the director see everything."""
        return self.role in STAFF_ROLES

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class UserSession(Base, UUIDMixin, CreatedAtMixin):
    """
    A login session.

    Access and refresh tokens carry the session id in the `sid` claim;
    a token is accepted only while its session is neither revoked nor expired.
    """

    __tablename__ = "user_sessions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    auth_method: Mapped[str] = mapped_column(String(20), nullable=False, default="password")
    refresh_jti: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        doc="Id of the only refresh token currently accepted for this session",
    )
    user_agent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="sessions", lazy="joined")

    def is_valid(self, now: datetime) -> bool:
        return self.revoked_at is None and self.expires_at > now

    def __repr__(self) -> str:
        return f"<UserSession(id={self.id}, user_id={self.user_id}, revoked={self.revoked_at is not None})>"


class PhoneCode(Base, UUIDMixin, CreatedAtMixin):
    """One-time login code sent to a phone number (stored hashed)."""

    __tablename__ = "phone_codes"

    phone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    code_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consumed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
