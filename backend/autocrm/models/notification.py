"""
SQLAlchemy model for in-app notifications
Project: AutoService CRM
"""

from __future__ import annotations
import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.models import Base
from autocrm.models.mixins import CreatedAtMixin, UUIDMixin


class Notification(Base, UUIDMixin, CreatedAtMixin):
    """
    Message shown to a single user.

    `entity_type` / `entity_id` point at the object the notification is about
    (for now only orders, whose ids are strings).
    """

    __tablename__ = "notifications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "read"),
        Index("ix_notifications_created_at", "created_at"),
    )
