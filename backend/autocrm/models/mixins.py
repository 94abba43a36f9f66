"""
SQLAlchemy model mixins
Project: AutoService CRM

Reusable columns shared by the models and the updated_at listener.
"""

import datetime
import uuid

from sqlalchemy import DateTime, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


class CreatedAtMixin:
    """
    Adds a server-side `created_at` timestamp.

    Used by append-only tables (payments, salaries, notifications)
    that never get an `updated_at`.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Row creation time",
    )


class TimestampMixin(CreatedAtMixin):
    """
    Adds `created_at` and `updated_at`.

    `updated_at` is maintained by the `before_flush` listener below.

    Usage:
        class MyModel(Base, UUIDMixin, TimestampMixin):
            __tablename__ = "my_table"
    """

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Last modification time",
    )


class UUIDMixin:
    """UUID primary key generated client-side."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


# ------------------------------------------------------------
# Event listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Stamps `updated_at` on new and modified rows before every flush.

    Only objects that actually changed column values are touched, so
    loading an order and flushing without edits keeps its timestamp.
    """
    now = datetime.datetime.now(datetime.timezone.utc)

    for obj in session.dirty:
        if hasattr(obj, "updated_at"):
            if session.is_modified(obj, include_collections=False):
                obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now
