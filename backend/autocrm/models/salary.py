"""
SQLAlchemy models for master compensation
Project: AutoService CRM

Contains:
- Salary: commission of one master on one completed order (payable ledger)
- WeeklySalary: per-week aggregate rebuilt by the scheduled job
- Bonus: extra payment granted by the director
"""

from __future__ import annotations
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from autocrm.models import Base
from autocrm.models.mixins import CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from autocrm.models.user import User


class Salary(Base, UUIDMixin, CreatedAtMixin):
    """
    Commission earned by a master on an order.

    Written once, when the order first reaches a terminal status. The
    unique (master_id, order_id) pair makes repeated writes no-ops.
    """

    __tablename__ = "salaries"

    master_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    order_id: Mapped[str] = mapped_column(
        String(10),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    week_period: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Monday of the week the salary belongs to",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    master: Mapped["User"] = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("master_id", "order_id", name="uq_salaries_master_order"),
        Index("ix_salaries_week_period", "week_period"),
        CheckConstraint("amount >= 0", name="ck_salaries_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Salary(master_id={self.master_id}, order_id={self.order_id}, amount={self.amount})>"


class WeeklySalary(Base, UUIDMixin):
    """Weekly commission aggregate of a master."""

    __tablename__ = "weekly_salaries"

    master_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    week_period: Mapped[date] = mapped_column(Date, nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    orders_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("master_id", "week_period", name="uq_weekly_salaries_master_week"),
    )

    def __repr__(self) -> str:
        return f"<WeeklySalary(master_id={self.master_id}, week={self.week_period}, amount={self.amount})>"


class Bonus(Base, UUIDMixin, CreatedAtMixin):
    """Extra payment granted by the director, optionally for an order."""

    __tablename__ = "bonuses"

    director_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    order_id: Mapped[Optional[str]] = mapped_column(
        String(10),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_bonuses_amount_non_negative"),
    )
