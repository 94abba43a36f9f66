"""
SQLAlchemy model for client debts
Project: AutoService CRM
"""

from __future__ import annotations
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrm.models import Base
from autocrm.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from autocrm.models.client import Client


class Debt(Base, UUIDMixin, TimestampMixin):
    """
    Money a client owes the shop.

    `remaining` starts equal to `amount` and is lowered only by payments
    referencing the debt; it never goes below zero.
    """

    __tablename__ = "debts"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Debtor",
    )

    order_id: Mapped[Optional[str]] = mapped_column(
        String(10),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Order the debt originates from",
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, doc="Original amount")

    remaining: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, doc="Outstanding amount")

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    client: Mapped["Client"] = relationship("Client", back_populates="debts", lazy="joined")

    __table_args__ = (
        Index("ix_debts_remaining", "remaining"),
        CheckConstraint("amount > 0", name="ck_debts_amount_positive"),
        CheckConstraint("remaining >= 0", name="ck_debts_remaining_non_negative"),
    )

    @property
    def is_closed(self) -> bool:
        return self.remaining == 0

    def __repr__(self) -> str:
        return f"<Debt(id={self.id}, client_id={self.client_id}, remaining={self.remaining})>"
