"""
SQLAlchemy model for payments
Project: AutoService CRM
"""

from __future__ import annotations
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.models import Base
from autocrm.models.mixins import CreatedAtMixin, UUIDMixin

PAYMENT_TYPES = ("наличные", "карта", "перевод", "терминал")

_type_list = ", ".join(f"'{t}'" for t in PAYMENT_TYPES)


class Payment(Base, UUIDMixin, CreatedAtMixin):
    """
    Money received by the shop.

    A payment references at least one of an order, a parts sale or a debt.
    Payments are append-only: a mistaken payment is deleted, never edited.
    """

    __tablename__ = "payments"

    order_id: Mapped[Optional[str]] = mapped_column(
        String(10),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    parts_sale_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("parts_sales.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    debt_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("debts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False, doc="Payment method")

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="User who registered the payment",
    )

    __table_args__ = (
        Index("ix_payments_created_at", "created_at"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(f"type IN ({_type_list})", name="ck_payments_type"),
        CheckConstraint(
            "order_id IS NOT NULL OR parts_sale_id IS NOT NULL OR debt_id IS NOT NULL",
            name="ck_payments_has_reference",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, type={self.type})>"
