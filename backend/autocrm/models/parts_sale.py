"""
SQLAlchemy model for over-the-counter parts sales
Project: AutoService CRM
"""

from __future__ import annotations
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Computed, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.models import Base
from autocrm.models.mixins import TimestampMixin, UUIDMixin


class PartsSale(Base, UUIDMixin, TimestampMixin):
    """
    A sale of parts that is not tied to a repair order.

    The buyer may be an existing client or just a name and a phone.
    `total` is generated by the database as quantity * price - discount.
    """

    __tablename__ = "parts_sales"

    client_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, doc="Buyer name")
    client_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, doc="Buyer phone")

    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Registered client, if any",
    )

    part_name: Mapped[str] = mapped_column(String(255), nullable=False, doc="Part description")
    part_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, doc="Catalog number")

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, doc="Unit price")

    discount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Absolute discount on the whole sale",
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        Computed("quantity * price - discount", persisted=True),
        doc="Sale total, generated by the database",
    )

    seller_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="User who made the sale",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_parts_sales_created_at", "created_at"),
        Index("ix_parts_sales_client_phone", "client_phone"),
        CheckConstraint("quantity > 0", name="ck_parts_sales_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_parts_sales_price_non_negative"),
        CheckConstraint("discount >= 0", name="ck_parts_sales_discount_non_negative"),
        CheckConstraint("discount <= quantity * price", name="ck_parts_sales_discount_max"),
    )

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self) -> str:
        return f"<PartsSale(id={self.id}, part={self.part_name}, qty={self.quantity})>"
