"""
SQLAlchemy model for the service catalog
Project: AutoService CRM
"""

from __future__ import annotations
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.models import Base
from autocrm.models.mixins import TimestampMixin, UUIDMixin


class Service(Base, UUIDMixin, TimestampMixin):
    """
    A priced job the shop offers (oil change, diagnostics, ...).

    Orders copy name and price into their own service lines, so later
    price edits never change existing orders.
    """

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(255), nullable=False, doc="Service name")

    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="List price",
    )

    category: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Catalog category",
    )

    duration_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=60,
        doc="Expected duration in minutes",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Inactive services are hidden from masters",
    )

    __table_args__ = (
        Index("ix_services_category", "category"),
        CheckConstraint("price >= 0", name="ck_services_price_non_negative"),
        CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name}, price={self.price})>"
