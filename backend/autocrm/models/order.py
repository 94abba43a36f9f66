"""
SQLAlchemy models for orders
Project: AutoService CRM

Contains:
- Order: repair order with a human-readable identifier (ZA001, ZA002, ...)
- OrderMaster: assignment of a master to an order with a commission percent
"""

from __future__ import annotations
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Computed,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrm.models import Base
from autocrm.models.mixins import CreatedAtMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from autocrm.models.client import Client
    from autocrm.models.user import User


# Ordered lifecycle; the status enum lives in autocrm.schemas.order.OrderStatus
ORDER_STATUSES = (
    "новый",
    "принял",
    "диагностика",
    "в_работе",
    "ожидание_деталей",
    "готово",
    "ожидание_оплаты",
    "выдан",
    "закрыт",
)

_status_list = ", ".join(f"'{s}'" for s in ORDER_STATUSES)


class Order(Base, TimestampMixin):
    """
    Repair order.

    The primary key is the human-readable identifier shown to clients and
    printed on receipts. `total` is a generated column and is never written
    by the application.

    Attributes:
        id: Identifier such as ZA001
        client_id: Client who brought the car (kept NULL if the client is deleted)
        services: Service lines [{service_id, name, price, qty}]
        parts_cost: Cost of the parts used
        services_cost: Sum of price * qty over the service lines
        total: parts_cost + services_cost
        status: Lifecycle status
        notes: Free notes
        created_by: User who opened the order
        completed_at: First time the order reached a terminal status

    Relationships:
        client: Client of the order
        masters: Assigned masters with their percent
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(
        String(10),
        primary_key=True,
        doc="Human-readable identifier",
    )

    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Client of the order",
    )

    services: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=list,
        doc="Service lines",
    )

    parts_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Cost of parts",
    )

    services_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Cost of services, derived from the service lines",
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        Computed("parts_cost + services_cost", persisted=True),
        doc="Order total, generated by the database",
    )

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="новый",
        doc="Lifecycle status",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, doc="Free notes")

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="User who opened the order",
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="First transition into a terminal status",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped[Optional["Client"]] = relationship(
        "Client",
        back_populates="orders",
        lazy="joined",
    )

    masters: Mapped[List["OrderMaster"]] = relationship(
        "OrderMaster",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderMaster.created_at",
    )

    # ------------------------------------------------------------
    # Indexes and constraints
    # ------------------------------------------------------------
    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_created_at", "created_at"),
        Index("ix_orders_completed_at", "completed_at"),
        CheckConstraint(f"status IN ({_status_list})", name="ck_orders_status"),
        CheckConstraint("parts_cost >= 0", name="ck_orders_parts_cost_non_negative"),
        CheckConstraint("services_cost >= 0", name="ck_orders_services_cost_non_negative"),
    )

    # Fetch the generated total back after INSERT and UPDATE
    __mapper_args__ = {"eager_defaults": True}

    @property
    def master_ids(self) -> list[uuid.UUID]:
        return [m.master_id for m in self.masters]

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, status={self.status}, total={self.total})>"


class OrderMaster(Base, UUIDMixin, CreatedAtMixin):
    """
    Assignment of a master to an order.

    The percents of one order sum to 100; that is checked when the
    assignment list is submitted, the table only bounds each row.
    """

    __tablename__ = "order_masters"

    order_id: Mapped[str] = mapped_column(
        String(10),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    master_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        doc="Share of the order total earned by the master",
    )

    order: Mapped["Order"] = relationship("Order", back_populates="masters")

    master: Mapped["User"] = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("order_id", "master_id", name="uq_order_masters_order_master"),
        CheckConstraint("percent > 0 AND percent <= 100", name="ck_order_masters_percent_range"),
    )

    def __repr__(self) -> str:
        return f"<OrderMaster(order_id={self.order_id}, master_id={self.master_id}, percent={self.percent})>"
