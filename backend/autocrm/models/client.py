"""
SQLAlchemy model for clients
Project: AutoService CRM

Client registry: the people who bring their cars to the shop.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrm.models import Base
from autocrm.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from autocrm.models.debt import Debt
    from autocrm.models.order import Order


class Client(Base, UUIDMixin, TimestampMixin):
    """
    Client registry entry.

    The phone number is the natural key of a client: it is unique and is
    what the front desk searches by.

    Attributes:
        name: Client name
        phone: Unique phone number
        car1: Main car (make, model, plate as free text)
        car2: Optional second car
        vin: Vehicle identification number (17 characters)
        notes: Free notes
    """

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Client name",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        unique=True,
        nullable=True,
        doc="Unique phone number",
    )

    car1: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Main car",
    )

    car2: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Second car",
    )

    vin: Mapped[Optional[str]] = mapped_column(
        String(17),
        nullable=True,
        doc="VIN of the main car",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Free notes",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    orders: Mapped[List["Order"]] = relationship(
        "Order",
        back_populates="client",
        lazy="noload",
        passive_deletes=True,
    )

    debts: Mapped[List["Debt"]] = relationship(
        "Debt",
        back_populates="client",
        lazy="noload",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_clients_name", "name"),
        CheckConstraint(
            "vin IS NULL OR length(vin) = 17",
            name="ck_clients_vin_length",
        ),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, phone={self.phone})>"
