"""
Pydantic schemas for orders
Project: AutoService CRM

Defines validation and serialization schemas for orders and master
assignments, plus the pure cost and share rules they rely on.
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from autocrm.schemas.client import ClientSummary


# -------------------------------------------------------------------
# Order lifecycle
# -------------------------------------------------------------------

class OrderStatus(str, Enum):
    """Order statuses, in lifecycle order."""
    NEW = "новый"
    ACCEPTED = "принял"
    DIAGNOSTICS = "диагностика"
    IN_PROGRESS = "в_работе"
    WAITING_PARTS = "ожидание_деталей"
    READY = "готово"
    WAITING_PAYMENT = "ожидание_оплаты"
    HANDED_OVER = "выдан"
    CLOSED = "закрыт"


# Reaching one of these for the first time records the masters' salaries.
# Transitions are otherwise free: any status may follow any other.
TERMINAL_STATUSES = frozenset({OrderStatus.HANDED_OVER.value, OrderStatus.CLOSED.value})

IN_PROGRESS_STATUSES = frozenset({
    OrderStatus.ACCEPTED.value,
    OrderStatus.DIAGNOSTICS.value,
    OrderStatus.IN_PROGRESS.value,
    OrderStatus.WAITING_PARTS.value,
    OrderStatus.READY.value,
    OrderStatus.WAITING_PAYMENT.value,
})


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATUSES


def enters_terminal(old_status: Optional[str], new_status: Optional[str]) -> bool:
    """
    True when a status change moves an order from a non-terminal status
    into a terminal one.

    Moving between the two terminal statuses does not count.
    """
    return not is_terminal(old_status) and is_terminal(new_status)


# -------------------------------------------------------------------
# Service lines
# -------------------------------------------------------------------

class OrderServiceLine(BaseModel):
    """
    A service performed in an order.

    Lines are stored on the order as submitted, so later catalog price
    changes never alter existing orders.
    """
    service_id: Optional[uuid.UUID] = Field(None, description="Catalog service")
    name: Optional[str] = Field(None, max_length=255)
    price: Decimal = Field(..., ge=Decimal("0"), max_digits=10, decimal_places=2, description="Unit price")
    qty: Decimal = Field(default=Decimal("1"), gt=Decimal("0"), max_digits=8, decimal_places=2, description="Quantity")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.qty


def compute_services_cost(lines: Iterable[OrderServiceLine]) -> Decimal:
    """
    Sum of unit price * quantity over the service lines.

    Args:
        lines: Service lines of the order

    Returns:
        Services cost rounded to cents
    """
    total = sum((line.line_total for line in lines), Decimal("0"))
    return total.quantize(Decimal("0.01"))


# -------------------------------------------------------------------
# Master assignments
# -------------------------------------------------------------------

PERCENT_TOLERANCE = Decimal("0.01")


class MasterShare(BaseModel):
    master_id: uuid.UUID = Field(..., description="Assigned master")
    percent: Decimal = Field(
        ...,
        gt=Decimal("0"),
        le=Decimal("100"),
        max_digits=5,
        decimal_places=2,
        description="Share of the order total",
    )


def validate_master_shares(masters: list[MasterShare]) -> list[MasterShare]:
    """
    Checks an assignment list.

    The list must be non-empty, name every master once, and its
    percents must add up to 100 within 0.01.

    Raises:
        ValueError: If any of the rules is broken
    """
    if not masters:
        raise ValueError("Мастера обязательны")

    ids = [m.master_id for m in masters]
    if len(set(ids)) != len(ids):
        raise ValueError("Мастер указан несколько раз")

    total = sum((m.percent for m in masters), Decimal("0"))
    if abs(total - Decimal("100")) > PERCENT_TOLERANCE:
        raise ValueError("Сумма процентов мастеров должна быть равна 100%")

    return masters


class MasterAssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    master_id: uuid.UUID
    percent: Decimal
    master_name: Optional[str] = None
    created_at: Optional[datetime.datetime] = None

    @model_validator(mode="before")
    @classmethod
    def pull_master_name(cls, data):
        """Reads the master's name from the loaded User relationship."""
        master = getattr(data, "master", None)
        if master is not None:
            return {
                "master_id": data.master_id,
                "percent": data.percent,
                "master_name": master.full_name,
                "created_at": data.created_at,
            }
        return data


class OrderMastersUpdate(BaseModel):
    masters: list[MasterShare]

    @field_validator("masters")
    @classmethod
    def validate_masters(cls, v: list[MasterShare]) -> list[MasterShare]:
        return validate_master_shares(v)


# -------------------------------------------------------------------
# Orders
# -------------------------------------------------------------------

class OrderCreate(BaseModel):
    """
    Schema for creating an order.

    The identifier is assigned by the server; `services_cost` and
    `total` are derived and cannot be supplied.
    """
    client_id: Optional[uuid.UUID] = Field(None, description="Client of the order")
    services: list[OrderServiceLine] = Field(..., description="Service lines")
    parts_cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), max_digits=12, decimal_places=2)
    masters: list[MasterShare] = Field(..., description="Assigned masters")
    status: OrderStatus = Field(default=OrderStatus.NEW)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("services")
    @classmethod
    def validate_services(cls, v: list[OrderServiceLine]) -> list[OrderServiceLine]:
        if not v:
            raise ValueError("Услуги обязательны")
        return v

    @field_validator("masters")
    @classmethod
    def validate_masters(cls, v: list[MasterShare]) -> list[MasterShare]:
        return validate_master_shares(v)


class OrderUpdate(BaseModel):
    """
    Schema for updating an order.

    All fields are optional. `services`, when given, replaces the whole
    list and triggers recomputation of the services cost; `masters`,
    when given, replaces every assignment.
    """
    client_id: Optional[uuid.UUID] = None
    services: Optional[list[OrderServiceLine]] = None
    parts_cost: Optional[Decimal] = Field(None, ge=Decimal("0"), max_digits=12, decimal_places=2)
    masters: Optional[list[MasterShare]] = None
    status: Optional[OrderStatus] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("services")
    @classmethod
    def validate_services(cls, v: Optional[list[OrderServiceLine]]) -> Optional[list[OrderServiceLine]]:
        if v is not None and not v:
            raise ValueError("Услуги обязательны")
        return v

    @field_validator("masters")
    @classmethod
    def validate_masters(cls, v: Optional[list[MasterShare]]) -> Optional[list[MasterShare]]:
        if v is None:
            return v
        return validate_master_shares(v)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus = Field(..., description="New order status")


class OrderRead(BaseModel):
    """Order as returned by the API, with client and assignments."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: Optional[uuid.UUID]
    client: Optional[ClientSummary] = None
    services: list[OrderServiceLine]
    parts_cost: Decimal
    services_cost: Decimal
    total: Decimal
    status: OrderStatus
    notes: Optional[str]
    created_by: Optional[uuid.UUID]
    completed_at: Optional[datetime.datetime]
    created_at: datetime.datetime
    updated_at: datetime.datetime
    masters: list[MasterAssignmentRead] = Field(default_factory=list)


__all__ = [
    "OrderStatus",
    "TERMINAL_STATUSES",
    "IN_PROGRESS_STATUSES",
    "is_terminal",
    "enters_terminal",
    "OrderServiceLine",
    "compute_services_cost",
    "MasterShare",
    "validate_master_shares",
    "MasterAssignmentRead",
    "OrderMastersUpdate",
    "OrderCreate",
    "OrderUpdate",
    "OrderStatusUpdate",
    "OrderRead",
]
