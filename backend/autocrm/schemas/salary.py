"""
Pydantic schemas for salaries and bonuses
Project: AutoService CRM
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SalaryRead(BaseModel):
    """Commission of a master on an order."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    master_id: uuid.UUID
    order_id: str
    amount: Decimal
    paid: bool
    paid_at: Optional[datetime.datetime]
    week_period: datetime.date
    notes: Optional[str]
    created_at: datetime.datetime


class SalaryPay(BaseModel):
    notes: Optional[str] = Field(None, max_length=5000)


class WeeklySalaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    master_id: uuid.UUID
    week_period: datetime.date
    amount: Decimal
    orders_count: int
    calculated_at: datetime.datetime


class WeeklyRecalculationResult(BaseModel):
    """Outcome of a weekly aggregation run."""
    week_period: datetime.date
    masters: int
    total: Decimal
    mismatches: list[uuid.UUID] = Field(
        default_factory=list,
        description="Masters whose weekly total differs from their per-order rows",
    )


class BonusCreate(BaseModel):
    order_id: Optional[str] = Field(None, max_length=10)
    amount: Decimal = Field(..., ge=Decimal("0"), max_digits=12, decimal_places=2)
    comment: Optional[str] = Field(None, max_length=5000)


class BonusRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    director_id: uuid.UUID
    order_id: Optional[str]
    amount: Decimal
    comment: Optional[str]
    created_at: datetime.datetime


__all__ = [
    "SalaryRead",
    "SalaryPay",
    "WeeklySalaryRead",
    "WeeklyRecalculationResult",
    "BonusCreate",
    "BonusRead",
]
