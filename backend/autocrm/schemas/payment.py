"""
Pydantic schemas for payments
Project: AutoService CRM
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PaymentType(str, Enum):
    """Payment methods accepted at the desk."""
    CASH = "наличные"
    CARD = "карта"
    TRANSFER = "перевод"
    TERMINAL = "терминал"


class PaymentCreate(BaseModel):
    """
    Schema for registering a payment.

    At least one of order_id, parts_sale_id, debt_id is required. A
    payment with debt_id lowers the debt's remaining balance.
    """
    order_id: Optional[str] = Field(None, max_length=10)
    parts_sale_id: Optional[uuid.UUID] = None
    debt_id: Optional[uuid.UUID] = None
    amount: Decimal = Field(..., gt=Decimal("0"), max_digits=12, decimal_places=2)
    type: PaymentType = Field(..., description="Payment method")
    notes: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="after")
    def check_reference(self) -> "PaymentCreate":
        if self.order_id is None and self.parts_sale_id is None and self.debt_id is None:
            raise ValueError("Платеж должен ссылаться на заказ, продажу или долг")
        return self


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: Optional[str]
    parts_sale_id: Optional[uuid.UUID]
    debt_id: Optional[uuid.UUID]
    amount: Decimal
    type: PaymentType
    notes: Optional[str]
    created_by: Optional[uuid.UUID]
    created_at: datetime.datetime


__all__ = ["PaymentType", "PaymentCreate", "PaymentRead"]
