"""
Pydantic schemas for debts
Project: AutoService CRM
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DebtCreate(BaseModel):
    """
    Schema for registering a debt.

    `remaining` is initialized to `amount` by the service.
    """
    client_id: uuid.UUID = Field(..., description="Debtor")
    order_id: Optional[str] = Field(None, max_length=10, description="Originating order")
    amount: Decimal = Field(..., gt=Decimal("0"), max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=5000)


class DebtUpdate(BaseModel):
    """Only the notes are editable; the balance moves through payments."""
    model_config = ConfigDict(extra="forbid")

    notes: Optional[str] = Field(None, max_length=5000)


class DebtRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    order_id: Optional[str]
    amount: Decimal
    remaining: Decimal
    notes: Optional[str]
    created_at: datetime.datetime
    updated_at: datetime.datetime


__all__ = ["DebtCreate", "DebtUpdate", "DebtRead"]
