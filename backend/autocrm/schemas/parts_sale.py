"""
Pydantic schemas for parts sales
Project: AutoService CRM
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from autocrm.schemas.user import validate_phone_field


def compute_sale_total(quantity: int, price: Decimal, discount: Decimal) -> Decimal:
    """quantity * price - discount, the value the database generates."""
    return (Decimal(quantity) * price - discount).quantize(Decimal("0.01"))


def validate_discount(quantity: Optional[int], price: Optional[Decimal], discount: Optional[Decimal]) -> None:
    """
    The discount cannot exceed the gross amount of the sale.

    Raises:
        ValueError: If discount > quantity * price
    """
    if quantity is None or price is None or discount is None:
        return
    if discount > Decimal(quantity) * price:
        raise ValueError("Скидка превышает стоимость")


class PartsSaleBase(BaseModel):
    """
    Shared parts sale fields.

    Attributes:
        client_name: Buyer name
        client_phone: Buyer phone
        client_id: Registered client, if any
        part_name: Part description
        part_number: Catalog number
        quantity: Pieces sold
        price: Unit price
        discount: Absolute discount on the sale
        notes: Free notes
    """
    client_name: Optional[str] = Field(None, max_length=255)
    client_phone: Optional[str] = Field(None)
    client_id: Optional[uuid.UUID] = None
    part_name: str = Field(..., min_length=1, max_length=255)
    part_number: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(default=1, gt=0)
    price: Decimal = Field(..., ge=Decimal("0"), max_digits=10, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), max_digits=10, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("client_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_field(v)


class PartsSaleCreate(PartsSaleBase):
    @model_validator(mode="after")
    def check_discount(self) -> "PartsSaleCreate":
        validate_discount(self.quantity, self.price, self.discount)
        return self


class PartsSaleUpdate(BaseModel):
    """All fields optional; the discount is rechecked against stored values by the service."""
    client_name: Optional[str] = Field(None, max_length=255)
    client_phone: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    part_name: Optional[str] = Field(None, min_length=1, max_length=255)
    part_number: Optional[str] = Field(None, max_length=100)
    quantity: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=Decimal("0"), max_digits=10, decimal_places=2)
    discount: Optional[Decimal] = Field(None, ge=Decimal("0"), max_digits=10, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("client_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_field(v)


class PartsSaleRead(PartsSaleBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    total: Decimal
    seller_id: Optional[uuid.UUID]
    created_at: datetime.datetime
    updated_at: datetime.datetime


__all__ = [
    "compute_sale_total",
    "validate_discount",
    "PartsSaleCreate",
    "PartsSaleUpdate",
    "PartsSaleRead",
]
