"""
Pydantic schemas for clients
Project: AutoService CRM
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autocrm.schemas.user import validate_phone_field


def validate_vin_field(v: Optional[str]) -> Optional[str]:
    """
    Normalizes a VIN: uppercase, 17 characters, no I, O or Q.

    Raises:
        ValueError: If the VIN is malformed
    """
    if v is None:
        return v
    v = v.strip().upper()
    if not v:
        return None
    if len(v) != 17:
        raise ValueError("VIN должен содержать 17 символов")
    if any(ch in "IOQ" for ch in v) or not v.isalnum():
        raise ValueError("VIN содержит недопустимые символы")
    return v


class ClientBase(BaseModel):
    """
    Shared client fields.

    Attributes:
        name: Client name
        phone: Phone number (unique)
        car1: Main car
        car2: Second car
        vin: VIN of the main car
        notes: Free notes
    """

    name: str = Field(..., min_length=1, max_length=255, description="Client name")
    phone: Optional[str] = Field(None, description="Phone number")
    car1: Optional[str] = Field(None, max_length=255)
    car2: Optional[str] = Field(None, max_length=255)
    vin: Optional[str] = Field(None, description="17-character VIN")
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_field(v)

    @field_validator("vin")
    @classmethod
    def validate_vin(cls, v: Optional[str]) -> Optional[str]:
        return validate_vin_field(v)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    """All fields optional for partial updates."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None)
    car1: Optional[str] = Field(None, max_length=255)
    car2: Optional[str] = Field(None, max_length=255)
    vin: Optional[str] = Field(None)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_field(v)

    @field_validator("vin")
    @classmethod
    def validate_vin(cls, v: Optional[str]) -> Optional[str]:
        return validate_vin_field(v)


class ClientRead(ClientBase):
    """
    Client as returned by the API.

    `debt_total` is the sum of the client's outstanding debts; it is
    filled by the service layer and stays 0 in embedded views.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime.datetime
    updated_at: datetime.datetime
    debt_total: Decimal = Field(default=Decimal("0.00"))


class ClientSummary(BaseModel):
    """Compact client view embedded in orders."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    phone: Optional[str] = None
    car1: Optional[str] = None
    car2: Optional[str] = None


__all__ = [
    "validate_vin_field",
    "ClientCreate",
    "ClientUpdate",
    "ClientRead",
    "ClientSummary",
]
