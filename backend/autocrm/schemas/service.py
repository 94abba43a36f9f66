"""
Pydantic schemas for the service catalog
Project: AutoService CRM
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Service name")
    price: Decimal = Field(..., ge=Decimal("0"), max_digits=10, decimal_places=2, description="List price")
    category: Optional[str] = Field(None, max_length=100)
    duration_minutes: int = Field(default=60, gt=0, description="Expected duration")
    is_active: bool = Field(default=True)


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=Decimal("0"), max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    duration_minutes: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class ServiceRead(ServiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime.datetime
    updated_at: datetime.datetime


__all__ = ["ServiceCreate", "ServiceUpdate", "ServiceRead"]
