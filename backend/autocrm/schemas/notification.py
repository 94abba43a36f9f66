"""
Pydantic schemas for notifications
Project: AutoService CRM
"""

import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    type: str
    entity_id: Optional[str]
    entity_type: Optional[str]
    read: bool
    created_at: datetime.datetime


class MarkAllReadResult(BaseModel):
    updated: int


__all__ = ["NotificationRead", "MarkAllReadResult"]
