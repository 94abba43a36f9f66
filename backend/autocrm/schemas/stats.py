"""
Pydantic schemas for statistics
Project: AutoService CRM

Shapes of the dashboard and report endpoints.
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class OrdersCounters(BaseModel):
    new: int = 0
    in_progress: int = 0
    completed: int = 0
    total_today: int = 0


class FinanceCounters(BaseModel):
    cash_today: Decimal = Decimal("0")
    cash_week: Decimal = Decimal("0")
    cash_month: Decimal = Decimal("0")
    debts_total: Decimal = Decimal("0")


class TopMaster(BaseModel):
    master_id: uuid.UUID
    full_name: str
    orders_count: int
    revenue: Decimal = Field(..., description="Sum of the master's shares of order totals")


class RecentOrder(BaseModel):
    id: str
    client_name: Optional[str] = None
    status: str
    total: Decimal
    created_at: datetime.datetime


class DashboardStats(BaseModel):
    """Everything the dashboard page renders, in one payload."""
    orders: OrdersCounters
    finance: FinanceCounters
    top_masters: list[TopMaster] = Field(default_factory=list)
    recent_orders: list[RecentOrder] = Field(default_factory=list)


class OrdersStats(BaseModel):
    date_from: datetime.date
    date_to: datetime.date
    total_orders: int
    completed_orders: int
    revenue: Decimal
    average_check: Decimal


__all__ = [
    "OrdersCounters",
    "FinanceCounters",
    "TopMaster",
    "RecentOrder",
    "DashboardStats",
    "OrdersStats",
]
