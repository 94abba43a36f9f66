"""
SQLAlchemy model for daily statistics snapshots
Project: AutoService CRM
"""

from __future__ import annotations
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.models import Base
from autocrm.models.mixins import CreatedAtMixin, UUIDMixin


class StatsSnapshot(Base, UUIDMixin, CreatedAtMixin):
    """End-of-day figures, one row per day, rewritten if the job runs twice."""

    __tablename__ = "stats_snapshots"

    snapshot_date: Mapped[date] = mapped_column(Date, unique=True, nullable=False)
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    in_progress_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    payments_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
