"""
Service layer for statistics
Project: AutoService CRM

Dashboard figures, period reports, master rankings and the daily
snapshot written by the scheduler. All day and week boundaries are
taken in the shop timezone.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.config import settings
from autocrm.core.exceptions import ValidationError
from autocrm.models import Client, Debt, Order, OrderMaster, Payment, StatsSnapshot, User
from autocrm.schemas.order import IN_PROGRESS_STATUSES, TERMINAL_STATUSES, OrderStatus
from autocrm.schemas.stats import (
    DashboardStats,
    FinanceCounters,
    OrdersCounters,
    OrdersStats,
    RecentOrder,
    TopMaster,
)
from autocrm.services.order_service import local_day_bounds
from autocrm.services.salary_service import week_bounds, week_start

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def average_check(revenue: Decimal, orders: int) -> Decimal:
    """Revenue per completed order, 0 when nothing was completed."""
    if orders <= 0:
        return Decimal("0.00")
    return (Decimal(revenue) / orders).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def month_start(day: date) -> date:
    return day.replace(day=1)


class StatsService:

    async def dashboard(self, db: AsyncSession, now: Optional[datetime] = None) -> DashboardStats:
        """
        Collects the figures shown on the dashboard.

        Args:
            db: Database session
            now: Reference time (defaults to now)

        Returns:
            Order counters, cash received, open debts, top masters of the
            month and the latest orders
        """
        now = now or datetime.now(timezone.utc)
        tz = settings.timezone
        today = now.astimezone(ZoneInfo(tz)).date()

        day_start, day_end = local_day_bounds(today, tz)
        week_from, _ = week_bounds(week_start(now, tz), tz)
        month_from, _ = local_day_bounds(month_start(today), tz)

        orders = await self._order_counters(db, day_start, day_end)

        finance = FinanceCounters(
            cash_today=await self._payments_sum(db, day_start, day_end),
            cash_week=await self._payments_sum(db, week_from, day_end),
            cash_month=await self._payments_sum(db, month_from, day_end),
            debts_total=await self._open_debts_total(db),
        )

        return DashboardStats(
            orders=orders,
            finance=finance,
            top_masters=await self.top_masters(db, limit=5, date_from=month_start(today), date_to=today),
            recent_orders=await self._recent_orders(db, limit=5),
        )

    async def orders_stats(self, db: AsyncSession, date_from: date, date_to: date) -> OrdersStats:
        """
        Order figures of a closed date range.

        `total_orders` counts orders created in the range; completed
        orders and revenue follow `completed_at`.

        Raises:
            ValidationError: If date_from is after date_to
        """
        if date_from > date_to:
            raise ValidationError("Дата начала периода позже даты окончания")

        start, _ = local_day_bounds(date_from, settings.timezone)
        _, end = local_day_bounds(date_to, settings.timezone)

        created = await db.execute(
            select(func.count(Order.id)).where(Order.created_at >= start, Order.created_at < end)
        )
        completed = await db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0)).where(
                Order.status.in_(TERMINAL_STATUSES),
                Order.completed_at >= start,
                Order.completed_at < end,
            )
        )
        completed_count, revenue = completed.one()
        revenue = Decimal(revenue)

        return OrdersStats(
            date_from=date_from,
            date_to=date_to,
            total_orders=created.scalar() or 0,
            completed_orders=completed_count or 0,
            revenue=revenue,
            average_check=average_check(revenue, completed_count or 0),
        )

    async def top_masters(
        self,
        db: AsyncSession,
        limit: int = 5,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[TopMaster]:
        """
        Masters ranked by their share of completed order totals.
        """
        share = func.round(Order.total * OrderMaster.percent / 100, 2)
        revenue = func.coalesce(func.sum(share), 0).label("revenue")

        query = (
            select(
                User.id,
                User.full_name,
                func.count(func.distinct(Order.id)).label("orders_count"),
                revenue,
            )
            .join(OrderMaster, OrderMaster.master_id == User.id)
            .join(Order, Order.id == OrderMaster.order_id)
            .where(Order.status.in_(TERMINAL_STATUSES))
            .group_by(User.id, User.full_name)
            .order_by(revenue.desc(), User.full_name.asc())
            .limit(limit)
        )
        if date_from is not None:
            start, _ = local_day_bounds(date_from, settings.timezone)
            query = query.where(Order.completed_at >= start)
        if date_to is not None:
            _, end = local_day_bounds(date_to, settings.timezone)
            query = query.where(Order.completed_at < end)

        result = await db.execute(query)
        return [
            TopMaster(master_id=master_id, full_name=full_name, orders_count=count, revenue=Decimal(amount))
            for master_id, full_name, count, amount in result.all()
        ]

    async def save_snapshot(self, db: AsyncSession, now: Optional[datetime] = None) -> date:
        """
        Upserts the snapshot row of the current day.

        Returns:
            The snapshot date
        """
        now = now or datetime.now(timezone.utc)
        today = now.astimezone(ZoneInfo(settings.timezone)).date()
        day_start, day_end = local_day_bounds(today, settings.timezone)

        counters = await self._order_counters(db, day_start, day_end)
        revenue_result = await db.execute(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                Order.status.in_(TERMINAL_STATUSES),
                Order.completed_at >= day_start,
                Order.completed_at < day_end,
            )
        )
        values = {
            "total_orders": counters.total_today,
            "new_orders": counters.new,
            "in_progress_orders": counters.in_progress,
            "completed_orders": counters.completed,
            "revenue": Decimal(revenue_result.scalar() or 0),
            "payments_total": await self._payments_sum(db, day_start, day_end),
        }

        stmt = pg_insert(StatsSnapshot).values(id=uuid.uuid4(), snapshot_date=today, **values)
        stmt = stmt.on_conflict_do_update(index_elements=["snapshot_date"], set_=values)
        await db.execute(stmt)

        logger.info("Stats snapshot saved for %s: %s", today, values)
        return today

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------
    async def _order_counters(self, db: AsyncSession, day_start: datetime, day_end: datetime) -> OrdersCounters:
        by_status = await db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
        counts = dict(by_status.all())

        completed = await db.execute(
            select(func.count(Order.id)).where(
                Order.status.in_(TERMINAL_STATUSES),
                Order.completed_at >= day_start,
                Order.completed_at < day_end,
            )
        )
        created = await db.execute(
            select(func.count(Order.id)).where(Order.created_at >= day_start, Order.created_at < day_end)
        )

        return OrdersCounters(
            new=counts.get(OrderStatus.NEW.value, 0),
            in_progress=sum(counts.get(s, 0) for s in IN_PROGRESS_STATUSES),
            completed=completed.scalar() or 0,
            total_today=created.scalar() or 0,
        )

    async def _payments_sum(self, db: AsyncSession, start: datetime, end: datetime) -> Decimal:
        result = await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.created_at >= start,
                Payment.created_at < end,
            )
        )
        return Decimal(result.scalar() or 0)

    async def _open_debts_total(self, db: AsyncSession) -> Decimal:
        result = await db.execute(select(func.coalesce(func.sum(Debt.remaining), 0)).where(Debt.remaining > 0))
        return Decimal(result.scalar() or 0)

    async def _recent_orders(self, db: AsyncSession, limit: int) -> list[RecentOrder]:
        result = await db.execute(
            select(Order.id, Client.name, Order.status, Order.total, Order.created_at)
            .outerjoin(Client, Client.id == Order.client_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return [
            RecentOrder(id=order_id, client_name=name, status=status, total=total, created_at=created_at)
            for order_id, name, status, total, created_at in result.all()
        ]


stats_service = StatsService()
