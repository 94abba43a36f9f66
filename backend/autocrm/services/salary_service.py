"""
Service layer for master salaries
Project: AutoService CRM

Two accounting paths live here:
- per-order salaries, written once when an order first reaches a
  terminal status; these are the rows that get paid out
- weekly aggregates, rebuilt by the scheduler from the orders completed
  in the current week and compared against the per-order rows
"""

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import ensure_salary_access, is_staff
from autocrm.core.config import settings
from autocrm.core.exceptions import NotFoundError, ValidationError
from autocrm.models import Order, OrderMaster, Salary, User, WeeklySalary
from autocrm.schemas.order import TERMINAL_STATUSES
from autocrm.schemas.salary import WeeklyRecalculationResult

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


# ------------------------------------------------------------
# Pure helpers
# ------------------------------------------------------------
def compute_share(total: Decimal, percent: Decimal) -> Decimal:
    """
    A master's share of an order total, rounded half-up to cents.

    Example:
        compute_share(Decimal("1000"), Decimal("60")) == Decimal("600.00")
    """
    return (Decimal(total) * Decimal(percent) / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)


def week_start(moment: datetime, tz_name: str) -> date:
    """Monday of the week containing `moment`, in the given timezone."""
    local = moment.astimezone(ZoneInfo(tz_name))
    return local.date() - timedelta(days=local.weekday())


def week_bounds(week_period: date, tz_name: str) -> tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of a week as aware datetimes."""
    tz = ZoneInfo(tz_name)
    start = datetime.combine(week_period, time.min, tzinfo=tz)
    return start, start + timedelta(days=7)


def aggregate_weekly_shares(
    rows: Iterable[tuple[uuid.UUID, str, Decimal, Decimal]],
) -> dict[uuid.UUID, tuple[Decimal, int]]:
    """
    Sums the shares of each master over a set of orders.

    Args:
        rows: (master_id, order_id, order_total, percent) tuples

    Returns:
        {master_id: (amount, number of distinct orders)}
    """
    amounts: dict[uuid.UUID, Decimal] = defaultdict(lambda: Decimal("0"))
    orders: dict[uuid.UUID, set[str]] = defaultdict(set)

    for master_id, order_id, total, percent in rows:
        amounts[master_id] += compute_share(total, percent)
        orders[master_id].add(order_id)

    return {master_id: (amounts[master_id], len(orders[master_id])) for master_id in amounts}


def find_mismatches(
    weekly: dict[uuid.UUID, Decimal],
    ledger: dict[uuid.UUID, Decimal],
) -> list[uuid.UUID]:
    """Masters whose weekly aggregate differs from their per-order rows."""
    masters = set(weekly) | set(ledger)
    return sorted(
        (m for m in masters if weekly.get(m, Decimal("0")) != ledger.get(m, Decimal("0"))),
        key=str,
    )


class SalaryService:
    """Per-order salary ledger and weekly aggregation."""

    # ------------------------------------------------------------
    # Per-order salaries
    # ------------------------------------------------------------
    async def record_order_salaries(
        self,
        db: AsyncSession,
        order: Order,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Writes one salary row per assigned master of a completed order.

        The insert uses ON CONFLICT (master_id, order_id) DO NOTHING: the
        first amount recorded for a pair is final, even if the order
        total changes later.

        Args:
            db: Database session
            order: Order that just entered a terminal status, with its
                masters loaded and an up-to-date total
            now: Recognition time (defaults to now)

        Returns:
            Number of rows actually inserted
        """
        if not order.masters:
            logger.warning("Order %s reached a terminal status without assigned masters", order.id)
            return 0

        period = week_start(now or datetime.now(timezone.utc), settings.timezone)
        rows = [
            {
                "id": uuid.uuid4(),
                "master_id": assignment.master_id,
                "order_id": order.id,
                "amount": compute_share(order.total, assignment.percent),
                "week_period": period,
                "paid": False,
            }
            for assignment in order.masters
        ]

        stmt = (
            pg_insert(Salary)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["master_id", "order_id"])
        )
        result = await db.execute(stmt)
        inserted = result.rowcount or 0

        logger.info(
            "Recorded %s/%s salaries for order %s (total=%s, week=%s)",
            inserted, len(rows), order.id, order.total, period,
        )
        return inserted

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20,
        master_id: Optional[uuid.UUID] = None,
        week_period: Optional[date] = None,
        paid: Optional[bool] = None,
    ) -> tuple[list[Salary], int]:
        """
        Lists salary rows, newest first.

        Masters only ever see their own rows; the master_id filter is
        ignored for them.

        Returns:
            Tuple of (salaries, total count)
        """
        conditions = []
        if not is_staff(user):
            conditions.append(Salary.master_id == user.id)
        elif master_id is not None:
            conditions.append(Salary.master_id == master_id)
        if week_period is not None:
            conditions.append(Salary.week_period == week_period)
        if paid is not None:
            conditions.append(Salary.paid.is_(paid))

        query = select(Salary).order_by(Salary.created_at.desc())
        count_query = select(func.count()).select_from(Salary)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        salaries = list(result.unique().scalars().all())

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        return salaries, total

    async def get_by_id(self, db: AsyncSession, user: User, salary_id: uuid.UUID) -> Salary:
        salary = await db.get(Salary, salary_id)
        if salary is None:
            raise NotFoundError("Зарплата не найдена")
        ensure_salary_access(user, salary)
        return salary

    async def mark_paid(
        self,
        db: AsyncSession,
        salary_id: uuid.UUID,
        notes: Optional[str] = None,
    ) -> Salary:
        """
        Marks a salary row as paid out.

        Raises:
            NotFoundError: If the row does not exist
            ValidationError: If it was already paid
        """
        salary = await db.get(Salary, salary_id)
        if salary is None:
            raise NotFoundError("Зарплата не найдена")
        if salary.paid:
            raise ValidationError("Зарплата уже выплачена")

        salary.paid = True
        salary.paid_at = datetime.now(timezone.utc)
        if notes is not None:
            salary.notes = notes
        await db.flush()

        logger.info("Salary %s paid to master %s (amount=%s)", salary.id, salary.master_id, salary.amount)
        return salary

    # ------------------------------------------------------------
    # Weekly aggregation
    # ------------------------------------------------------------
    async def recalculate_weekly(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> WeeklyRecalculationResult:
        """
        Rebuilds the weekly aggregate of the current week.

        Orders count toward the week their `completed_at` falls in, as
        long as they are still in a terminal status. One row per master is
        upserted; a concurrent run simply overwrites with the same values.
        Differences from the per-order salary rows of the same week are
        logged as warnings and returned.

        Args:
            db: Database session
            now: Reference time (defaults to now)

        Returns:
            Summary of the run
        """
        period = week_start(now or datetime.now(timezone.utc), settings.timezone)
        start, end = week_bounds(period, settings.timezone)

        result = await db.execute(
            select(OrderMaster.master_id, Order.id, Order.total, OrderMaster.percent)
            .join(Order, Order.id == OrderMaster.order_id)
            .where(
                Order.status.in_(TERMINAL_STATUSES),
                Order.completed_at >= start,
                Order.completed_at < end,
            )
        )
        aggregates = aggregate_weekly_shares(result.all())

        if aggregates:
            stmt = pg_insert(WeeklySalary).values([
                {
                    "id": uuid.uuid4(),
                    "master_id": master_id,
                    "week_period": period,
                    "amount": amount,
                    "orders_count": count,
                }
                for master_id, (amount, count) in aggregates.items()
            ])
            stmt = stmt.on_conflict_do_update(
                index_elements=["master_id", "week_period"],
                set_={
                    "amount": stmt.excluded.amount,
                    "orders_count": stmt.excluded.orders_count,
                    "calculated_at": func.now(),
                },
            )
            await db.execute(stmt)

        ledger_result = await db.execute(
            select(Salary.master_id, func.sum(Salary.amount))
            .where(Salary.week_period == period)
            .group_by(Salary.master_id)
        )
        ledger = {master_id: Decimal(amount) for master_id, amount in ledger_result.all()}

        weekly = {master_id: amount for master_id, (amount, _) in aggregates.items()}
        mismatches = find_mismatches(weekly, ledger)
        for master_id in mismatches:
            logger.warning(
                "Weekly salary of master %s for week %s is %s but per-order salaries sum to %s",
                master_id, period, weekly.get(master_id, Decimal("0")), ledger.get(master_id, Decimal("0")),
            )

        total = sum(weekly.values(), Decimal("0"))
        logger.info("Weekly salaries recalculated for week %s: %s masters, total %s", period, len(weekly), total)

        return WeeklyRecalculationResult(
            week_period=period,
            masters=len(weekly),
            total=total,
            mismatches=mismatches,
        )

    async def get_weekly(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20,
        week_period: Optional[date] = None,
        master_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[WeeklySalary], int]:
        conditions = []
        if not is_staff(user):
            conditions.append(WeeklySalary.master_id == user.id)
        elif master_id is not None:
            conditions.append(WeeklySalary.master_id == master_id)
        if week_period is not None:
            conditions.append(WeeklySalary.week_period == week_period)

        query = select(WeeklySalary).order_by(WeeklySalary.week_period.desc())
        count_query = select(func.count()).select_from(WeeklySalary)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        items = list(result.scalars().all())

        count_result = await db.execute(count_query)
        return items, count_result.scalar() or 0


salary_service = SalaryService()
