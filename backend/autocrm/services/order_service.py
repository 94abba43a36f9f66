"""
Service layer for orders
Project: AutoService CRM

Business logic of repair orders:
- sequential human-readable identifiers (ZA001, ZA002, ...)
- services cost derived from the service lines
- master assignments with assignment notifications
- salary recording on the first transition into a terminal status
- per-user visibility of orders
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import Integer, cast, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import ensure_order_access, is_staff
from autocrm.core.config import settings
from autocrm.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    is_unique_violation,
    translate_integrity_error,
)
from autocrm.models import Client, Order, OrderMaster, User
from autocrm.schemas.order import (
    MasterShare,
    OrderCreate,
    OrderStatus,
    OrderUpdate,
    compute_services_cost,
    enters_terminal,
    is_terminal,
)
from autocrm.services.notification_service import notification_service
from autocrm.services.salary_service import salary_service

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Identifier allocation
# ------------------------------------------------------------
def format_order_identifier(prefix: str, number: int) -> str:
    """
    Builds an order identifier: prefix plus a number padded to 3 digits.

    Numbers above 999 keep all their digits (ZA1000).

    Example:
        format_order_identifier("ZA", 7) == "ZA007"
    """
    return f"{prefix}{number:03d}"


def next_order_number(current_max: Optional[int]) -> int:
    """Number following the highest one in use, 1 for an empty store."""
    if current_max is None:
        return 1
    return current_max + 1


def local_day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """Start and end (exclusive) of a calendar day in the shop timezone."""
    start = datetime.combine(day, time.min, tzinfo=ZoneInfo(tz_name))
    return start, start + timedelta(days=1)


class OrderService:
    """
    Operations on orders.

    Every write method only flushes: the router commits, so the order,
    its assignments, notifications and salaries land in one transaction.
    """

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20,
        my: bool = False,
        status: Optional[OrderStatus] = None,
        client_id: Optional[uuid.UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Order], int]:
        """
        Paginated list of orders, newest first.

        Masters only see orders they created or are assigned to. With
        `my=True`, staff see only the orders assigned to them.

        Args:
            db: Database session
            user: Caller
            page: Page number (1-based)
            limit: Items per page
            my: Only the caller's own orders
            status: Status filter
            client_id: Client filter
            date_from: Created on or after this day
            date_to: Created on or before this day
            search: Substring of the order id, client name or client phone

        Returns:
            Tuple of (orders, total count)
        """
        conditions = []

        assigned = select(OrderMaster.order_id).where(OrderMaster.master_id == user.id)
        if not is_staff(user):
            conditions.append(or_(Order.created_by == user.id, Order.id.in_(assigned)))
        elif my:
            conditions.append(Order.id.in_(assigned))

        if status is not None:
            conditions.append(Order.status == OrderStatus(status).value)
        if client_id is not None:
            conditions.append(Order.client_id == client_id)
        if date_from is not None:
            conditions.append(Order.created_at >= local_day_bounds(date_from, settings.timezone)[0])
        if date_to is not None:
            conditions.append(Order.created_at < local_day_bounds(date_to, settings.timezone)[1])
        if search:
            term = f"%{search.strip()}%"
            matching_clients = select(Client.id).where(
                or_(Client.name.ilike(term), Client.phone.ilike(term))
            )
            conditions.append(or_(Order.id.ilike(term), Order.client_id.in_(matching_clients)))

        query = select(Order).order_by(Order.created_at.desc())
        count_query = select(func.count()).select_from(Order)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        orders = list(result.unique().scalars().all())

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        logger.info("Fetched %s orders of %s (page %s, user %s)", len(orders), total, page, user.id)
        return orders, total

    async def get_by_id(self, db: AsyncSession, order_id: str, reload: bool = False) -> Order:
        """
        Loads an order with its client and assignments.

        Args:
            db: Database session
            order_id: Order identifier
            reload: Overwrite any copy already in the session

        Raises:
            NotFoundError: If the order does not exist
        """
        query = select(Order).where(Order.id == order_id)
        if reload:
            query = query.execution_options(populate_existing=True)

        result = await db.execute(query)
        order = result.unique().scalar_one_or_none()

        if order is None:
            logger.warning("Order not found: %s", order_id)
            raise NotFoundError(f"Заказ {order_id} не найден")
        return order

    async def get_for_user(self, db: AsyncSession, user: User, order_id: str) -> Order:
        """
        Loads an order the caller is allowed to see.

        Raises:
            NotFoundError: If the order does not exist
            AuthorizationError: If the caller is a master who neither
                created the order nor is assigned to it
        """
        order = await self.get_by_id(db, order_id)
        ensure_order_access(user, order)
        return order

    async def create(self, db: AsyncSession, data: OrderCreate, user: User) -> Order:
        """
        Creates an order with its assignments.

        The identifier is the next number after the highest in use. Two
        concurrent creations may pick the same number: the loser's insert
        hits the primary key, its savepoint is rolled back and it retries
        with a fresh maximum.

        Args:
            db: Database session
            data: Validated order payload
            user: Creator

        Returns:
            The created order

        Raises:
            NotFoundError: If the client does not exist
            ValidationError: If a master does not exist or is inactive
            ConflictError: If no identifier could be allocated
        """
        await self._ensure_client(db, data.client_id)
        await self._ensure_masters(db, data.masters)

        prefix = settings.order_id_prefix
        services = [line.model_dump(mode="json") for line in data.services]
        services_cost = compute_services_cost(data.services)
        # Terminal on creation: no salaries, but counted by the weekly aggregate
        completed_at = datetime.now(timezone.utc) if is_terminal(data.status.value) else None

        for attempt in range(1, settings.order_id_max_attempts + 1):
            number = next_order_number(await self._max_order_number(db, prefix))
            order = Order(
                id=format_order_identifier(prefix, number),
                client_id=data.client_id,
                services=services,
                parts_cost=data.parts_cost,
                services_cost=services_cost,
                status=data.status.value,
                notes=data.notes,
                created_by=user.id,
                completed_at=completed_at,
                masters=[
                    OrderMaster(master_id=share.master_id, percent=share.percent)
                    for share in data.masters
                ],
            )
            try:
                async with db.begin_nested():
                    db.add(order)
                    await db.flush()
            except IntegrityError as e:
                if not is_unique_violation(e):
                    raise translate_integrity_error(e)
                logger.warning(
                    "Order id %s taken concurrently (attempt %s/%s)",
                    order.id, attempt, settings.order_id_max_attempts,
                )
                continue
            break
        else:
            raise ConflictError("Не удалось присвоить номер заказу, повторите попытку")

        notification_service.notify_order_assigned(db, order.id, [s.master_id for s in data.masters])
        await db.flush()

        logger.info(
            "Order created: %s by %s (client=%s, services_cost=%s, parts_cost=%s)",
            order.id, user.id, order.client_id, services_cost, order.parts_cost,
        )
        return await self.get_by_id(db, order.id, reload=True)

    async def update(self, db: AsyncSession, user: User, order_id: str, data: OrderUpdate) -> Order:
        """
        Updates an order.

        A new service list replaces the old one and recomputes the
        services cost. A new master list replaces every assignment before
        the status change is applied, so salaries of a completing order go
        to the masters in the payload.

        Raises:
            NotFoundError: If the order or the new client does not exist
            AuthorizationError: If the caller cannot access the order
        """
        order = await self.get_for_user(db, user, order_id)
        old_status = order.status
        update_data = data.model_dump(exclude_unset=True)

        if "client_id" in update_data:
            await self._ensure_client(db, data.client_id)
            order.client_id = data.client_id
        if data.services is not None:
            order.services = [line.model_dump(mode="json") for line in data.services]
            order.services_cost = compute_services_cost(data.services)
        if data.parts_cost is not None:
            order.parts_cost = data.parts_cost
        if "notes" in update_data:
            order.notes = data.notes

        if data.masters is not None:
            await self._replace_masters(db, order, data.masters)
        if data.status is not None:
            order.status = data.status.value

        await self._after_status_change(db, order, old_status)

        logger.info("Order updated: %s by %s (status %s -> %s)", order.id, user.id, old_status, order.status)
        return await self.get_by_id(db, order.id, reload=True)

    async def change_status(self, db: AsyncSession, user: User, order_id: str, status: OrderStatus) -> Order:
        """
        Moves an order to another status.

        Any status may follow any other; entering a terminal status from a
        non-terminal one records the masters' salaries.
        """
        order = await self.get_for_user(db, user, order_id)
        old_status = order.status
        order.status = OrderStatus(status).value

        await self._after_status_change(db, order, old_status)

        logger.info("Order status changed: %s %s -> %s by %s", order.id, old_status, order.status, user.id)
        return await self.get_by_id(db, order.id, reload=True)

    async def replace_masters(
        self,
        db: AsyncSession,
        user: User,
        order_id: str,
        masters: list[MasterShare],
    ) -> Order:
        order = await self.get_for_user(db, user, order_id)
        await self._replace_masters(db, order, masters)
        logger.info("Order %s masters replaced by %s (%s masters)", order.id, user.id, len(masters))
        return await self.get_by_id(db, order.id, reload=True)

    async def delete(self, db: AsyncSession, order_id: str) -> None:
        """Deletes an order; assignments and salaries go with it."""
        order = await self.get_by_id(db, order_id)
        await db.delete(order)
        await db.flush()
        logger.warning("Order deleted: %s", order_id)

    # ------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------
    async def _max_order_number(self, db: AsyncSession, prefix: str) -> Optional[int]:
        """Highest numeric suffix among identifiers with the given prefix."""
        stmt = select(
            func.max(cast(func.substr(Order.id, len(prefix) + 1), Integer))
        ).where(Order.id.regexp_match(f"^{prefix}[0-9]+$"))
        result = await db.execute(stmt)
        return result.scalar()

    async def _ensure_client(self, db: AsyncSession, client_id: Optional[uuid.UUID]) -> None:
        if client_id is None:
            return
        if await db.get(Client, client_id) is None:
            raise NotFoundError("Клиент не найден")

    async def _ensure_masters(self, db: AsyncSession, masters: list[MasterShare]) -> None:
        ids = {share.master_id for share in masters}
        result = await db.execute(
            select(User.id).where(User.id.in_(ids), User.is_active.is_(True))
        )
        found = set(result.scalars().all())
        missing = ids - found
        if missing:
            raise ValidationError(
                "Мастер не найден или деактивирован",
                extra={"master_ids": sorted(str(m) for m in missing)},
            )

    async def _replace_masters(self, db: AsyncSession, order: Order, masters: list[MasterShare]) -> None:
        """
        Swaps every assignment of the order for the given ones.

        The old rows are flushed away before the new ones are inserted,
        otherwise re-assigning the same master would hit the
        (order_id, master_id) unique constraint.
        """
        await self._ensure_masters(db, masters)

        order.masters.clear()
        await db.flush()

        order.masters.extend(
            OrderMaster(master_id=share.master_id, percent=share.percent) for share in masters
        )
        notification_service.notify_order_assigned(db, order.id, [s.master_id for s in masters])
        await db.flush()

    async def _after_status_change(self, db: AsyncSession, order: Order, old_status: str) -> None:
        """
        Flushes pending changes and records salaries if the order has just
        entered a terminal status.

        The flush refreshes the generated total, which the salaries are
        computed from.
        """
        await db.flush()

        if not enters_terminal(old_status, order.status):
            return

        now = datetime.now(timezone.utc)
        if order.completed_at is None:
            order.completed_at = now
            await db.flush()

        await salary_service.record_order_salaries(db, order, now=now)


order_service = OrderService()
