"""
Service layer for client debts
Project: AutoService CRM

Debts are opened by staff and paid down by payments; the balance never
goes below zero.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import ensure_debt_access, is_staff
from autocrm.core.exceptions import NotFoundError
from autocrm.models import Client, Debt, Order, OrderMaster, User
from autocrm.schemas.debt import DebtCreate, DebtUpdate

logger = logging.getLogger(__name__)


def reduce_remaining(remaining: Decimal, amount: Decimal) -> Decimal:
    """
    Balance left after a payment; an overpayment is absorbed at zero.

    Example:
        reduce_remaining(Decimal("500"), Decimal("700")) == Decimal("0")
    """
    return max(Decimal("0"), Decimal(remaining) - Decimal(amount))


class DebtService:
    """Debt registry and balance updates."""

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20,
        client_id: Optional[uuid.UUID] = None,
        order_id: Optional[str] = None,
        open_only: bool = False,
    ) -> tuple[list[Debt], int]:
        """
        Paginated list of debts, newest first.

        Masters see only debts of orders they are assigned to.
        """
        conditions = []
        if not is_staff(user):
            assigned = select(OrderMaster.order_id).where(OrderMaster.master_id == user.id)
            conditions.append(Debt.order_id.in_(assigned))
        if client_id is not None:
            conditions.append(Debt.client_id == client_id)
        if order_id is not None:
            conditions.append(Debt.order_id == order_id)
        if open_only:
            conditions.append(Debt.remaining > 0)

        query = select(Debt).order_by(Debt.created_at.desc())
        count_query = select(func.count()).select_from(Debt)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        debts = list(result.unique().scalars().all())

        count_result = await db.execute(count_query)
        return debts, count_result.scalar() or 0

    async def get_by_id(self, db: AsyncSession, debt_id: uuid.UUID) -> Debt:
        debt = await db.get(Debt, debt_id)
        if debt is None:
            raise NotFoundError("Долг не найден")
        return debt

    async def get_for_user(self, db: AsyncSession, user: User, debt_id: uuid.UUID) -> Debt:
        """
        Raises:
            NotFoundError: If the debt does not exist
            AuthorizationError: If a master is not assigned to the debt's order
        """
        debt = await self.get_by_id(db, debt_id)
        if not is_staff(user):
            master_ids: list[uuid.UUID] = []
            if debt.order_id is not None:
                result = await db.execute(
                    select(OrderMaster.master_id).where(OrderMaster.order_id == debt.order_id)
                )
                master_ids = list(result.scalars().all())
            ensure_debt_access(user, master_ids)
        return debt

    async def create(self, db: AsyncSession, data: DebtCreate) -> Debt:
        """
        Opens a debt; the remaining balance starts at the full amount.

        Raises:
            NotFoundError: If the client or the order does not exist
        """
        if await db.get(Client, data.client_id) is None:
            raise NotFoundError("Клиент не найден")
        if data.order_id is not None and await db.get(Order, data.order_id) is None:
            raise NotFoundError(f"Заказ {data.order_id} не найден")

        debt = Debt(
            client_id=data.client_id,
            order_id=data.order_id,
            amount=data.amount,
            remaining=data.amount,
            notes=data.notes,
        )
        db.add(debt)
        await db.flush()
        await db.refresh(debt)

        logger.info("Debt created: %s for client %s (amount=%s)", debt.id, debt.client_id, debt.amount)
        return debt

    async def update(self, db: AsyncSession, debt_id: uuid.UUID, data: DebtUpdate) -> Debt:
        debt = await self.get_by_id(db, debt_id)
        if "notes" in data.model_fields_set:
            debt.notes = data.notes
        await db.flush()
        await db.refresh(debt)
        return debt

    async def apply_payment(self, db: AsyncSession, debt_id: uuid.UUID, amount: Decimal) -> Debt:
        """
        Lowers the balance of a debt by a payment amount.

        The debt row is locked (SELECT ... FOR UPDATE) until the end of
        the transaction, so concurrent payments on the same debt apply
        one after the other.

        Args:
            db: Database session
            debt_id: Debt being paid
            amount: Payment amount

        Returns:
            The updated debt

        Raises:
            NotFoundError: If the debt does not exist
        """
        result = await db.execute(
            select(Debt).where(Debt.id == debt_id).with_for_update(of=Debt)
        )
        debt = result.unique().scalar_one_or_none()
        if debt is None:
            raise NotFoundError("Долг не найден")

        before = debt.remaining
        debt.remaining = reduce_remaining(before, amount)
        await db.flush()

        if amount > before:
            logger.info("Debt %s overpaid by %s, balance set to 0", debt.id, amount - before)
        logger.info("Debt %s reduced %s -> %s", debt.id, before, debt.remaining)
        return debt


debt_service = DebtService()
