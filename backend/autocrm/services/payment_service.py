"""
Service layer for payments
Project: AutoService CRM
"""

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import ensure_payment_access, is_staff
from autocrm.core.config import settings
from autocrm.core.exceptions import NotFoundError
from autocrm.models import Order, PartsSale, Payment, User
from autocrm.schemas.payment import PaymentCreate, PaymentType
from autocrm.services.debt_service import debt_service
from autocrm.services.order_service import local_day_bounds

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Registration of incoming money.

    A payment referencing a debt pays it down in the same transaction.
    """

    async def create(self, db: AsyncSession, data: PaymentCreate, user: User) -> Payment:
        """
        Registers a payment.

        Args:
            db: Database session
            data: Validated payment (at least one reference)
            user: Cashier

        Returns:
            The created payment

        Raises:
            NotFoundError: If a referenced order, sale or debt does not exist
        """
        if data.order_id is not None and await db.get(Order, data.order_id) is None:
            raise NotFoundError(f"Заказ {data.order_id} не найден")
        if data.parts_sale_id is not None and await db.get(PartsSale, data.parts_sale_id) is None:
            raise NotFoundError("Продажа не найдена")

        if data.debt_id is not None:
            await debt_service.apply_payment(db, data.debt_id, data.amount)

        payment = Payment(
            order_id=data.order_id,
            parts_sale_id=data.parts_sale_id,
            debt_id=data.debt_id,
            amount=data.amount,
            type=PaymentType(data.type).value,
            notes=data.notes,
            created_by=user.id,
        )
        db.add(payment)
        await db.flush()
        await db.refresh(payment)

        logger.info(
            "Payment registered: %s by %s (amount=%s, type=%s, order=%s, sale=%s, debt=%s)",
            payment.id, user.id, payment.amount, payment.type,
            payment.order_id, payment.parts_sale_id, payment.debt_id,
        )
        return payment

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        payment_type: Optional[PaymentType] = None,
        order_id: Optional[str] = None,
        debt_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Payment], int]:
        """Payments newest first; masters see only the ones they registered."""
        conditions = []
        if not is_staff(user):
            conditions.append(Payment.created_by == user.id)
        if date_from is not None:
            conditions.append(Payment.created_at >= local_day_bounds(date_from, settings.timezone)[0])
        if date_to is not None:
            conditions.append(Payment.created_at < local_day_bounds(date_to, settings.timezone)[1])
        if payment_type is not None:
            conditions.append(Payment.type == PaymentType(payment_type).value)
        if order_id is not None:
            conditions.append(Payment.order_id == order_id)
        if debt_id is not None:
            conditions.append(Payment.debt_id == debt_id)

        query = select(Payment).order_by(Payment.created_at.desc())
        count_query = select(func.count()).select_from(Payment)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        payments = list(result.scalars().all())

        count_result = await db.execute(count_query)
        return payments, count_result.scalar() or 0

    async def get_for_user(self, db: AsyncSession, user: User, payment_id: uuid.UUID) -> Payment:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Платеж не найден")
        ensure_payment_access(user, payment)
        return payment

    async def delete(self, db: AsyncSession, payment_id: uuid.UUID) -> None:
        """
        Deletes a payment.

        The balance of a referenced debt is left as it is.
        """
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Платеж не найден")
        await db.delete(payment)
        await db.flush()
        logger.warning("Payment deleted: %s (amount=%s, debt=%s)", payment.id, payment.amount, payment.debt_id)


payment_service = PaymentService()
