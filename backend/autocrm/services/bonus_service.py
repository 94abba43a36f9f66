"""
Service layer for director bonuses
Project: AutoService CRM
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.exceptions import NotFoundError
from autocrm.models import Bonus, Order, User
from autocrm.schemas.salary import BonusCreate

logger = logging.getLogger(__name__)


class BonusService:

    async def create(self, db: AsyncSession, data: BonusCreate, director: User) -> Bonus:
        if data.order_id is not None and await db.get(Order, data.order_id) is None:
            raise NotFoundError(f"Заказ {data.order_id} не найден")

        bonus = Bonus(
            director_id=director.id,
            order_id=data.order_id,
            amount=data.amount,
            comment=data.comment,
        )
        db.add(bonus)
        await db.flush()
        await db.refresh(bonus)

        logger.info("Bonus created: %s by %s (amount=%s, order=%s)", bonus.id, director.id, bonus.amount, bonus.order_id)
        return bonus

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        order_id: Optional[str] = None,
    ) -> tuple[list[Bonus], int]:
        conditions = []
        if order_id is not None:
            conditions.append(Bonus.order_id == order_id)

        query = select(Bonus).order_by(Bonus.created_at.desc())
        count_query = select(func.count()).select_from(Bonus)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        bonuses = list(result.scalars().all())

        count_result = await db.execute(count_query)
        return bonuses, count_result.scalar() or 0

    async def delete(self, db: AsyncSession, bonus_id: uuid.UUID) -> None:
        bonus = await db.get(Bonus, bonus_id)
        if bonus is None:
            raise NotFoundError("Бонус не найден")
        await db.delete(bonus)
        await db.flush()
        logger.info("Bonus deleted: %s", bonus_id)


bonus_service = BonusService()
