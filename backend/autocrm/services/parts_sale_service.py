"""
Service layer for parts sales
Project: AutoService CRM
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import ensure_parts_sale_access, is_staff
from autocrm.core.config import settings
from autocrm.core.exceptions import NotFoundError, ValidationError
from autocrm.models import Client, PartsSale, User
from autocrm.schemas.parts_sale import PartsSaleCreate, PartsSaleUpdate, validate_discount
from autocrm.services.order_service import local_day_bounds

logger = logging.getLogger(__name__)


class PartsSaleService:
    """
    Over-the-counter sales of parts.

    The seller is always the caller; masters see and edit only their own
    sales. The total is generated by the database.
    """

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        seller_id: Optional[uuid.UUID] = None,
        client_phone: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[PartsSale], int]:
        """
        Paginated list of sales, newest first.

        Returns:
            Tuple of (sales, total count)
        """
        conditions = []
        if not is_staff(user):
            conditions.append(PartsSale.seller_id == user.id)
        elif seller_id is not None:
            conditions.append(PartsSale.seller_id == seller_id)
        if date_from is not None:
            conditions.append(PartsSale.created_at >= local_day_bounds(date_from, settings.timezone)[0])
        if date_to is not None:
            conditions.append(PartsSale.created_at < local_day_bounds(date_to, settings.timezone)[1])
        if client_phone:
            conditions.append(PartsSale.client_phone == client_phone)
        if search:
            term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    PartsSale.part_name.ilike(term),
                    PartsSale.part_number.ilike(term),
                    PartsSale.client_name.ilike(term),
                )
            )

        query = select(PartsSale).order_by(PartsSale.created_at.desc())
        count_query = select(func.count()).select_from(PartsSale)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        sales = list(result.scalars().all())

        count_result = await db.execute(count_query)
        return sales, count_result.scalar() or 0

    async def get_for_user(self, db: AsyncSession, user: User, sale_id: uuid.UUID) -> PartsSale:
        """
        Raises:
            NotFoundError: If the sale does not exist
            AuthorizationError: If a master asks for another seller's sale
        """
        sale = await db.get(PartsSale, sale_id)
        if sale is None:
            raise NotFoundError("Продажа не найдена")
        ensure_parts_sale_access(user, sale)
        return sale

    async def create(self, db: AsyncSession, data: PartsSaleCreate, user: User) -> PartsSale:
        if data.client_id is not None and await db.get(Client, data.client_id) is None:
            raise NotFoundError("Клиент не найден")

        sale = PartsSale(**data.model_dump(), seller_id=user.id)
        db.add(sale)
        await db.flush()
        await db.refresh(sale)

        logger.info(
            "Parts sale created: %s by %s (%s x %s, total=%s)",
            sale.id, user.id, sale.part_name, sale.quantity, sale.total,
        )
        return sale

    async def update(self, db: AsyncSession, user: User, sale_id: uuid.UUID, data: PartsSaleUpdate) -> PartsSale:
        """
        Partially updates a sale.

        Raises:
            ValidationError: If the resulting discount exceeds the gross amount
        """
        sale = await self.get_for_user(db, user, sale_id)
        update_data = data.model_dump(exclude_unset=True)

        quantity = update_data.get("quantity") or sale.quantity
        price = update_data.get("price") if update_data.get("price") is not None else sale.price
        discount = update_data.get("discount") if update_data.get("discount") is not None else sale.discount
        try:
            validate_discount(quantity, Decimal(price), Decimal(discount))
        except ValueError as e:
            raise ValidationError(str(e))

        if update_data.get("client_id") is not None and await db.get(Client, update_data["client_id"]) is None:
            raise NotFoundError("Клиент не найден")

        for field, value in update_data.items():
            if value is None and field in ("part_name", "quantity", "price", "discount"):
                continue
            setattr(sale, field, value)

        await db.flush()
        await db.refresh(sale)
        logger.info("Parts sale updated: %s by %s", sale.id, user.id)
        return sale

    async def delete(self, db: AsyncSession, sale_id: uuid.UUID) -> None:
        sale = await db.get(PartsSale, sale_id)
        if sale is None:
            raise NotFoundError("Продажа не найдена")
        await db.delete(sale)
        await db.flush()
        logger.warning("Parts sale deleted: %s", sale_id)


parts_sale_service = PartsSaleService()
