"""
Service layer for the service catalog
Project: AutoService CRM
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.exceptions import NotFoundError
from autocrm.models import Service
from autocrm.schemas.service import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class ServiceCatalogService:
    """CRUD on catalog services. Masters only ever see active services."""

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        active_only: bool = True,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Service], int]:
        conditions = []
        if active_only:
            conditions.append(Service.is_active.is_(True))
        if category:
            conditions.append(Service.category == category)
        if search:
            term = f"%{search.strip()}%"
            conditions.append(or_(Service.name.ilike(term), Service.category.ilike(term)))

        query = select(Service).order_by(Service.category.asc(), Service.name.asc())
        count_query = select(func.count()).select_from(Service)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        services = list(result.scalars().all())

        count_result = await db.execute(count_query)
        return services, count_result.scalar() or 0

    async def get_by_id(self, db: AsyncSession, service_id: uuid.UUID, active_only: bool = False) -> Service:
        """
        Raises:
            NotFoundError: If the service does not exist (or is inactive
                when `active_only` is set)
        """
        service = await db.get(Service, service_id)
        if service is None or (active_only and not service.is_active):
            raise NotFoundError("Услуга не найдена")
        return service

    async def create(self, db: AsyncSession, data: ServiceCreate) -> Service:
        service = Service(**data.model_dump())
        db.add(service)
        await db.flush()
        await db.refresh(service)
        logger.info("Service created: %s - %s (%s)", service.id, service.name, service.price)
        return service

    async def update(self, db: AsyncSession, service_id: uuid.UUID, data: ServiceUpdate) -> Service:
        service = await self.get_by_id(db, service_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(service, field, value)
        await db.flush()
        await db.refresh(service)
        logger.info("Service updated: %s", service.id)
        return service

    async def delete(self, db: AsyncSession, service_id: uuid.UUID) -> None:
        """
        Deletes a catalog service.

        Orders keep their copied service lines, so no order is affected.
        """
        service = await self.get_by_id(db, service_id)
        await db.delete(service)
        await db.flush()
        logger.info("Service deleted: %s", service_id)


service_catalog_service = ServiceCatalogService()
