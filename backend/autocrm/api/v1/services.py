"""
Service catalog router
Project: AutoService CRM

Work items with their list price. Masters only ever see active
services; staff manage the catalog.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import is_staff
from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, Pagination, StaffUser
from autocrm.schemas.common import ApiResponse, MessageResponse, Page
from autocrm.schemas.service import ServiceCreate, ServiceRead, ServiceUpdate
from autocrm.services.service_catalog_service import ServiceCatalogService, service_catalog_service

router = APIRouter(
    prefix="/services",
    tags=["Services"],
)


def get_catalog_service() -> ServiceCatalogService:
    return service_catalog_service


@router.get(
    "",
    summary="List services",
    response_model=ApiResponse[Page[ServiceRead]],
)
async def list_services(
    current_user: CurrentUser,
    pagination: Pagination,
    active_only: bool = Query(True, description="Hide disabled services (always on for masters)"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: ServiceCatalogService = Depends(get_catalog_service),
):
    services, total = await service.get_all(
        db,
        page=pagination.page,
        limit=pagination.limit,
        active_only=active_only or not is_staff(current_user),
        category=category,
        search=search,
    )
    items = [ServiceRead.model_validate(s) for s in services]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/{service_id}",
    summary="Service detail",
    response_model=ApiResponse[ServiceRead],
)
async def get_service(
    service_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: ServiceCatalogService = Depends(get_catalog_service),
):
    item = await service.get_by_id(db, service_id, active_only=not is_staff(current_user))
    return ApiResponse(data=ServiceRead.model_validate(item))


@router.post(
    "",
    summary="Create service",
    response_model=ApiResponse[ServiceRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_service(
    data: ServiceCreate,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: ServiceCatalogService = Depends(get_catalog_service),
):
    item = await service.create(db, data)
    await db.commit()
    return ApiResponse(data=ServiceRead.model_validate(item))


@router.put(
    "/{service_id}",
    summary="Update service",
    response_model=ApiResponse[ServiceRead],
)
async def update_service(
    service_id: uuid.UUID,
    data: ServiceUpdate,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: ServiceCatalogService = Depends(get_catalog_service),
):
    item = await service.update(db, service_id, data)
    await db.commit()
    return ApiResponse(data=ServiceRead.model_validate(item))


@router.delete(
    "/{service_id}",
    summary="Delete service",
    response_model=ApiResponse[MessageResponse],
)
async def delete_service(
    service_id: uuid.UUID,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: ServiceCatalogService = Depends(get_catalog_service),
):
    await service.delete(db, service_id)
    await db.commit()
    return ApiResponse(data=MessageResponse(message="Услуга удалена"))


__all__ = ["router"]
