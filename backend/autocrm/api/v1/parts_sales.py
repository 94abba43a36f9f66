"""
Parts sales router
Project: AutoService CRM

Over-the-counter sales of parts, outside any order.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, Pagination, StaffUser
from autocrm.schemas.common import ApiResponse, MessageResponse, Page
from autocrm.schemas.parts_sale import PartsSaleCreate, PartsSaleRead, PartsSaleUpdate
from autocrm.services.parts_sale_service import PartsSaleService, parts_sale_service

router = APIRouter(
    prefix="/parts-sales",
    tags=["Parts sales"],
)


def get_parts_sale_service() -> PartsSaleService:
    return parts_sale_service


@router.get(
    "",
    summary="List parts sales",
    response_model=ApiResponse[Page[PartsSaleRead]],
)
async def list_parts_sales(
    current_user: CurrentUser,
    pagination: Pagination,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    seller_id: Optional[uuid.UUID] = Query(None, description="Ignored for masters, who see their own sales"),
    client_phone: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Part name, part number or client name"),
    db: AsyncSession = Depends(get_db),
    service: PartsSaleService = Depends(get_parts_sale_service),
):
    sales, total = await service.get_all(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        date_from=date_from,
        date_to=date_to,
        seller_id=seller_id,
        client_phone=client_phone,
        search=search,
    )
    items = [PartsSaleRead.model_validate(s) for s in sales]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/{sale_id}",
    summary="Parts sale detail",
    response_model=ApiResponse[PartsSaleRead],
)
async def get_parts_sale(
    sale_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: PartsSaleService = Depends(get_parts_sale_service),
):
    sale = await service.get_for_user(db, current_user, sale_id)
    return ApiResponse(data=PartsSaleRead.model_validate(sale))


@router.post(
    "",
    summary="Register parts sale",
    response_model=ApiResponse[PartsSaleRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_parts_sale(
    data: PartsSaleCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: PartsSaleService = Depends(get_parts_sale_service),
):
    """The caller is recorded as the seller."""
    sale = await service.create(db, data, current_user)
    await db.commit()
    return ApiResponse(data=PartsSaleRead.model_validate(sale))


@router.put(
    "/{sale_id}",
    summary="Update parts sale",
    response_model=ApiResponse[PartsSaleRead],
)
async def update_parts_sale(
    sale_id: uuid.UUID,
    data: PartsSaleUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: PartsSaleService = Depends(get_parts_sale_service),
):
    sale = await service.update(db, current_user, sale_id, data)
    await db.commit()
    return ApiResponse(data=PartsSaleRead.model_validate(sale))


@router.delete(
    "/{sale_id}",
    summary="Delete parts sale",
    response_model=ApiResponse[MessageResponse],
)
async def delete_parts_sale(
    sale_id: uuid.UUID,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: PartsSaleService = Depends(get_parts_sale_service),
):
    await service.delete(db, sale_id)
    await db.commit()
    return ApiResponse(data=MessageResponse(message="Продажа удалена"))


__all__ = ["router"]
