"""
Bonuses router
Project: AutoService CRM

Discretionary bonuses, granted and managed by the director only.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import DirectorUser, Pagination
from autocrm.schemas.common import ApiResponse, MessageResponse, Page
from autocrm.schemas.salary import BonusCreate, BonusRead
from autocrm.services.bonus_service import BonusService, bonus_service

router = APIRouter(
    prefix="/bonuses",
    tags=["Bonuses"],
)


def get_bonus_service() -> BonusService:
    return bonus_service


@router.get(
    "",
    summary="List bonuses",
    response_model=ApiResponse[Page[BonusRead]],
)
async def list_bonuses(
    director: DirectorUser,
    pagination: Pagination,
    order_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: BonusService = Depends(get_bonus_service),
):
    bonuses, total = await service.get_all(db, page=pagination.page, limit=pagination.limit, order_id=order_id)
    items = [BonusRead.model_validate(b) for b in bonuses]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.post(
    "",
    summary="Grant bonus",
    response_model=ApiResponse[BonusRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_bonus(
    data: BonusCreate,
    director: DirectorUser,
    db: AsyncSession = Depends(get_db),
    service: BonusService = Depends(get_bonus_service),
):
    bonus = await service.create(db, data, director)
    await db.commit()
    return ApiResponse(data=BonusRead.model_validate(bonus))


@router.delete(
    "/{bonus_id}",
    summary="Delete bonus",
    response_model=ApiResponse[MessageResponse],
)
async def delete_bonus(
    bonus_id: uuid.UUID,
    director: DirectorUser,
    db: AsyncSession = Depends(get_db),
    service: BonusService = Depends(get_bonus_service),
):
    await service.delete(db, bonus_id)
    await db.commit()
    return ApiResponse(data=MessageResponse(message="Бонус удален"))


__all__ = ["router"]
