"""
Debts router
Project: AutoService CRM

Outstanding client balances. Payments against a debt are registered
through the payments router.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, Pagination, StaffUser
from autocrm.schemas.common import ApiResponse, Page
from autocrm.schemas.debt import DebtCreate, DebtRead, DebtUpdate
from autocrm.services.debt_service import DebtService, debt_service

router = APIRouter(
    prefix="/debts",
    tags=["Debts"],
)


def get_debt_service() -> DebtService:
    return debt_service


@router.get(
    "",
    summary="List debts",
    response_model=ApiResponse[Page[DebtRead]],
)
async def list_debts(
    current_user: CurrentUser,
    pagination: Pagination,
    client_id: Optional[uuid.UUID] = Query(None),
    order_id: Optional[str] = Query(None),
    open_only: bool = Query(False, description="Only debts with a remaining balance"),
    db: AsyncSession = Depends(get_db),
    service: DebtService = Depends(get_debt_service),
):
    """Masters see only the debts of orders they are assigned to."""
    debts, total = await service.get_all(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        client_id=client_id,
        order_id=order_id,
        open_only=open_only,
    )
    items = [DebtRead.model_validate(d) for d in debts]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/{debt_id}",
    summary="Debt detail",
    response_model=ApiResponse[DebtRead],
)
async def get_debt(
    debt_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: DebtService = Depends(get_debt_service),
):
    debt = await service.get_for_user(db, current_user, debt_id)
    return ApiResponse(data=DebtRead.model_validate(debt))


@router.post(
    "",
    summary="Create debt",
    response_model=ApiResponse[DebtRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_debt(
    data: DebtCreate,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: DebtService = Depends(get_debt_service),
):
    debt = await service.create(db, data)
    await db.commit()
    return ApiResponse(data=DebtRead.model_validate(debt))


@router.put(
    "/{debt_id}",
    summary="Update debt notes",
    response_model=ApiResponse[DebtRead],
)
async def update_debt(
    debt_id: uuid.UUID,
    data: DebtUpdate,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: DebtService = Depends(get_debt_service),
):
    debt = await service.update(db, debt_id, data)
    await db.commit()
    return ApiResponse(data=DebtRead.model_validate(debt))


__all__ = ["router"]
