"""
Payments router
Project: AutoService CRM

Money received for orders, parts sales and debts. A payment against a
debt reduces the debt's remaining balance in the same transaction.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, Pagination, StaffUser
from autocrm.schemas.common import ApiResponse, MessageResponse, Page
from autocrm.schemas.payment import PaymentCreate, PaymentRead, PaymentType
from autocrm.services.payment_service import PaymentService, payment_service

router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
)


def get_payment_service() -> PaymentService:
    return payment_service


@router.get(
    "",
    summary="List payments",
    response_model=ApiResponse[Page[PaymentRead]],
)
async def list_payments(
    current_user: CurrentUser,
    pagination: Pagination,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    payment_type: Optional[PaymentType] = Query(None, alias="type"),
    order_id: Optional[str] = Query(None),
    debt_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    payments, total = await service.get_all(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        date_from=date_from,
        date_to=date_to,
        payment_type=payment_type,
        order_id=order_id,
        debt_id=debt_id,
    )
    items = [PaymentRead.model_validate(p) for p in payments]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/{payment_id}",
    summary="Payment detail",
    response_model=ApiResponse[PaymentRead],
)
async def get_payment(
    payment_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.get_for_user(db, current_user, payment_id)
    return ApiResponse(data=PaymentRead.model_validate(payment))


@router.post(
    "",
    summary="Register payment",
    response_model=ApiResponse[PaymentRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    data: PaymentCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.create(db, data, current_user)
    await db.commit()
    return ApiResponse(data=PaymentRead.model_validate(payment))


@router.delete(
    "/{payment_id}",
    summary="Delete payment",
    response_model=ApiResponse[MessageResponse],
)
async def delete_payment(
    payment_id: uuid.UUID,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    """Removes a mistaken payment. A debt it reduced is not restored."""
    await service.delete(db, payment_id)
    await db.commit()
    return ApiResponse(data=MessageResponse(message="Платеж удален"))


__all__ = ["router"]
