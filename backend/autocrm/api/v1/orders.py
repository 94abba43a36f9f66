"""
Orders router
Project: AutoService CRM

Repair orders: listing with filters, creation with master assignments,
updates, status transitions and deletion.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, Pagination, StaffUser
from autocrm.schemas.common import ApiResponse, MessageResponse, Page
from autocrm.schemas.order import (
    OrderCreate,
    OrderMastersUpdate,
    OrderRead,
    OrderStatus,
    OrderStatusUpdate,
    OrderUpdate,
)
from autocrm.services.order_service import OrderService, order_service


router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
)


def get_order_service() -> OrderService:
    """Dependency returning the order service."""
    return order_service


@router.get(
    "",
    summary="List orders",
    response_model=ApiResponse[Page[OrderRead]],
)
async def list_orders(
    current_user: CurrentUser,
    pagination: Pagination,
    my: bool = Query(False, description="Only orders created by or assigned to the caller"),
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filter by status"),
    client_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None, description="Created on or after"),
    date_to: Optional[date] = Query(None, description="Created on or before"),
    search: Optional[str] = Query(None, description="Order id, client name or phone"),
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    """
    Paginated list of orders, newest first.

    Masters always get only the orders they created or are assigned to.
    """
    orders, total = await service.get_all(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        my=my,
        status=status_filter,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    items = [OrderRead.model_validate(o) for o in orders]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/{order_id}",
    summary="Order detail",
    response_model=ApiResponse[OrderRead],
)
async def get_order(
    order_id: str,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    order = await service.get_for_user(db, current_user, order_id)
    return ApiResponse(data=OrderRead.model_validate(order))


@router.post(
    "",
    summary="Create order",
    response_model=ApiResponse[OrderRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    data: OrderCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    """
    Creates an order with its next sequential identifier.

    Assigned masters are notified in the same transaction.
    """
    order = await service.create(db, data, current_user)
    await db.commit()
    return ApiResponse(data=OrderRead.model_validate(order))


@router.put(
    "/{order_id}",
    summary="Update order",
    response_model=ApiResponse[OrderRead],
)
async def update_order(
    order_id: str,
    data: OrderUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    order = await service.update(db, current_user, order_id, data)
    await db.commit()
    return ApiResponse(data=OrderRead.model_validate(order))


@router.patch(
    "/{order_id}/status",
    summary="Change order status",
    response_model=ApiResponse[OrderRead],
)
async def change_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    """
    Moves the order to a new status.

    The first move into `выдан` or `закрыт` records the masters' salaries.
    """
    order = await service.change_status(db, current_user, order_id, data.status)
    await db.commit()
    return ApiResponse(data=OrderRead.model_validate(order))


@router.patch(
    "/{order_id}/masters",
    summary="Replace assigned masters",
    response_model=ApiResponse[OrderRead],
)
async def replace_order_masters(
    order_id: str,
    data: OrderMastersUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    order = await service.replace_masters(db, current_user, order_id, data.masters)
    await db.commit()
    return ApiResponse(data=OrderRead.model_validate(order))


@router.delete(
    "/{order_id}",
    summary="Delete order",
    response_model=ApiResponse[MessageResponse],
)
async def delete_order(
    order_id: str,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: OrderService = Depends(get_order_service),
):
    await service.delete(db, order_id)
    await db.commit()
    return ApiResponse(data=MessageResponse(message="Заказ удален"))


__all__ = ["router"]
