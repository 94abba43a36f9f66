"""
Statistics router
Project: AutoService CRM

Dashboard and report figures, for staff.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.config import settings
from autocrm.core.database import get_db
from autocrm.core.deps import StaffUser
from autocrm.schemas.common import ApiResponse
from autocrm.schemas.stats import DashboardStats, OrdersStats, TopMaster
from autocrm.services.stats_service import StatsService, stats_service

router = APIRouter(
    prefix="/stats",
    tags=["Statistics"],
)


def get_stats_service() -> StatsService:
    return stats_service


def _today() -> date:
    return datetime.now(timezone.utc).astimezone(ZoneInfo(settings.timezone)).date()


@router.get(
    "/dashboard",
    summary="Dashboard figures",
    response_model=ApiResponse[DashboardStats],
)
async def get_dashboard(
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: StatsService = Depends(get_stats_service),
):
    return ApiResponse(data=await service.dashboard(db))


@router.get(
    "/orders",
    summary="Order statistics of a period",
    response_model=ApiResponse[OrdersStats],
)
async def get_orders_stats(
    staff: StaffUser,
    date_from: Optional[date] = Query(None, description="Defaults to the first day of the current month"),
    date_to: Optional[date] = Query(None, description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
    service: StatsService = Depends(get_stats_service),
):
    today = _today()
    result = await service.orders_stats(
        db,
        date_from=date_from or today.replace(day=1),
        date_to=date_to or today,
    )
    return ApiResponse(data=result)


@router.get(
    "/masters",
    summary="Top masters",
    response_model=ApiResponse[list[TopMaster]],
)
async def get_top_masters(
    staff: StaffUser,
    limit: int = Query(5, ge=1, le=50),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: StatsService = Depends(get_stats_service),
):
    masters = await service.top_masters(db, limit=limit, date_from=date_from, date_to=date_to)
    return ApiResponse(data=masters)


__all__ = ["router"]
