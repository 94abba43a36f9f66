"""
API v1 routes
Project: AutoService CRM

Aggregates every resource router under the /api prefix.
"""

from fastapi import APIRouter

from autocrm.api.v1 import (
    auth,
    bonuses,
    clients,
    debts,
    notifications,
    orders,
    parts_sales,
    payments,
    salaries,
    services,
    stats,
    users,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(orders.router)
api_router.include_router(clients.router)
api_router.include_router(services.router)
api_router.include_router(parts_sales.router)
api_router.include_router(debts.router)
api_router.include_router(payments.router)
api_router.include_router(salaries.router)
api_router.include_router(bonuses.router)
api_router.include_router(notifications.router)
api_router.include_router(stats.router)

__all__ = ["api_router"]
