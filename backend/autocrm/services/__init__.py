"""
Service layer
Project: AutoService CRM
"""

from autocrm.services.auth_service import auth_service
from autocrm.services.bonus_service import bonus_service
from autocrm.services.client_service import client_service
from autocrm.services.debt_service import debt_service
from autocrm.services.notification_service import notification_service
from autocrm.services.order_service import order_service
from autocrm.services.parts_sale_service import parts_sale_service
from autocrm.services.payment_service import payment_service
from autocrm.services.salary_service import salary_service
from autocrm.services.service_catalog_service import service_catalog_service
from autocrm.services.stats_service import stats_service
from autocrm.services.user_service import user_service

__all__ = [
    "auth_service",
    "bonus_service",
    "client_service",
    "debt_service",
    "notification_service",
    "order_service",
    "parts_sale_service",
    "payment_service",
    "salary_service",
    "service_catalog_service",
    "stats_service",
    "user_service",
]
