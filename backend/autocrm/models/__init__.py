"""
SQLAlchemy database models
Project: AutoService CRM

Central import of every model, for metadata creation and generic usage.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


from autocrm.models.user import User, UserRole, UserSession, PhoneCode, STAFF_ROLES
from autocrm.models.client import Client
from autocrm.models.service import Service
from autocrm.models.order import Order, OrderMaster
from autocrm.models.parts_sale import PartsSale
from autocrm.models.debt import Debt
from autocrm.models.payment import Payment
from autocrm.models.salary import Salary, WeeklySalary, Bonus
from autocrm.models.notification import Notification
from autocrm.models.stats import StatsSnapshot

__all__ = [
    "Base",
    "User",
    "UserRole",
    "UserSession",
    "PhoneCode",
    "STAFF_ROLES",
    "Client",
    "Service",
    "Order",
    "OrderMaster",
    "PartsSale",
    "Debt",
    "Payment",
    "Salary",
    "WeeklySalary",
    "Bonus",
    "Notification",
    "StatsSnapshot",
]
