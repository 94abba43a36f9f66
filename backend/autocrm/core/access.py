"""
Access rules
Project: AutoService CRM

Row-level rules deciding which records a user may see or change.
Staff (admin, director) see everything; masters see what they created,
sold, or are assigned to. Routers call the `ensure_*` helpers, which
raise AuthorizationError on denial.
"""

from typing import Iterable, Optional
from uuid import UUID

from autocrm.core.exceptions import AuthorizationError
from autocrm.models.user import STAFF_ROLES, User, UserRole

ROLE_PERMISSIONS: dict[str, list[str]] = {
    UserRole.MASTER.value: [
        "orders:read", "orders:create", "orders:update",
        "clients:read", "clients:create",
        "parts:read", "parts:create",
        "services:read",
        "salaries:read:own",
        "notifications:read", "notifications:update",
    ],
    UserRole.ADMIN.value: [
        "orders:read", "orders:create", "orders:update", "orders:delete",
        "clients:read", "clients:create", "clients:update",
        "parts:read", "parts:create", "parts:update", "parts:delete",
        "debts:read", "debts:create", "debts:update",
        "payments:read", "payments:create", "payments:delete",
        "salaries:read", "salaries:update",
        "services:read", "services:create", "services:update", "services:delete",
        "stats:read",
        "notifications:read", "notifications:update",
    ],
    UserRole.DIRECTOR.value: [
        "orders:read", "orders:create", "orders:update", "orders:delete",
        "clients:read", "clients:create", "clients:update", "clients:delete",
        "parts:read", "parts:create", "parts:update", "parts:delete",
        "debts:read", "debts:create", "debts:update",
        "payments:read", "payments:create", "payments:delete",
        "salaries:read", "salaries:update",
        "bonuses:read", "bonuses:create", "bonuses:delete",
        "services:read", "services:create", "services:update", "services:delete",
        "stats:read",
        "users:manage",
        "notifications:read", "notifications:update",
    ],
}


def permissions_for(role: str) -> list[str]:
    """Permission tokens of a role, as exposed by GET /auth/me."""
    return list(ROLE_PERMISSIONS.get(role, []))


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES


def _deny(detail: str) -> None:
    raise AuthorizationError(detail)


# ------------------------------------------------------------
# Orders
# ------------------------------------------------------------
def can_access_order(user: User, created_by: Optional[UUID], master_ids: Iterable[UUID]) -> bool:
    """
    Staff, the creator of the order, or one of its assigned masters.

    Args:
        user: Caller
        created_by: Creator of the order
        master_ids: Masters currently assigned to the order
    """
    if is_staff(user):
        return True
    if created_by is not None and created_by == user.id:
        return True
    return user.id in set(master_ids)


def ensure_order_access(user: User, order) -> None:
    if not can_access_order(user, order.created_by, order.master_ids):
        _deny("Доступ к заказу запрещен")


# ------------------------------------------------------------
# Parts sales, debts, payments
# ------------------------------------------------------------
def ensure_parts_sale_access(user: User, sale) -> None:
    if not (is_staff(user) or sale.seller_id == user.id):
        _deny("Доступ к продаже запрещен")


def can_access_debt(user: User, order_master_ids: Iterable[UUID]) -> bool:
    """Staff, or a master assigned to the order the debt originates from."""
    return is_staff(user) or user.id in set(order_master_ids)


def ensure_debt_access(user: User, order_master_ids: Iterable[UUID]) -> None:
    if not can_access_debt(user, order_master_ids):
        _deny("Доступ к долгу запрещен")


def ensure_payment_access(user: User, payment) -> None:
    if not (is_staff(user) or payment.created_by == user.id):
        _deny("Доступ к платежу запрещен")


# ------------------------------------------------------------
# Salaries, notifications
# ------------------------------------------------------------
def ensure_salary_access(user: User, salary) -> None:
    if not (is_staff(user) or salary.master_id == user.id):
        _deny("Доступ к зарплате запрещен")


def ensure_notification_owner(user: User, notification) -> None:
    if notification.user_id != user.id:
        _deny("Доступ к уведомлению запрещен")


__all__ = [
    "ROLE_PERMISSIONS",
    "permissions_for",
    "is_staff",
    "can_access_order",
    "ensure_order_access",
    "ensure_parts_sale_access",
    "can_access_debt",
    "ensure_debt_access",
    "ensure_payment_access",
    "ensure_salary_access",
    "ensure_notification_owner",
]
