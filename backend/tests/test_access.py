"""
Tests for role permissions and record-level access rules.
"""

import uuid
from types import SimpleNamespace

import pytest

from autocrm.core.access import (
    can_access_order,
    ensure_notification_owner,
    ensure_parts_sale_access,
    ensure_payment_access,
    ensure_salary_access,
    is_staff,
    permissions_for,
)
from autocrm.core.exceptions import AuthorizationError


class TestPermissions:

    def test_master_permissions(self):
        permissions = permissions_for("master")

        assert "orders:create" in permissions
        assert "services:read" in permissions
        assert "orders:delete" not in permissions
        assert "stats:read" not in permissions

    def test_only_director_deletes_clients(self):
        assert "clients:delete" not in permissions_for("admin")
        assert "clients:delete" in permissions_for("director")

    def test_unknown_role_has_nothing(self):
        assert permissions_for("guest") == []

    def test_staff(self, master_user, admin_user, director_user):
        assert not is_staff(master_user)
        assert is_staff(admin_user)
        assert is_staff(director_user)


class TestOrderAccess:

    def test_creator_can_access(self, master_user):
        assert can_access_order(master_user, master_user.id, [])

    def test_assigned_master_can_access(self, master_user):
        assert can_access_order(master_user, uuid.uuid4(), [uuid.uuid4(), master_user.id])

    def test_unrelated_master_is_denied(self, master_user):
        assert not can_access_order(master_user, uuid.uuid4(), [uuid.uuid4()])

    def test_order_without_creator(self, master_user, admin_user):
        assert not can_access_order(master_user, None, [])
        assert can_access_order(admin_user, None, [])


class TestRecordAccess:

    def test_parts_sale_seller(self, master_user, other_master):
        ensure_parts_sale_access(master_user, SimpleNamespace(seller_id=master_user.id))
        with pytest.raises(AuthorizationError):
            ensure_parts_sale_access(master_user, SimpleNamespace(seller_id=other_master.id))

    def test_payment_creator(self, master_user, admin_user):
        payment = SimpleNamespace(created_by=uuid.uuid4())
        ensure_payment_access(admin_user, payment)
        with pytest.raises(AuthorizationError):
            ensure_payment_access(master_user, payment)

    def test_salary_owner(self, master_user, other_master):
        ensure_salary_access(master_user, SimpleNamespace(master_id=master_user.id))
        with pytest.raises(AuthorizationError, match="Доступ к зарплате запрещен"):
            ensure_salary_access(other_master, SimpleNamespace(master_id=master_user.id))

    def test_notification_owner_even_for_staff(self, director_user):
        with pytest.raises(AuthorizationError):
            ensure_notification_owner(director_user, SimpleNamespace(user_id=uuid.uuid4()))
