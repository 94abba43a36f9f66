"""
API tests through TestClient.

Response envelope, error mapping and role checks. The database is a
mock and the caller is injected, so no server-side state is needed.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from autocrm.services.order_service import order_service
from autocrm.services.service_catalog_service import service_catalog_service
from factories import make_assignment, make_order


class TestEnvelope:

    def test_health(self, api_client):
        response = api_client().get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert {"version", "environment", "uptime", "timestamp"} <= set(body)

    def test_unknown_route(self, api_client):
        response = api_client().get("/api/does-not-exist")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"

    def test_missing_token(self, api_client):
        response = api_client().get("/api/orders")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"

    def test_malformed_token(self, api_client):
        response = api_client().get("/api/orders", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"

    def test_me(self, api_client, director_user):
        response = api_client(director_user).get("/api/auth/me")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "director"
        assert "users:manage" in body["data"]["permissions"]


class TestValidationErrors:

    def test_percent_sum_rejected_with_400(self, api_client, master_user):
        payload = {
            "services": [{"name": "Диагностика", "price": "1000"}],
            "masters": [
                {"master_id": str(master_user.id), "percent": "60"},
                {"master_id": str(uuid.uuid4()), "percent": "30"},
            ],
        }

        response = api_client(master_user).post("/api/orders", json=payload)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "Сумма процентов мастеров должна быть равна 100%" in error["message"]
        assert error["details"][0]["field"] == "masters"

    def test_pagination_limit_is_bounded(self, api_client, admin_user):
        response = api_client(admin_user).get("/api/orders", params={"limit": 500})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestAccessControl:

    def test_master_cannot_open_foreign_order(self, api_client, master_user, other_master):
        foreign = make_order(created_by=other_master.id, masters=[make_assignment(other_master.id, Decimal("100"))])

        with patch.object(order_service, "get_by_id", AsyncMock(return_value=foreign)):
            response = api_client(master_user).get("/api/orders/ZA001")

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "INSUFFICIENT_PERMISSIONS"
        assert error["message"] == "Доступ к заказу запрещен"

    def test_master_cannot_delete_orders(self, api_client, master_user):
        response = api_client(master_user).delete("/api/orders/ZA001")

        assert response.status_code == 403

    def test_stats_are_staff_only(self, api_client, master_user):
        response = api_client(master_user).get("/api/stats/dashboard")

        assert response.status_code == 403
        assert response.json()["error"]["details"]["required_roles"] == ["admin", "director"]

    def test_admin_cannot_delete_clients(self, api_client, admin_user):
        response = api_client(admin_user).delete(f"/api/clients/{uuid.uuid4()}")

        assert response.status_code == 403

    def test_bonuses_are_director_only(self, api_client, admin_user):
        response = api_client(admin_user).get("/api/bonuses")

        assert response.status_code == 403

    def test_master_cannot_recalculate_salaries(self, api_client, master_user):
        response = api_client(master_user).post("/api/salaries/weekly/recalculate")

        assert response.status_code == 403


class TestServiceCatalog:

    def test_master_always_gets_active_services(self, api_client, master_user):
        get_all = AsyncMock(return_value=([], 0))

        with patch.object(service_catalog_service, "get_all", get_all):
            response = api_client(master_user).get("/api/services", params={"active_only": "false"})

        assert response.status_code == 200
        assert response.json()["data"]["pagination"]["total"] == 0
        assert get_all.call_args.kwargs["active_only"] is True

    def test_staff_can_list_inactive_services(self, api_client, admin_user):
        get_all = AsyncMock(return_value=([], 0))

        with patch.object(service_catalog_service, "get_all", get_all):
            api_client(admin_user).get("/api/services", params={"active_only": "false"})

        assert get_all.call_args.kwargs["active_only"] is False

    def test_master_cannot_manage_catalog(self, api_client, master_user):
        client = api_client(master_user)
        service_id = uuid.uuid4()
        payload = {"name": "Замена масла", "price": "1500"}

        assert client.post("/api/services", json=payload).status_code == 403
        assert client.put(f"/api/services/{service_id}", json=payload).status_code == 403
        assert client.delete(f"/api/services/{service_id}").status_code == 403

    def test_admin_creates_service(self, api_client, admin_user):
        created = SimpleNamespace(
            id=uuid.uuid4(),
            name="Замена масла",
            price=Decimal("1500.00"),
            category="ТО",
            duration_minutes=30,
            is_active=True,
            created_at=datetime.now(timezone.utc),
            updated_at=datetime.now(timezone.utc),
        )

        with patch.object(service_catalog_service, "create", AsyncMock(return_value=created)):
            response = api_client(admin_user).post(
                "/api/services",
                json={"name": "Замена масла", "price": "1500", "category": "ТО", "duration_minutes": 30},
            )

        assert response.status_code == 201
        assert response.json()["data"]["name"] == "Замена масла"


class TestDebtUpdate:

    def test_relinking_a_debt_is_rejected(self, api_client, admin_user):
        response = api_client(admin_user).put(
            f"/api/debts/{uuid.uuid4()}",
            json={"order_id": "ZA002", "notes": "другой заказ"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
