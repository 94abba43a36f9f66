"""
Test doubles for models and query results.
"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock


def scalar_result(value):
    """Result mock answering .scalar() and .scalar_one_or_none()."""
    result = MagicMock()
    result.scalar.return_value = value
    result.scalar_one_or_none.return_value = value
    result.unique.return_value.scalar_one_or_none.return_value = value
    return result


def make_user(role: str = "master", **kwargs):
    return SimpleNamespace(
        id=kwargs.get("id", uuid.uuid4()),
        email=kwargs.get("email", f"{role}@autoservice.ru"),
        full_name=kwargs.get("full_name", f"Test {role}"),
        phone=kwargs.get("phone"),
        role=role,
        is_active=kwargs.get("is_active", True),
        hashed_password=kwargs.get("hashed_password"),
        created_at=kwargs.get("created_at", datetime(2026, 1, 12, 9, 0, tzinfo=timezone.utc)),
    )


def make_assignment(master_id, percent):
    return SimpleNamespace(master_id=master_id, percent=percent)


def make_order(order_id: str = "ZA001", **kwargs):
    masters = kwargs.get("masters", [])
    return SimpleNamespace(
        id=order_id,
        client_id=kwargs.get("client_id"),
        status=kwargs.get("status", "новый"),
        total=kwargs.get("total"),
        created_by=kwargs.get("created_by"),
        completed_at=kwargs.get("completed_at"),
        masters=masters,
        master_ids=[m.master_id for m in masters],
    )
