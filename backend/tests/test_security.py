"""
Tests for tokens, sessions and login flows.
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from autocrm.core.exceptions import AuthenticationError, AuthorizationError
from autocrm.core.security import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_numeric_code,
    hash_password,
    verify_password,
)
from autocrm.models.user import UserRole
from autocrm.schemas.user import UserCreate, UserLogin
from autocrm.services.auth_service import AuthService, mask_phone
from factories import make_user, scalar_result


def make_session(user, **kwargs):
    return SimpleNamespace(
        id=kwargs.get("id", uuid.uuid4()),
        user_id=user.id,
        user=user,
        refresh_jti=kwargs.get("refresh_jti"),
        revoked_at=None,
        expires_at=datetime.now(timezone.utc) + timedelta(days=7),
        is_valid=lambda now: True,
    )


# ============================================================
# Tokens
# ============================================================


class TestTokens:

    def test_access_token_claims(self):
        user_id, session_id = str(uuid.uuid4()), str(uuid.uuid4())

        payload = decode_token(create_access_token(user_id, "master", session_id))

        assert payload.sub == user_id
        assert payload.sid == session_id
        assert payload.role == "master"
        assert payload.type == ACCESS_TOKEN
        assert payload.exp > datetime.now(timezone.utc)

    def test_each_token_has_its_own_id(self):
        first = decode_token(create_refresh_token("u", "admin", "s"))
        second = decode_token(create_refresh_token("u", "admin", "s"))

        assert first.type == REFRESH_TOKEN
        assert first.jti != second.jti

    def test_garbage_token_is_rejected(self):
        with pytest.raises(AuthenticationError) as exc_info:
            decode_token("not-a-jwt")
        assert exc_info.value.error_code == "INVALID_TOKEN"


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("correct-horse")

        assert hashed != "correct-horse"
        assert verify_password("correct-horse", hashed)
        assert not verify_password("wrong-horse", hashed)

    def test_numeric_code(self):
        code = generate_numeric_code(6)
        assert len(code) == 6 and code.isdigit()

    def test_phone_is_masked_in_logs(self):
        assert mask_phone("+79123456789") == "***6789"


# ============================================================
# Auth service
# ============================================================


class TestRefresh:

    async def test_rotation_issues_new_pair(self, mock_db, master_user):
        session = make_session(master_user)
        token = create_refresh_token(str(master_user.id), master_user.role, str(session.id))
        session.refresh_jti = decode_token(token).jti
        mock_db.get.return_value = session

        tokens = await AuthService().refresh(mock_db, token)

        assert decode_token(tokens.access_token).sid == str(session.id)
        assert session.refresh_jti == decode_token(tokens.refresh_token).jti
        assert session.revoked_at is None

    async def test_reused_refresh_token_revokes_session(self, mock_db, master_user):
        session = make_session(master_user, refresh_jti="newer-token-id")
        token = create_refresh_token(str(master_user.id), master_user.role, str(session.id))
        mock_db.get.return_value = session

        with pytest.raises(AuthenticationError):
            await AuthService().refresh(mock_db, token)

        assert session.revoked_at is not None
        mock_db.commit.assert_awaited_once()

    async def test_access_token_cannot_refresh(self, mock_db, master_user):
        token = create_access_token(str(master_user.id), master_user.role, str(uuid.uuid4()))

        with pytest.raises(AuthenticationError):
            await AuthService().refresh(mock_db, token)

    async def test_unknown_session(self, mock_db, master_user):
        mock_db.get.return_value = None
        token = create_refresh_token(str(master_user.id), master_user.role, str(uuid.uuid4()))

        with pytest.raises(AuthenticationError):
            await AuthService().refresh(mock_db, token)


class TestPasswordLogin:

    async def test_wrong_password(self, mock_db):
        user = make_user("admin", hashed_password=hash_password("secret-123"))

        with patch("autocrm.services.auth_service.user_service") as user_service:
            user_service.get_by_email = AsyncMock(return_value=user)
            with pytest.raises(AuthenticationError, match="Неверный email или пароль"):
                await AuthService().login(mock_db, UserLogin(email=user.email, password="secret-124"))

    async def test_disabled_user(self, mock_db):
        user = make_user("admin", hashed_password=hash_password("secret-123"), is_active=False)

        with patch("autocrm.services.auth_service.user_service") as user_service:
            user_service.get_by_email = AsyncMock(return_value=user)
            with pytest.raises(AuthenticationError, match="деактивирован"):
                await AuthService().login(mock_db, UserLogin(email=user.email, password="secret-123"))

    async def test_successful_login_opens_session(self, mock_db):
        user = make_user("director", hashed_password=hash_password("secret-123"))

        with patch("autocrm.services.auth_service.user_service") as user_service:
            user_service.get_by_email = AsyncMock(return_value=user)
            result = await AuthService().login(
                mock_db, UserLogin(email=user.email, password="secret-123"), user_agent="pytest"
            )

        session = mock_db.add.call_args.args[0]
        assert session.user_id == user.id
        assert session.auth_method == "password"
        assert session.refresh_jti == decode_token(result.session.refresh_token).jti
        assert result.user.role == UserRole.DIRECTOR


class TestPhoneLogin:

    async def test_wrong_code_is_counted_and_committed(self, mock_db):
        pending = SimpleNamespace(code_hash=hash_password("123456"), attempts=0, consumed_at=None)
        mock_db.execute.return_value = scalar_result(pending)

        with pytest.raises(AuthenticationError, match="Неверный код подтверждения"):
            await AuthService().verify_phone_code(mock_db, "+79123456789", "654321")

        assert pending.attempts == 1
        assert pending.consumed_at is None
        mock_db.commit.assert_awaited_once()

    async def test_code_burned_after_max_attempts(self, mock_db):
        pending = SimpleNamespace(code_hash=hash_password("123456"), attempts=4, consumed_at=None)
        mock_db.execute.return_value = scalar_result(pending)

        with pytest.raises(AuthenticationError):
            await AuthService().verify_phone_code(mock_db, "+79123456789", "000000")

        assert pending.consumed_at is not None

    async def test_missing_code(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(AuthenticationError, match="Код не найден"):
            await AuthService().verify_phone_code(mock_db, "+79123456789", "123456")

    async def test_request_code(self, mock_db):
        response = await AuthService().request_phone_code(mock_db, "+79123456789")

        code = mock_db.add.call_args.args[0]
        assert response.message == "SMS код отправлен"
        assert response.expires_in > 0
        assert code.phone == "+79123456789"
        assert code.code_hash != response.code


class TestRegister:

    async def test_first_user_becomes_director(self, mock_db):
        data = UserCreate(email="owner@autoservice.ru", password="long-password", full_name="Владелец")

        with patch("autocrm.services.auth_service.user_service") as user_service:
            user_service.count = AsyncMock(return_value=0)
            user_service.create = AsyncMock(return_value=make_user("director"))
            await AuthService().register(mock_db, data, current_user=None)

        assert user_service.create.await_args.kwargs["role"] == UserRole.DIRECTOR

    async def test_anonymous_registration_closed_after_bootstrap(self, mock_db):
        data = UserCreate(email="new@autoservice.ru", password="long-password", full_name="Новый")

        with patch("autocrm.services.auth_service.user_service") as user_service:
            user_service.count = AsyncMock(return_value=3)
            with pytest.raises(AuthenticationError):
                await AuthService().register(mock_db, data, current_user=None)

    async def test_only_director_registers(self, mock_db, admin_user):
        data = UserCreate(email="new@autoservice.ru", password="long-password", full_name="Новый")

        with patch("autocrm.services.auth_service.user_service") as user_service:
            user_service.count = AsyncMock(return_value=3)
            with pytest.raises(AuthorizationError):
                await AuthService().register(mock_db, data, current_user=admin_user)
