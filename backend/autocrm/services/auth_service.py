"""
Authentication service
Project: AutoService CRM

Business logic for every login flow (password, Google, phone code),
session-bound token issuing, refresh and logout.
"""

import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import permissions_for
from autocrm.core.config import settings
from autocrm.core.exceptions import AuthenticationError, AuthorizationError
from autocrm.core.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_numeric_code,
    hash_password,
    verify_password,
)
from autocrm.models.user import PhoneCode, User, UserRole, UserSession
from autocrm.schemas.token import TokenResponse
from autocrm.schemas.user import (
    LoginResponse,
    MeResponse,
    PhoneCodeResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from autocrm.services.user_service import user_service

logger = logging.getLogger(__name__)


def mask_phone(phone: str) -> str:
    """Keeps the last four digits only, for logs."""
    return f"***{phone[-4:]}"


class AuthService:
    """Login flows and session lifecycle."""

    # ------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------
    async def register(self, db: AsyncSession, data: UserCreate, current_user: Optional[User]) -> User:
        """
        Registers a user.

        The very first user of an empty system becomes the director and
        needs no credentials; afterwards only the director can register
        users.

        Args:
            db: Database session
            data: User data
            current_user: Caller, None for anonymous requests

        Returns:
            The created user

        Raises:
            AuthenticationError: Anonymous request once a user exists
            AuthorizationError: Caller is not the director
            ConflictError: Email or phone already registered
        """
        if await user_service.count(db) == 0:
            user = await user_service.create(db, data, role=UserRole.DIRECTOR)
            logger.info("First user registered as director: %s", user.email)
            return user

        if current_user is None:
            raise AuthenticationError("Требуется авторизация")
        if current_user.role != UserRole.DIRECTOR.value:
            raise AuthorizationError("Регистрировать пользователей может только директор")

        return await user_service.create(db, data)

    # ------------------------------------------------------------
    # Login flows
    # ------------------------------------------------------------
    async def login(self, db: AsyncSession, data: UserLogin, user_agent: Optional[str] = None) -> LoginResponse:
        """
        Email and password login.

        Raises:
            AuthenticationError: Unknown email, wrong password or disabled user
        """
        user = await user_service.get_by_email(db, data.email)

        if user is None or not user.hashed_password or not verify_password(data.password, user.hashed_password):
            logger.warning("Failed login attempt for %s", data.email)
            raise AuthenticationError("Неверный email или пароль")

        if not user.is_active:
            logger.warning("Login attempt of disabled user %s", user.id)
            raise AuthenticationError("Пользователь деактивирован")

        tokens = await self._open_session(db, user, "password", user_agent)
        logger.info("User logged in: %s (%s)", user.id, user.email)
        return LoginResponse(user=UserResponse.model_validate(user), session=tokens)

    async def verify_google_token(self, id_token: str) -> dict:
        """
        Validates a Google id token against the tokeninfo endpoint.

        Returns:
            The token claims

        Raises:
            AuthenticationError: Invalid token, wrong audience, unverified
                email, or Google unreachable
        """
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(settings.google_tokeninfo_url, params={"id_token": id_token})
        except httpx.HTTPError as e:
            logger.error("Google tokeninfo request failed: %s", e)
            raise AuthenticationError("Ошибка аутентификации Google")

        if response.status_code != 200:
            logger.warning("Google rejected id token (status %s)", response.status_code)
            raise AuthenticationError("Ошибка аутентификации Google")

        claims = response.json()
        if settings.google_client_id and claims.get("aud") != settings.google_client_id:
            logger.warning("Google id token issued for another audience: %s", claims.get("aud"))
            raise AuthenticationError("Ошибка аутентификации Google")
        if not claims.get("email") or str(claims.get("email_verified")).lower() != "true":
            raise AuthenticationError("Email Google-аккаунта не подтвержден")

        return claims

    async def login_google(self, db: AsyncSession, id_token: str, user_agent: Optional[str] = None) -> LoginResponse:
        """
        Google login. Unknown emails get a new master account.
        """
        claims = await self.verify_google_token(id_token)
        email = claims["email"].lower()

        user = await user_service.get_by_email(db, email)
        if user is None:
            user = User(
                email=email,
                full_name=claims.get("name") or email,
                role=UserRole.MASTER.value,
            )
            db.add(user)
            await db.flush()
            await db.refresh(user)
            logger.info("User created from Google login: %s", user.email)
        elif not user.is_active:
            raise AuthenticationError("Пользователь деактивирован")

        tokens = await self._open_session(db, user, "google", user_agent)
        logger.info("User logged in with Google: %s", user.id)
        return LoginResponse(user=UserResponse.model_validate(user), session=tokens)

    async def request_phone_code(self, db: AsyncSession, phone: str) -> PhoneCodeResponse:
        """
        Issues a one-time login code for a phone number.

        Earlier pending codes of the same phone are burned. No SMS gateway
        is wired in: the code is logged, and returned in the response in
        development.
        """
        now = datetime.now(timezone.utc)
        await db.execute(
            update(PhoneCode)
            .where(PhoneCode.phone == phone, PhoneCode.consumed_at.is_(None))
            .values(consumed_at=now)
        )

        code = generate_numeric_code(settings.phone_code_length)
        ttl = timedelta(minutes=settings.phone_code_ttl_minutes)
        db.add(PhoneCode(phone=phone, code_hash=hash_password(code), expires_at=now + ttl, attempts=0))
        await db.flush()

        if settings.is_development:
            logger.info("Login code for %s: %s", mask_phone(phone), code)
        else:
            logger.info("Login code issued for %s", mask_phone(phone))

        return PhoneCodeResponse(
            message="SMS код отправлен",
            expires_in=int(ttl.total_seconds()),
            code=code if settings.is_development else None,
        )

    async def verify_phone_code(
        self,
        db: AsyncSession,
        phone: str,
        code: str,
        user_agent: Optional[str] = None,
    ) -> LoginResponse:
        """
        Checks a phone code and logs the user in.

        A wrong guess is counted and committed before the request fails;
        after `phone_code_max_attempts` wrong guesses the code is burned.
        Unknown phones get a new master account.

        Raises:
            AuthenticationError: No pending code, too many attempts, wrong
                code or disabled user
        """
        now = datetime.now(timezone.utc)
        result = await db.execute(
            select(PhoneCode)
            .where(
                PhoneCode.phone == phone,
                PhoneCode.consumed_at.is_(None),
                PhoneCode.expires_at > now,
            )
            .order_by(PhoneCode.created_at.desc())
            .limit(1)
        )
        pending = result.scalar_one_or_none()

        if pending is None:
            raise AuthenticationError("Код не найден или истек")

        if not verify_password(code, pending.code_hash):
            pending.attempts += 1
            if pending.attempts >= settings.phone_code_max_attempts:
                pending.consumed_at = now
            # persist the failed attempt before rejecting
            await db.commit()
            logger.warning("Wrong login code for %s (attempt %s)", mask_phone(phone), pending.attempts)
            raise AuthenticationError("Неверный код подтверждения")

        pending.consumed_at = now

        user = await user_service.get_by_phone(db, phone)
        if user is None:
            digits = re.sub(r"\D", "", phone)
            user = User(
                email=f"{digits}@phone.local",
                full_name=phone,
                phone=phone,
                role=UserRole.MASTER.value,
            )
            db.add(user)
            await db.flush()
            await db.refresh(user)
            logger.info("User created from phone login: %s", user.id)
        elif not user.is_active:
            raise AuthenticationError("Пользователь деактивирован")

        tokens = await self._open_session(db, user, "phone", user_agent)
        logger.info("User logged in with phone: %s", user.id)
        return LoginResponse(user=UserResponse.model_validate(user), session=tokens)

    # ------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------
    async def refresh(self, db: AsyncSession, refresh_token: str) -> TokenResponse:
        """
        Rotates the token pair of a session.

        Only the latest refresh token of a session is accepted. Presenting
        an older one revokes the whole session.

        Raises:
            AuthenticationError: Invalid, stale or revoked token
        """
        token_data = decode_token(refresh_token)
        if token_data.type != REFRESH_TOKEN:
            raise AuthenticationError("Неверный тип токена", error_code="INVALID_TOKEN")

        try:
            session_id = uuid.UUID(token_data.sid)
        except ValueError:
            raise AuthenticationError("Неверный refresh токен", error_code="INVALID_TOKEN")

        session = await db.get(UserSession, session_id)
        now = datetime.now(timezone.utc)

        if session is None or str(session.user_id) != token_data.sub or not session.is_valid(now):
            raise AuthenticationError("Сессия завершена", error_code="SESSION_INVALID")

        if session.refresh_jti != token_data.jti:
            session.revoked_at = now
            await db.commit()
            logger.warning("Refresh token reuse on session %s, session revoked", session.id)
            raise AuthenticationError("Сессия завершена", error_code="SESSION_INVALID")

        user = session.user
        if user is None or not user.is_active:
            raise AuthenticationError("Пользователь деактивирован")

        session.expires_at = now + timedelta(days=settings.refresh_token_expire_days)
        tokens = self._issue_tokens(user, session)
        await db.flush()
        return tokens

    async def logout(self, db: AsyncSession, session: UserSession) -> None:
        session.revoked_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("User logged out: %s (session %s)", session.user_id, session.id)

    def me(self, user: User) -> MeResponse:
        return MeResponse(user=UserResponse.model_validate(user), permissions=permissions_for(user.role))

    async def _open_session(
        self,
        db: AsyncSession,
        user: User,
        method: str,
        user_agent: Optional[str],
    ) -> TokenResponse:
        session = UserSession(
            id=uuid.uuid4(),
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days),
            auth_method=method,
            user_agent=(user_agent or "")[:255] or None,
        )
        db.add(session)
        await db.flush()

        tokens = self._issue_tokens(user, session)
        await db.flush()
        return tokens

    def _issue_tokens(self, user: User, session: UserSession) -> TokenResponse:
        """Signs a new pair and records the refresh token id on the session."""
        access_token = create_access_token(str(user.id), user.role, str(session.id))
        refresh_token = create_refresh_token(str(user.id), user.role, str(session.id))
        session.refresh_jti = decode_token(refresh_token).jti

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60,
        )


auth_service = AuthService()
