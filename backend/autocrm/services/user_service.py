"""
Service layer for users
Project: AutoService CRM

Staff accounts and masters, managed by the director.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.exceptions import ConflictError, NotFoundError
from autocrm.core.security import hash_password
from autocrm.models import User
from autocrm.models.user import UserRole
from autocrm.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        active_only: bool = False,
    ) -> tuple[list[User], int]:
        conditions = []
        if role is not None:
            conditions.append(User.role == UserRole(role).value)
        if active_only:
            conditions.append(User.is_active.is_(True))
        if search:
            term = f"%{search.strip()}%"
            conditions.append(or_(User.full_name.ilike(term), User.email.ilike(term), User.phone.ilike(term)))

        query = select(User).order_by(User.full_name.asc())
        count_query = select(func.count()).select_from(User)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        users = list(result.scalars().all())

        count_result = await db.execute(count_query)
        return users, count_result.scalar() or 0

    async def get_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        """
        Raises:
            NotFoundError: If the user does not exist
        """
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("Пользователь не найден")
        return user

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_phone(self, db: AsyncSession, phone: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.phone == phone))
        return result.scalar_one_or_none()

    async def count(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count(User.id)))
        return result.scalar() or 0

    async def create(self, db: AsyncSession, data: UserCreate, role: Optional[UserRole] = None) -> User:
        """
        Creates a user with a local password.

        Args:
            db: Database session
            data: Validated user data
            role: Overrides the role in the payload

        Raises:
            ConflictError: If the email or phone is already registered
        """
        if await self.get_by_email(db, data.email) is not None:
            raise ConflictError(f"Email {data.email} уже зарегистрирован")
        if data.phone and await self.get_by_phone(db, data.phone) is not None:
            raise ConflictError(f"Телефон {data.phone} уже зарегистрирован")

        user = User(
            email=data.email.lower(),
            hashed_password=hash_password(data.password),
            full_name=data.full_name,
            phone=data.phone,
            role=(role or data.role).value,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info("User created: %s (%s, role=%s)", user.id, user.email, user.role)
        return user

    async def update(self, db: AsyncSession, user_id: uuid.UUID, data: UserUpdate) -> User:
        """
        Partially updates a user; a new password is hashed.

        Raises:
            NotFoundError: If the user does not exist
            ConflictError: If the new phone belongs to another user
        """
        user = await self.get_by_id(db, user_id)
        update_data = data.model_dump(exclude_unset=True)

        new_phone = update_data.get("phone")
        if new_phone and new_phone != user.phone:
            other = await self.get_by_phone(db, new_phone)
            if other is not None and other.id != user.id:
                raise ConflictError(f"Телефон {new_phone} уже зарегистрирован")

        password = update_data.pop("password", None)
        if password:
            user.hashed_password = hash_password(password)
        if update_data.get("role") is not None:
            update_data["role"] = UserRole(update_data["role"]).value

        for field, value in update_data.items():
            if value is None and field in ("full_name", "role", "is_active"):
                continue
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        logger.info("User updated: %s (fields=%s)", user.id, sorted(data.model_fields_set))
        return user


user_service = UserService()
