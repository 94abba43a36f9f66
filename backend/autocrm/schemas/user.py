"""
Pydantic schemas for users and authentication
Project: AutoService CRM

Schemas for user management and every login flow.
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from autocrm.models.user import UserRole
from autocrm.schemas.token import TokenResponse

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{10,14}$")


def validate_phone_field(v: Optional[str]) -> Optional[str]:
    """
    Normalizes a phone number and checks its format.

    Spaces, dashes and parentheses are stripped before matching
    an international number of 11 to 15 digits.

    Raises:
        ValueError: If the number does not match
    """
    if v is None:
        return v
    cleaned = re.sub(r"[\s\-()]", "", v)
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError("Неверный формат телефона")
    return cleaned


# -------------------------------------------------------------------
# User management
# -------------------------------------------------------------------
class UserCreate(BaseModel):
    """
    Schema for creating a user.

    Attributes:
        email: Unique email
        password: Plain-text password (8-100 characters)
        full_name: Full name
        phone: Optional phone, enables phone login
        role: Role (default: master)
    """

    email: EmailStr = Field(..., description="Unique user email")
    password: str = Field(min_length=8, max_length=100, description="Plain-text password")
    full_name: str = Field(min_length=1, max_length=255, description="Full name")
    phone: Optional[str] = Field(None, description="Phone number")
    role: UserRole = Field(default=UserRole.MASTER, description="User role")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_field(v)


class UserUpdate(BaseModel):
    """
    Schema for updating a user.

    All fields are optional for partial updates.
    """

    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None)
    role: Optional[UserRole] = Field(None)
    is_active: Optional[bool] = Field(None)
    password: Optional[str] = Field(None, min_length=8, max_length=100)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_field(v)


class UserResponse(BaseModel):
    """Public view of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="User id")
    email: str = Field(..., description="Email")
    full_name: str = Field(..., description="Full name")
    phone: Optional[str] = Field(None, description="Phone")
    role: UserRole = Field(..., description="Role")
    is_active: bool = Field(..., description="Whether the user can log in")
    created_at: datetime = Field(..., description="Creation time")


# -------------------------------------------------------------------
# Login flows
# -------------------------------------------------------------------
class UserLogin(BaseModel):
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="Plain-text password")


class GoogleLogin(BaseModel):
    id_token: str = Field(..., min_length=1, description="Google id token")


class PhoneLoginRequest(BaseModel):
    phone: str = Field(..., description="Phone number to send the code to")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return validate_phone_field(v)


class PhoneVerify(BaseModel):
    phone: str = Field(..., description="Phone number the code was sent to")
    code: str = Field(..., pattern=r"^\d{4,6}$", description="One-time code")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return validate_phone_field(v)


class PhoneCodeResponse(BaseModel):
    """
    Answer to a phone code request.

    `code` is filled only in development, where no SMS is sent.
    """

    message: str
    expires_in: int = Field(..., description="Code lifetime in seconds")
    code: Optional[str] = None


class LoginResponse(BaseModel):
    user: UserResponse
    session: TokenResponse


class MeResponse(BaseModel):
    user: UserResponse
    permissions: list[str]


__all__ = [
    "validate_phone_field",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserLogin",
    "GoogleLogin",
    "PhoneLoginRequest",
    "PhoneVerify",
    "PhoneCodeResponse",
    "LoginResponse",
    "MeResponse",
]
