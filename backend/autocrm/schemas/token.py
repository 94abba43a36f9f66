"""
Pydantic schemas for JWT authentication
Project: AutoService CRM
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """
    Token pair returned by every login flow and by refresh.

    Attributes:
        access_token: Short-lived bearer token
        refresh_token: Long-lived token used to rotate the pair
        token_type: Always "bearer"
        expires_in: Access token lifetime in seconds
    """

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class TokenRefresh(BaseModel):
    refresh_token: str = Field(..., description="JWT refresh token")


class TokenPayload(BaseModel):
    """
    Claims carried by access and refresh tokens.

    Attributes:
        sub: User id as a string
        role: User role at issue time
        sid: Session the token is bound to
        exp: Expiration time
        type: "access" or "refresh"
        jti: Unique token id
    """

    sub: str = Field(..., description="User id")
    role: str = Field(..., description="User role")
    sid: str = Field(..., description="Session id")
    exp: datetime = Field(..., description="Expiration time")
    type: str = Field(..., description="Token type (access/refresh)")
    jti: str = Field(..., description="Token id")


__all__ = [
    "TokenResponse",
    "TokenRefresh",
    "TokenPayload",
]
