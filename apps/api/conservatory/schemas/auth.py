"""
Authentication schemas.
"""

from uuid import UUID

from pydantic import EmailStr, Field

from conservatory.schemas.common import CamelModel


class LoginRequest(CamelModel):
    """Email/password login."""
    email: EmailStr
    password: str = Field(min_length=1)


class TokenResponse(CamelModel):
    """Access token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(CamelModel):
    """The caller's resolved identity."""
    id: UUID
    email: str
    name: str
    role: str
    permissions: list[str]
