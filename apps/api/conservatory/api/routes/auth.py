"""
Authentication routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from conservatory.api.dependencies.database import get_db
from conservatory.api.dependencies.services import get_auth_service
from conservatory.core.auth.dependencies import CurrentContext
from conservatory.core.errors import NotFound
from conservatory.models.user import User
from conservatory.schemas.auth import LoginRequest, MeResponse, TokenResponse
from conservatory.schemas.common import ApiResponse, success_response
from conservatory.services.auth import AuthService

router = APIRouter()


@router.post("/login")
async def login(
    data: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[TokenResponse]:
    """Login with email and password."""
    token = await auth_service.login(email=data.email, password=data.password)
    return success_response(token, "Login successful")


@router.get("/me")
async def get_me(
    ctx: CurrentContext,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MeResponse]:
    """Get the caller's identity."""
    user = await db.get(User, ctx.user_id)
    if not user:
        raise NotFound("User", ctx.user_id)
    return success_response(MeResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=ctx.role,
        permissions=sorted(ctx.permissions),
    ))
