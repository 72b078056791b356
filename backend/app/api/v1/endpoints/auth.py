"""
Auth API Endpoints.

Registration, login/logout via the auth cookie, and the current user.
"""

from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_user
from app.core.database import get_db
from app.core.security import clear_auth_cookie, set_auth_cookie
from app.models.user import User
from app.modules.auth.policy import Principal
from app.modules.auth.service import AuthService

router = APIRouter()


# ==================== Schemas ====================


class RegisterRequest(BaseModel):
    """New account."""

    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)


class LoginRequest(BaseModel):
    """Credentials."""

    email: EmailStr
    password: str = Field(min_length=1)


def user_to_dict(user: User) -> dict[str, Any]:
    """Public view of a user; never includes the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "image": user.image,
        "role": user.role.value,
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat(),
    }


# ==================== Endpoints ====================


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create an account."""
    auth = AuthService(db)
    user = await auth.register(
        name=request.name,
        email=request.email,
        password=request.password,
    )

    return {"data": {"message": "Registration successful", "user": user_to_dict(user)}}


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Log in with email and password.

    Sets the http-only auth cookie on success.
    """
    auth = AuthService(db)
    user, token = await auth.login(request.email, request.password)
    set_auth_cookie(response, token)

    return {"data": {"message": "Login successful", "user": user_to_dict(user)}}


@router.post("/logout")
async def logout(response: Response) -> dict[str, Any]:
    """Clear the auth cookie. The token itself stays valid until it expires."""
    clear_auth_cookie(response)
    return {"data": {"message": "Logout successful"}}


@router.get("/me")
async def me(
    principal: Principal = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get the logged-in user's profile."""
    auth = AuthService(db)
    user = await auth.get_profile(principal)
    return {"data": user_to_dict(user)}
