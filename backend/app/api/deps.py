"""
Request-scoped API dependencies.

The caller's identity is decoded from the auth cookie per request and
passed explicitly to handlers; nothing is kept in globals.
"""

from fastapi import Depends, Request

from app.core.config import settings
from app.core.security import decode_access_token
from app.models.user import Role
from app.modules.auth.policy import Principal, authorize


async def get_principal(request: Request) -> Principal | None:
    """Identity from the auth cookie, None when absent or invalid."""
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        return None

    claims = decode_access_token(token)
    if claims is None:
        return None
    return Principal.from_claims(claims)


async def require_user(
    principal: Principal | None = Depends(get_principal),
) -> Principal:
    return authorize(principal, Role.USER)


async def require_admin(
    principal: Principal | None = Depends(get_principal),
) -> Principal:
    return authorize(principal, Role.ADMIN)
