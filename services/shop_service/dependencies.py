"""Request identity for the shop service.

``get_current_user`` turns verified token claims into an ``AuthUser`` by
looking the user up; ``require_admin`` composes on top of it.
"""

from typing import Annotated

from fastapi import Depends
from libs.auth.dependencies import ensure_admin, get_token_claims
from libs.auth.models import AuthUser, TokenClaims
from libs.common.errors import AuthenticationError
from libs.db.session import get_async_db
from services.shop_service.models import User
from sqlalchemy.ext.asyncio import AsyncSession


async def get_current_user(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    db: Annotated[AsyncSession, Depends(get_async_db)],
) -> AuthUser:
    user = await db.get(User, claims.user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return AuthUser(user_id=user.id, email=user.email, role=user.role.value)


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
) -> AuthUser:
    return ensure_admin(current_user)
