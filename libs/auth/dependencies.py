import uuid
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from libs.auth.models import AuthUser, TokenClaims
from libs.auth.security import decode_access_token
from libs.common.errors import AuthenticationError, AuthorizationError

# auto_error=False so a missing header surfaces as our 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_token_claims(
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> TokenClaims:
    """
    Decode the bearer credential. The user lookup happens in the service layer.
    """
    if token is None:
        raise AuthenticationError("Access token required")
    return decode_access_token(token.credentials)


def ensure_admin(user: AuthUser) -> AuthUser:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


def ensure_can_access(user: AuthUser, owner_id: uuid.UUID) -> None:
    """Single ownership predicate: admins see everything, others only their own."""
    if user.is_admin or user.user_id == owner_id:
        return
    raise AuthorizationError("Access denied")
