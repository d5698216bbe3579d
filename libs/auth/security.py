"""Credential service: password hashing and signed bearer tokens."""

import uuid
from datetime import timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from libs.auth.models import TokenClaims
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import AuthenticationError

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


def _encode_secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    settings = get_settings()
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_encode_secret(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode_secret(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(
    user_id: uuid.UUID,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed, time-limited token carrying the user id and role."""
    settings = get_settings()
    expires_at = utc_now() + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRES_MINUTES)
    )
    payload = {"sub": str(user_id), "role": role, "exp": expires_at}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """Verify signature and expiry, then return the decoded claims."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
        return TokenClaims(**payload)
    except (JWTError, PydanticValidationError):
        raise AuthenticationError("Invalid or expired token")
