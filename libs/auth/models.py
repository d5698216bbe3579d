import uuid
from typing import Optional

from pydantic import BaseModel, Field

ADMIN_ROLE = "ADMIN"


class TokenClaims(BaseModel):
    """
    Claims carried by a bearer token issued by ``libs.auth.security``.
    """

    user_id: uuid.UUID = Field(..., alias="sub")
    role: str


class AuthUser(BaseModel):
    """
    The authenticated identity attached to a request after the user lookup.
    """

    user_id: uuid.UUID
    email: Optional[str] = None
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE
