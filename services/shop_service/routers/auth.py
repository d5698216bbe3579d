"""Account router: registration, login and the current user."""

from fastapi import APIRouter, Depends, status
from libs.auth.models import AuthUser
from libs.auth.security import create_access_token, hash_password, verify_password
from libs.common.errors import AuthenticationError, NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.shop_service.dependencies import get_current_user
from services.shop_service.models import User, UserRole
from services.shop_service.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserEnvelope,
    UserPublic,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Create a customer account and return a token for it."""
    email = payload.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ValidationError("User already exists")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        phone=payload.phone,
        address=payload.address,
        role=UserRole.CUSTOMER,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("Registered user %s", user.id)
    return AuthResponse(
        message="User registered successfully",
        user=UserPublic.model_validate(user),
        token=create_access_token(user.id, user.role.value),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    return AuthResponse(
        message="Login successful",
        user=UserPublic.model_validate(user),
        token=create_access_token(user.id, user.role.value),
    )


@router.get("/me", response_model=UserEnvelope)
async def me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await db.get(User, current_user.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserEnvelope(user=UserPublic.model_validate(user))
