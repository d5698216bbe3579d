"""Users router: admin user management and self-service profile updates."""

import uuid

from fastapi import APIRouter, Depends, Query
from libs.auth.models import AuthUser
from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.shop_service.dependencies import get_current_user, require_admin
from services.shop_service.models import Order, User, UserRole
from services.shop_service.routers._helpers import build_pagination
from services.shop_service.schemas import (
    OrderSummary,
    ProfileUpdate,
    RoleUpdate,
    UserDetail,
    UserDetailEnvelope,
    UserListResponse,
    UserMessageResponse,
    UserPublic,
    UserWithOrderCount,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/users", tags=["users"])
logger = get_logger(__name__)

RECENT_ORDERS_LIMIT = 10


async def _get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List users newest first with how many orders each has placed."""
    total_result = await db.execute(select(func.count()).select_from(User))
    total = total_result.scalar() or 0

    counts = (
        select(Order.user_id, func.count(Order.id).label("order_count"))
        .group_by(Order.user_id)
        .subquery()
    )
    result = await db.execute(
        select(User, func.coalesce(counts.c.order_count, 0))
        .outerjoin(counts, counts.c.user_id == User.id)
        .order_by(User.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    users = [
        UserWithOrderCount(
            **UserPublic.model_validate(user).model_dump(),
            order_count=order_count,
        )
        for user, order_count in result.all()
    ]
    return UserListResponse(
        users=users, pagination=build_pagination(page, limit, total)
    )


@router.put("/profile", response_model=UserMessageResponse)
async def update_profile(
    profile_in: ProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update the caller's own name, phone and address."""
    user = await _get_user_or_404(db, current_user.user_id)

    update_data = profile_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field == "name" and value is None:
            continue
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)

    return UserMessageResponse(
        message="Profile updated successfully",
        user=UserPublic.model_validate(user),
    )


@router.get("/{user_id}", response_model=UserDetailEnvelope)
async def get_user(
    user_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await _get_user_or_404(db, user_id)

    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
        .limit(RECENT_ORDERS_LIMIT)
    )
    orders = result.scalars().all()

    detail = UserDetail(
        **UserPublic.model_validate(user).model_dump(),
        orders=[OrderSummary.model_validate(o) for o in orders],
    )
    return UserDetailEnvelope(user=detail)


@router.patch("/{user_id}/role", response_model=UserMessageResponse)
async def update_user_role(
    user_id: uuid.UUID,
    role_in: RoleUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Promote or demote a user."""
    try:
        role = UserRole(role_in.role)
    except ValueError:
        raise ValidationError("Invalid role")

    user = await _get_user_or_404(db, user_id)
    user.role = role
    await db.commit()
    await db.refresh(user)

    logger.info(
        "User %s role set to %s by %s", user_id, role.value, current_user.user_id
    )
    return UserMessageResponse(
        message="User role updated successfully",
        user=UserPublic.model_validate(user),
    )
