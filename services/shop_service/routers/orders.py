"""Shop orders router: placement, history, status changes and cancellation."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.dependencies import get_current_user, require_admin
from services.shop_service.routers._helpers import build_pagination
from services.shop_service.schemas import (
    OrderCreate,
    OrderEnvelope,
    OrderListResponse,
    OrderMessageResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from services.shop_service.services import order_engine
from services.shop_service.services.order_engine import OrderLine
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["orders"])


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(order_engine.DEFAULT_PAGE_SIZE, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's orders (all orders for admins)."""
    orders, total = await order_engine.list_orders(
        db, current_user=current_user, page=page, limit=limit
    )
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/orders/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_engine.get_order(
        db, order_id=order_id, current_user=current_user
    )
    return OrderEnvelope(order=OrderResponse.model_validate(order))


@router.post(
    "/orders",
    response_model=OrderMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def place_order(
    payload: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order; prices come from the catalog, stock is reserved atomically."""
    order = await order_engine.create_order(
        db,
        user_id=current_user.user_id,
        items=[OrderLine(item.product_id, item.quantity) for item in payload.items],
        delivery_address=payload.delivery_address,
        notes=payload.notes,
        delivery_date=payload.delivery_date,
    )
    return OrderMessageResponse(
        message="Order created successfully",
        order=OrderResponse.model_validate(order),
    )


@router.patch("/orders/{order_id}/status", response_model=OrderMessageResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update order status (admin)."""
    order = await order_engine.update_status(
        db,
        order_id=order_id,
        status=status_update.status,
        current_user=current_user,
    )
    return OrderMessageResponse(
        message="Order status updated successfully",
        order=OrderResponse.model_validate(order),
    )


@router.patch("/orders/{order_id}/cancel", response_model=OrderMessageResponse)
async def cancel_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel an order and put its stock back."""
    order = await order_engine.cancel_order(
        db, order_id=order_id, current_user=current_user
    )
    return OrderMessageResponse(
        message="Order cancelled successfully",
        order=OrderResponse.model_validate(order),
    )
