"""Order engine: placement, status changes and cancellation with stock adjustment.

Every mutating operation here is one unit of work: it either commits all of
its rows (order, items, stock changes, movements) or rolls all of them back.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple, Optional, Sequence

from libs.auth.dependencies import ensure_can_access
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.errors import InternalError, NotFoundError, ValidationError
from libs.common.logging import get_logger
from services.shop_service.models import (
    ORDER_STATUS_FLOW,
    TERMINAL_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    StockMovementType,
)
from services.shop_service.services.inventory import (
    current_stock,
    record_movement,
    release_stock,
    reserve_stock,
)
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10

# A clash on the random order number suffix gets one fresh number
ORDER_NUMBER_ATTEMPTS = 2


class OrderLine(NamedTuple):
    product_id: uuid.UUID
    quantity: int


def _order_load_options():
    return (
        selectinload(Order.user),
        selectinload(Order.order_items).selectinload(OrderItem.product),
    )


async def load_order(
    db: AsyncSession, order_id: uuid.UUID, *, for_update: bool = False
) -> Order:
    """Fetch an order with its user and items, or raise ``NotFoundError``."""
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(*_order_load_options())
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Forward along the fulfilment flow, or to CANCELLED from a non-terminal state."""
    if current in TERMINAL_ORDER_STATUSES or current == target:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return ORDER_STATUS_FLOW.index(target) > ORDER_STATUS_FLOW.index(current)


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


async def _validate_lines(
    db: AsyncSession, items: Sequence[OrderLine]
) -> tuple[list[OrderItem], Decimal]:
    """Check every line against current product state before touching anything."""
    order_items: list[OrderItem] = []
    total_amount = Decimal("0")

    for line in items:
        if line.quantity <= 0:
            raise ValidationError(
                f"Quantity must be greater than zero for product {line.product_id}"
            )

        product = await db.get(Product, line.product_id, populate_existing=True)
        if product is None:
            raise NotFoundError(f"Product not found: {line.product_id}")
        if not product.is_active:
            raise ValidationError(f"Product not available: {product.name}")
        if product.stock < line.quantity:
            raise ValidationError(
                f"Insufficient stock for {product.name}. Available: {product.stock}"
            )

        # Current catalog price, never a client-supplied one
        total_amount += product.price * line.quantity
        order_items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                price=product.price,
            )
        )

    return order_items, total_amount


async def create_order(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    items: Sequence[OrderLine],
    delivery_address: str,
    notes: Optional[str] = None,
    delivery_date: Optional[datetime] = None,
) -> Order:
    """Place an order and reserve its stock atomically.

    1. Validate every line (existence, active, stock) and price it
    2. Insert the order with its items
    3. Conditionally decrement stock per line; any miss rolls everything back
    4. Commit and return the order with nested projections

    An order number that is already taken rolls the attempt back and retries
    once with a new number.
    """
    if not items:
        raise ValidationError("Order must contain at least one item")
    if not delivery_address or not delivery_address.strip():
        raise ValidationError("Delivery address is required")

    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        order_items, total_amount = await _validate_lines(db, items)

        order = Order(
            order_number=Order.generate_order_number(),
            user_id=user_id,
            status=OrderStatus.PENDING,
            total_amount=total_amount,
            delivery_address=delivery_address.strip(),
            notes=notes,
            delivery_date=delivery_date,
            order_items=order_items,
        )
        order_number = order.order_number

        try:
            await _insert_and_reserve(db, order, order_items, user_id)
        except IntegrityError as exc:
            await db.rollback()
            if not _is_order_number_clash(exc):
                raise
            if attempt == ORDER_NUMBER_ATTEMPTS:
                logger.error(
                    "Order number clash on %d attempts for user %s",
                    attempt,
                    user_id,
                )
                raise InternalError("Could not allocate an order number")
            logger.warning(
                "Order number %s already taken; retrying", order_number
            )
            continue
        except Exception:
            await db.rollback()
            raise
        break

    logger.info(
        "Created order %s for user %s (%d items, total=%s)",
        order.order_number,
        user_id,
        len(order_items),
        total_amount,
    )
    return await load_order(db, order.id)


def _is_order_number_clash(exc: IntegrityError) -> bool:
    return "order_number" in str(exc.orig)


async def _insert_and_reserve(
    db: AsyncSession,
    order: Order,
    order_items: list[OrderItem],
    user_id: uuid.UUID,
) -> None:
    """Insert the order, take stock for every line and commit; the caller rolls back."""
    db.add(order)
    await db.flush()

    for item in order_items:
        remaining = await reserve_stock(db, item.product_id, item.quantity)
        if remaining is None:
            available = await current_stock(db, item.product_id)
            logger.warning(
                "Stock reservation failed for product %s (wanted %d, available %d); "
                "rolling back order %s",
                item.product_id,
                item.quantity,
                available,
                order.order_number,
            )
            raise ValidationError(
                f"Insufficient stock for {item.product_name}. Available: {available}"
            )
        record_movement(
            db,
            product_id=item.product_id,
            movement_type=StockMovementType.SALE,
            quantity=-item.quantity,
            performed_by=str(user_id),
            reference_type="order",
            reference_id=order.id,
        )

    await db.commit()



# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


async def cancel_order(
    db: AsyncSession, *, order_id: uuid.UUID, current_user: AuthUser
) -> Order:
    """Cancel a non-terminal order and restore exactly the quantities it reserved."""
    order = await load_order(db, order_id, for_update=True)
    ensure_can_access(current_user, order.user_id)

    if order.status in TERMINAL_ORDER_STATUSES:
        raise ValidationError("Order cannot be cancelled")

    previous_status = order.status
    try:
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utc_now()

        for item in order.order_items:
            await release_stock(db, item.product_id, item.quantity)
            record_movement(
                db,
                product_id=item.product_id,
                movement_type=StockMovementType.RETURN,
                quantity=item.quantity,
                performed_by=str(current_user.user_id),
                reference_type="order",
                reference_id=order.id,
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Cancelled order %s (was %s) by %s; restocked %d items",
        order.order_number,
        previous_status.value,
        current_user.user_id,
        len(order.order_items),
    )
    return await load_order(db, order.id)


async def update_status(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    status: str,
    current_user: AuthUser,
) -> Order:
    """Move an order along its fulfilment flow (admin only).

    Only the status is persisted. A CANCELLED target goes through
    ``cancel_order`` so stock is restored there.
    """
    try:
        target = OrderStatus(status)
    except ValueError:
        raise ValidationError("Invalid status")

    if target == OrderStatus.CANCELLED:
        return await cancel_order(db, order_id=order_id, current_user=current_user)

    order = await load_order(db, order_id, for_update=True)
    if not can_transition(order.status, target):
        raise ValidationError(
            f"Cannot change order status from {order.status.value} to {target.value}"
        )

    previous_status = order.status
    order.status = target
    await db.commit()

    logger.info(
        "Order %s status %s -> %s by %s",
        order.order_number,
        previous_status.value,
        target.value,
        current_user.user_id,
    )
    return await load_order(db, order.id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_order(
    db: AsyncSession, *, order_id: uuid.UUID, current_user: AuthUser
) -> Order:
    order = await load_order(db, order_id)
    ensure_can_access(current_user, order.user_id)
    return order


async def list_orders(
    db: AsyncSession,
    *,
    current_user: AuthUser,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> tuple[list[Order], int]:
    """Own orders, or every order for admins, newest first."""
    query = select(Order)
    if not current_user.is_admin:
        query = query.where(Order.user_id == current_user.user_id)

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    query = (
        query.options(*_order_load_options())
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total
