"""Stock adjustments and their audit trail."""

import uuid
from typing import Optional

from libs.common.logging import get_logger
from services.shop_service.models import Product, StockMovement, StockMovementType
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def record_movement(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    movement_type: StockMovementType,
    quantity: int,
    performed_by: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> StockMovement:
    """Stage a stock movement row; the caller owns the commit."""
    movement = StockMovement(
        product_id=product_id,
        movement_type=movement_type,
        quantity=quantity,
        performed_by=performed_by,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )
    db.add(movement)
    return movement


async def reserve_stock(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> Optional[int]:
    """Decrement stock only if enough is left, in a single statement.

    Returns the remaining stock, or ``None`` when the row did not qualify
    (unknown product or fewer than ``quantity`` units on hand).
    """
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .returning(Product.stock)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def release_stock(db: AsyncSession, product_id: uuid.UUID, quantity: int) -> None:
    """Put ``quantity`` units back, relative to whatever stock is now."""
    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )


async def current_stock(db: AsyncSession, product_id: uuid.UUID) -> int:
    result = await db.execute(select(Product.stock).where(Product.id == product_id))
    return result.scalar_one_or_none() or 0


async def set_stock(
    db: AsyncSession,
    product: Product,
    new_stock: int,
    *,
    performed_by: str,
    notes: Optional[str] = None,
) -> Optional[StockMovement]:
    """Set an absolute stock level and log the delta as an adjustment.

    Returns the movement, or ``None`` when the level did not change.
    """
    delta = new_stock - product.stock
    if delta == 0:
        return None

    product.stock = new_stock
    movement = record_movement(
        db,
        product_id=product.id,
        movement_type=StockMovementType.ADJUSTMENT,
        quantity=delta,
        performed_by=performed_by,
        reference_type="manual",
        notes=notes,
    )
    logger.info(
        "Stock for product %s adjusted by %+d to %d by %s",
        product.id,
        delta,
        new_stock,
        performed_by,
    )
    return movement
