"""Shared helper functions for shop routers."""

import math
import uuid

from libs.common.errors import NotFoundError
from services.shop_service.models import Category, Product
from services.shop_service.schemas import Pagination
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if limit else 0,
    )


async def load_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    """Fetch a product with its category, or raise ``NotFoundError``."""
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(selectinload(Product.category))
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return product


async def ensure_category_exists(db: AsyncSession, category_id: uuid.UUID) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category
