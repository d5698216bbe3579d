"""Public catalog router: browse products and categories."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.common.errors import NotFoundError
from libs.db.session import get_async_db
from services.shop_service.models import Category, Product
from services.shop_service.routers._helpers import build_pagination, load_product
from services.shop_service.schemas import (
    CategoryDetail,
    CategoryWithCount,
    ProductEnvelope,
    ProductListResponse,
    ProductResponse,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["catalog"])


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    category: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List active products, optionally filtered by category and search text."""
    query = select(Product).where(Product.is_active.is_(True))

    if category:
        query = query.where(Product.category_id == category)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
        )

    # Count
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Paginate
    query = (
        query.options(selectinload(Product.category))
        .order_by(Product.name)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    products = result.scalars().all()

    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/products/{product_id}", response_model=ProductEnvelope)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    product = await load_product(db, product_id)
    return ProductEnvelope(product=ProductResponse.model_validate(product))


# ============================================================================
# CATEGORIES
# ============================================================================


@router.get("/categories", response_model=list[CategoryWithCount])
async def list_categories(db: AsyncSession = Depends(get_async_db)):
    """List categories by name with their active product counts."""
    counts = (
        select(Product.category_id, func.count(Product.id).label("product_count"))
        .where(Product.is_active.is_(True))
        .group_by(Product.category_id)
        .subquery()
    )
    query = (
        select(Category, func.coalesce(counts.c.product_count, 0))
        .outerjoin(counts, counts.c.category_id == Category.id)
        .order_by(Category.name)
    )
    result = await db.execute(query)

    return [
        CategoryWithCount(
            id=category.id,
            name=category.name,
            description=category.description,
            image=category.image,
            created_at=category.created_at,
            updated_at=category.updated_at,
            product_count=product_count,
        )
        for category, product_count in result.all()
    ]


@router.get("/categories/{category_id}", response_model=CategoryDetail)
async def get_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Get a category with its active products."""
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")

    result = await db.execute(
        select(Product)
        .where(Product.category_id == category_id, Product.is_active.is_(True))
        .options(selectinload(Product.category))
        .order_by(Product.name)
    )
    products = result.scalars().all()

    return CategoryDetail(
        id=category.id,
        name=category.name,
        description=category.description,
        image=category.image,
        created_at=category.created_at,
        updated_at=category.updated_at,
        products=[ProductResponse.model_validate(p) for p in products],
    )
