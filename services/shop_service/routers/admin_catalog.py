"""Admin catalog router: product, stock and category management."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.models import AuthUser
from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.shop_service.dependencies import require_admin
from services.shop_service.models import Category, OrderItem, Product
from services.shop_service.routers._helpers import (
    ensure_category_exists,
    load_product,
)
from services.shop_service.schemas import (
    CategoryCreate,
    CategoryMessageResponse,
    CategoryResponse,
    CategoryUpdate,
    MessageResponse,
    ProductCreate,
    ProductMessageResponse,
    ProductResponse,
    ProductUpdate,
    StockUpdate,
)
from services.shop_service.services.inventory import set_stock
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-catalog"])
logger = get_logger(__name__)


# ============================================================================
# PRODUCTS
# ============================================================================


@router.post(
    "/products",
    response_model=ProductMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new product."""
    await ensure_category_exists(db, product_in.category_id)

    product = Product(**product_in.model_dump())
    db.add(product)
    await db.commit()

    logger.info("Product %s created by %s", product.id, current_user.user_id)
    product = await load_product(db, product.id)
    return ProductMessageResponse(
        message="Product created successfully",
        product=ProductResponse.model_validate(product),
    )


@router.put("/products/{product_id}", response_model=ProductMessageResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a product. Stock changes are logged as adjustments."""
    product = await load_product(db, product_id)

    update_data = product_in.model_dump(exclude_unset=True)
    new_stock = update_data.pop("stock", None)

    if update_data.get("category_id"):
        await ensure_category_exists(db, update_data["category_id"])

    for field, value in update_data.items():
        if value is None and field in {"name", "price", "unit", "is_active", "category_id"}:
            continue
        setattr(product, field, value)

    if new_stock is not None:
        await set_stock(
            db, product, new_stock, performed_by=str(current_user.user_id)
        )

    await db.commit()

    product = await load_product(db, product_id)
    return ProductMessageResponse(
        message="Product updated successfully",
        product=ProductResponse.model_validate(product),
    )


@router.patch("/products/{product_id}/stock", response_model=ProductMessageResponse)
async def update_product_stock(
    product_id: uuid.UUID,
    stock_in: StockUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Set the absolute stock level of a product."""
    product = await load_product(db, product_id)
    await set_stock(
        db,
        product,
        stock_in.stock,
        performed_by=str(current_user.user_id),
        notes=stock_in.notes,
    )
    await db.commit()

    product = await load_product(db, product_id)
    return ProductMessageResponse(
        message="Product stock updated successfully",
        product=ProductResponse.model_validate(product),
    )


@router.delete("/products/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a product that has never been ordered."""
    product = await db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    ordered = await db.execute(
        select(func.count())
        .select_from(OrderItem)
        .where(OrderItem.product_id == product_id)
    )
    if ordered.scalar():
        raise ValidationError(
            "Cannot delete product with existing orders. Deactivate it instead."
        )

    await db.delete(product)
    await db.commit()

    logger.info("Product %s deleted by %s", product_id, current_user.user_id)
    return MessageResponse(message="Product deleted successfully")


# ============================================================================
# CATEGORIES
# ============================================================================


async def _ensure_category_name_free(db: AsyncSession, name: str) -> None:
    existing = await db.execute(select(Category.id).where(Category.name == name))
    if existing.scalar_one_or_none():
        raise ValidationError("Category already exists")


@router.post(
    "/categories",
    response_model=CategoryMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    category_in: CategoryCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new category."""
    await _ensure_category_name_free(db, category_in.name)

    category = Category(**category_in.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)

    return CategoryMessageResponse(
        message="Category created successfully",
        category=CategoryResponse.model_validate(category),
    )


@router.put("/categories/{category_id}", response_model=CategoryMessageResponse)
async def update_category(
    category_id: uuid.UUID,
    category_in: CategoryUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a category."""
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")

    update_data = category_in.model_dump(exclude_unset=True)
    new_name = update_data.get("name")
    if new_name and new_name != category.name:
        await _ensure_category_name_free(db, new_name)

    for field, value in update_data.items():
        if field == "name" and value is None:
            continue
        setattr(category, field, value)

    await db.commit()
    await db.refresh(category)

    return CategoryMessageResponse(
        message="Category updated successfully",
        category=CategoryResponse.model_validate(category),
    )


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a category that holds no products."""
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")

    products = await db.execute(
        select(func.count())
        .select_from(Product)
        .where(Product.category_id == category_id)
    )
    if products.scalar():
        raise ValidationError(
            "Cannot delete category with products. Please move or delete products first."
        )

    await db.delete(category)
    await db.commit()

    return MessageResponse(message="Category deleted successfully")
