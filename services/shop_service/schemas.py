"""Pydantic schemas for shop service.

Wire format is camelCase; snake_case input is accepted as well.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from services.shop_service.models import OrderStatus, UserRole


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class MessageResponse(CamelModel):
    message: str


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


# ============================================================================
# USER SCHEMAS
# ============================================================================


class UserPublic(CamelModel):
    id: uuid.UUID
    email: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: UserRole
    created_at: datetime


class UserSummary(CamelModel):
    """User projection embedded in orders."""

    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None


class UserEnvelope(CamelModel):
    user: UserPublic


class UserMessageResponse(CamelModel):
    message: str
    user: UserPublic


class UserWithOrderCount(UserPublic):
    order_count: int = 0


class UserListResponse(CamelModel):
    users: list[UserWithOrderCount]
    pagination: Pagination


class RegisterRequest(CamelModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, max_length=72)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class AuthResponse(CamelModel):
    message: str
    user: UserPublic
    token: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class RoleUpdate(CamelModel):
    # Validated against UserRole in the router so bad values are a 400 with a message
    role: str


# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=512)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = Field(None, max_length=512)


class CategoryResponse(CategoryBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class CategoryWithCount(CategoryResponse):
    product_count: int = 0


class CategoryMessageResponse(CamelModel):
    message: str
    category: CategoryResponse


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    unit: str = Field("kg", min_length=1, max_length=50)
    image: Optional[str] = Field(None, max_length=512)
    stock: int = Field(0, ge=0)
    category_id: uuid.UUID
    is_active: bool = True


class ProductCreate(ProductBase):
    pass


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    image: Optional[str] = Field(None, max_length=512)
    stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None


class StockUpdate(CamelModel):
    stock: int = Field(..., ge=0)
    notes: Optional[str] = None


class ProductResponse(ProductBase):
    id: uuid.UUID
    category: Optional[CategoryResponse] = None
    created_at: datetime
    updated_at: datetime


class ProductEnvelope(CamelModel):
    product: ProductResponse


class ProductMessageResponse(CamelModel):
    message: str
    product: ProductResponse


class ProductListResponse(CamelModel):
    products: list[ProductResponse]
    pagination: Pagination


class CategoryDetail(CategoryResponse):
    products: list[ProductResponse] = []


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemCreate(CamelModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)


class OrderCreate(CamelModel):
    # Emptiness is checked by the order engine so the message stays consistent
    items: list[OrderItemCreate]
    delivery_address: str = Field(..., min_length=1)
    notes: Optional[str] = None
    delivery_date: Optional[datetime] = None


class OrderStatusUpdate(CamelModel):
    # Validated against OrderStatus by the order engine
    status: str


class ProductSnippet(CamelModel):
    id: uuid.UUID
    name: str
    image: Optional[str] = None
    unit: str


class OrderItemResponse(CamelModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    price: Decimal
    product: Optional[ProductSnippet] = None


class OrderResponse(CamelModel):
    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID
    status: OrderStatus
    total_amount: Decimal
    delivery_address: str
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None
    order_items: list[OrderItemResponse] = []


class OrderSummary(CamelModel):
    """Order projection embedded in the admin user detail."""

    id: uuid.UUID
    order_number: str
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime


class OrderEnvelope(CamelModel):
    order: OrderResponse


class OrderMessageResponse(CamelModel):
    message: str
    order: OrderResponse


class OrderListResponse(CamelModel):
    orders: list[OrderResponse]
    pagination: Pagination


class UserDetail(UserPublic):
    orders: list[OrderSummary] = []


class UserDetailEnvelope(CamelModel):
    user: UserDetail
