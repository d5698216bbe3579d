"""Unit tests for the order engine against a real (SQLite) session.

Failed placements roll the session back, which expires every loaded object,
so ids are captured up front and rows are refreshed before assertions.
"""

import uuid
from decimal import Decimal

import pytest
from libs.auth.models import AuthUser
from libs.common.errors import (
    AuthorizationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from services.shop_service.models import (
    Order,
    OrderStatus,
    Product,
    StockMovement,
    StockMovementType,
)
from services.shop_service.services import order_engine
from services.shop_service.services.inventory import set_stock
from services.shop_service.services.order_engine import OrderLine
from sqlalchemy import func, select
from tests.factories import ProductFactory


def _as_auth_user(user) -> AuthUser:
    return AuthUser(user_id=user.id, email=user.email, role=user.role.value)


async def _stock(db_session, product_id) -> int:
    result = await db_session.execute(
        select(Product.stock).where(Product.id == product_id)
    )
    return result.scalar_one()


async def _order_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(Order))
    return result.scalar_one()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_snapshots_prices_and_decrements_stock(
    db_session, customer, bananas
):
    product_id = bananas.id
    order = await order_engine.create_order(
        db_session,
        user_id=customer.id,
        items=[OrderLine(product_id, 3)],
        delivery_address="12 Ring Road, Accra",
    )

    assert order.status == OrderStatus.PENDING
    assert order.total_amount == Decimal("25.50")
    assert order.order_number.startswith("ORD-")
    assert len(order.order_items) == 1
    item = order.order_items[0]
    assert item.price == Decimal("8.50")
    assert item.product_name == "Fresh Bananas"
    assert await _stock(db_session, product_id) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_records_sale_movements(db_session, customer, bananas):
    product_id = bananas.id
    order = await order_engine.create_order(
        db_session,
        user_id=customer.id,
        items=[OrderLine(product_id, 2)],
        delivery_address="12 Ring Road",
    )

    result = await db_session.execute(
        select(StockMovement).where(StockMovement.reference_id == order.id)
    )
    movements = result.scalars().all()
    assert len(movements) == 1
    assert movements[0].movement_type == StockMovementType.SALE
    assert movements[0].quantity == -2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_total_is_sum_over_lines(db_session, customer, category):
    apples = ProductFactory.create(category_id=category.id, price="15.00", stock=10)
    onions = ProductFactory.create(category_id=category.id, price="4.50", stock=10)
    db_session.add_all([apples, onions])
    await db_session.commit()

    order = await order_engine.create_order(
        db_session,
        user_id=customer.id,
        items=[OrderLine(apples.id, 2), OrderLine(onions.id, 3)],
        delivery_address="Market Street",
    )

    assert order.total_amount == Decimal("43.50")
    assert sum(i.price * i.quantity for i in order.order_items) == order.total_amount


@pytest.mark.asyncio
@pytest.mark.unit
async def test_insufficient_stock_reports_available(db_session, customer, bananas):
    product_id = bananas.id
    user_id = customer.id

    with pytest.raises(ValidationError) as exc_info:
        await order_engine.create_order(
            db_session,
            user_id=user_id,
            items=[OrderLine(product_id, 6)],
            delivery_address="Somewhere",
        )

    assert "Available: 5" in exc_info.value.message
    assert await _stock(db_session, product_id) == 5
    assert await _order_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_lines_cannot_oversell(db_session, customer, bananas):
    """Each line passes the pre-check alone; the conditional decrement catches the sum."""
    product_id = bananas.id
    user_id = customer.id

    with pytest.raises(ValidationError) as exc_info:
        await order_engine.create_order(
            db_session,
            user_id=user_id,
            items=[OrderLine(product_id, 3), OrderLine(product_id, 3)],
            delivery_address="Somewhere",
        )

    assert "Available: 2" in exc_info.value.message
    # The first line's decrement was rolled back with the order
    assert await _stock(db_session, product_id) == 5
    assert await _order_count(db_session) == 0
    movements = await db_session.execute(
        select(func.count()).select_from(StockMovement)
    )
    assert movements.scalar_one() == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failure_on_later_line_leaves_earlier_stock_untouched(
    db_session, customer, category
):
    plenty = ProductFactory.create(category_id=category.id, stock=50)
    scarce = ProductFactory.create(category_id=category.id, stock=1)
    db_session.add_all([plenty, scarce])
    await db_session.commit()
    plenty_id, scarce_id, user_id = plenty.id, scarce.id, customer.id

    with pytest.raises(ValidationError):
        await order_engine.create_order(
            db_session,
            user_id=user_id,
            items=[OrderLine(plenty_id, 10), OrderLine(scarce_id, 2)],
            delivery_address="Somewhere",
        )

    assert await _stock(db_session, plenty_id) == 50
    assert await _stock(db_session, scarce_id) == 1
    assert await _order_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_empty_order_is_rejected(db_session, customer):
    with pytest.raises(ValidationError, match="at least one item"):
        await order_engine.create_order(
            db_session, user_id=customer.id, items=[], delivery_address="Somewhere"
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_blank_address_is_rejected(db_session, customer, bananas):
    with pytest.raises(ValidationError, match="Delivery address"):
        await order_engine.create_order(
            db_session,
            user_id=customer.id,
            items=[OrderLine(bananas.id, 1)],
            delivery_address="   ",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_product_is_not_found(db_session, customer):
    with pytest.raises(NotFoundError, match="Product not found"):
        await order_engine.create_order(
            db_session,
            user_id=customer.id,
            items=[OrderLine(uuid.uuid4(), 1)],
            delivery_address="Somewhere",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_inactive_product_is_not_available(db_session, customer, category):
    product = ProductFactory.create(category_id=category.id, is_active=False)
    db_session.add(product)
    await db_session.commit()

    with pytest.raises(ValidationError, match="Product not available"):
        await order_engine.create_order(
            db_session,
            user_id=customer.id,
            items=[OrderLine(product.id, 1)],
            delivery_address="Somewhere",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_restores_stock_and_is_not_repeatable(
    db_session, customer, bananas
):
    product_id = bananas.id
    user = _as_auth_user(customer)
    order = await order_engine.create_order(
        db_session,
        user_id=user.user_id,
        items=[OrderLine(product_id, 3)],
        delivery_address="Somewhere",
    )
    assert await _stock(db_session, product_id) == 2

    cancelled = await order_engine.cancel_order(
        db_session, order_id=order.id, current_user=user
    )
    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert await _stock(db_session, product_id) == 5

    with pytest.raises(ValidationError, match="cannot be cancelled"):
        await order_engine.cancel_order(
            db_session, order_id=order.id, current_user=user
        )
    assert await _stock(db_session, product_id) == 5


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_by_other_customer_is_forbidden(
    db_session, customer, other_customer, bananas
):
    product_id = bananas.id
    intruder = _as_auth_user(other_customer)
    order = await order_engine.create_order(
        db_session,
        user_id=customer.id,
        items=[OrderLine(product_id, 1)],
        delivery_address="Somewhere",
    )

    with pytest.raises(AuthorizationError):
        await order_engine.cancel_order(
            db_session, order_id=order.id, current_user=intruder
        )
    assert await _stock(db_session, product_id) == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_status_walks_forward_only(db_session, customer, admin, bananas):
    staff = _as_auth_user(admin)
    order = await order_engine.create_order(
        db_session,
        user_id=customer.id,
        items=[OrderLine(bananas.id, 1)],
        delivery_address="Somewhere",
    )

    updated = await order_engine.update_status(
        db_session, order_id=order.id, status="CONFIRMED", current_user=staff
    )
    assert updated.status == OrderStatus.CONFIRMED

    with pytest.raises(ValidationError, match="Cannot change order status"):
        await order_engine.update_status(
            db_session, order_id=order.id, status="PENDING", current_user=staff
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_status_rejects_unknown_value(db_session, admin):
    with pytest.raises(ValidationError, match="Invalid status"):
        await order_engine.update_status(
            db_session,
            order_id=uuid.uuid4(),
            status="SHIPPED",
            current_user=_as_auth_user(admin),
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_status_to_cancelled_restocks(
    db_session, customer, admin, bananas
):
    product_id = bananas.id
    staff = _as_auth_user(admin)
    order = await order_engine.create_order(
        db_session,
        user_id=customer.id,
        items=[OrderLine(product_id, 4)],
        delivery_address="Somewhere",
    )

    cancelled = await order_engine.update_status(
        db_session, order_id=order.id, status="CANCELLED", current_user=staff
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert await _stock(db_session, product_id) == 5


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_orders_scopes_to_owner(
    db_session, customer, other_customer, admin, bananas
):
    for owner in (customer, customer, other_customer):
        await order_engine.create_order(
            db_session,
            user_id=owner.id,
            items=[OrderLine(bananas.id, 1)],
            delivery_address="Somewhere",
        )

    own, own_total = await order_engine.list_orders(
        db_session, current_user=_as_auth_user(customer)
    )
    everything, all_total = await order_engine.list_orders(
        db_session, current_user=_as_auth_user(admin)
    )

    assert own_total == 2
    assert {o.user_id for o in own} == {customer.id}
    assert all_total == 3
    assert len(everything) == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_adds_back_ordered_quantity_after_restock(
    db_session, customer, admin, bananas
):
    """Cancelling is relative to current stock, not a reset to the pre-order level."""
    product_id = bananas.id
    user = _as_auth_user(customer)
    order = await order_engine.create_order(
        db_session,
        user_id=user.user_id,
        items=[OrderLine(product_id, 3)],
        delivery_address="Somewhere",
    )
    assert await _stock(db_session, product_id) == 2

    product = await db_session.get(Product, product_id, populate_existing=True)
    await set_stock(db_session, product, 10, performed_by=str(admin.id))
    await db_session.commit()

    await order_engine.cancel_order(db_session, order_id=order.id, current_user=user)

    assert await _stock(db_session, product_id) == 13


@pytest.mark.asyncio
@pytest.mark.unit
async def test_taken_order_number_is_retried_with_a_new_one(
    db_session, customer, bananas, monkeypatch
):
    product_id, user_id = bananas.id, customer.id
    numbers = iter(
        [
            "ORD-20260101000000-AAAAAA",
            "ORD-20260101000000-AAAAAA",
            "ORD-20260101000000-BBBBBB",
        ]
    )
    monkeypatch.setattr(
        Order, "generate_order_number", staticmethod(lambda: next(numbers))
    )

    first = await order_engine.create_order(
        db_session,
        user_id=user_id,
        items=[OrderLine(product_id, 1)],
        delivery_address="Somewhere",
    )
    first_number = first.order_number

    second = await order_engine.create_order(
        db_session,
        user_id=user_id,
        items=[OrderLine(product_id, 1)],
        delivery_address="Somewhere",
    )

    assert first_number == "ORD-20260101000000-AAAAAA"
    assert second.order_number == "ORD-20260101000000-BBBBBB"
    assert await _order_count(db_session) == 2
    # The clashing attempt took no stock
    assert await _stock(db_session, product_id) == 3
    sales = await db_session.execute(
        select(func.count())
        .select_from(StockMovement)
        .where(StockMovement.movement_type == StockMovementType.SALE)
    )
    assert sales.scalar_one() == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_repeated_order_number_clash_gives_up(
    db_session, customer, bananas, monkeypatch
):
    product_id, user_id = bananas.id, customer.id
    monkeypatch.setattr(
        Order,
        "generate_order_number",
        staticmethod(lambda: "ORD-20260101000000-AAAAAA"),
    )
    await order_engine.create_order(
        db_session,
        user_id=user_id,
        items=[OrderLine(product_id, 1)],
        delivery_address="Somewhere",
    )

    with pytest.raises(InternalError):
        await order_engine.create_order(
            db_session,
            user_id=user_id,
            items=[OrderLine(product_id, 2)],
            delivery_address="Somewhere",
        )

    assert await _order_count(db_session) == 1
    assert await _stock(db_session, product_id) == 4
