"""Seed script for shop test data.

Creates an admin, a customer, produce categories and sample products so the
storefront can be exercised end-to-end.

Usage:
    python -m services.shop_service.seed_shop_data
"""

import asyncio
from decimal import Decimal

from libs.auth.security import hash_password
from libs.db.config import create_database
from services.shop_service.models import Category, Product, User, UserRole
from sqlalchemy import func, select

CATEGORIES = {
    "fruits": ("Fruits", "Fresh seasonal fruits"),
    "vegetables": ("Vegetables", "Fresh organic vegetables"),
    "herbs": ("Herbs", "Fresh herbs and spices"),
    "roots": ("Root Vegetables", "Tubers and root crops"),
}

# (category key, name, description, price, unit, stock)
PRODUCTS = [
    ("fruits", "Fresh Bananas", "Sweet and ripe bananas", "8.50", "bunch", 150),
    ("fruits", "Red Apples", "Crispy red apples", "15.00", "kg", 80),
    ("fruits", "Oranges", "Juicy Valencia oranges, rich in vitamin C", "12.00", "kg", 120),
    ("fruits", "Pineapple", "Sweet tropical pineapple, locally grown", "10.00", "piece", 45),
    ("vegetables", "Tomatoes", "Fresh red tomatoes, perfect for cooking", "6.00", "kg", 200),
    ("vegetables", "Onions", "Red onions from local farms", "4.50", "kg", 180),
    ("vegetables", "Bell Peppers", "Red, green and yellow bell peppers", "18.00", "kg", 60),
    ("herbs", "Fresh Ginger", "Organic ginger root for cooking and tea", "25.00", "kg", 30),
    ("herbs", "Basil Leaves", "Fresh basil leaves for seasoning", "20.00", "bunch", 40),
    ("roots", "Carrots", "Fresh organic carrots", "7.00", "kg", 90),
    ("roots", "Yam", "Puna yam tubers", "14.00", "piece", 70),
    ("roots", "Sweet Potatoes", "Orange-fleshed sweet potatoes", "9.00", "kg", 100),
]


async def seed_shop_data():
    db = create_database()
    await db.connect()
    try:
        await db.create_all()
        async with db.session() as session:
            print("Seeding shop data...")

            # Check if data already exists
            existing = await session.execute(select(func.count()).select_from(Category))
            count = existing.scalar()
            if count and count > 0:
                print(f"Shop data already exists ({count} categories). Skipping seed.")
                return

            # =================================================================
            # 1. USERS
            # =================================================================
            session.add_all(
                [
                    User(
                        email="admin@fruitshop.com",
                        password_hash=hash_password("admin123"),
                        name="Admin User",
                        phone="+233-20-000-0000",
                        role=UserRole.ADMIN,
                    ),
                    User(
                        email="customer@example.com",
                        password_hash=hash_password("customer123"),
                        name="John Doe",
                        phone="+233-24-111-1111",
                        address="12 Ring Road, Accra",
                        role=UserRole.CUSTOMER,
                    ),
                ]
            )

            # =================================================================
            # 2. CATEGORIES
            # =================================================================
            categories = {
                key: Category(name=name, description=description)
                for key, (name, description) in CATEGORIES.items()
            }
            session.add_all(categories.values())
            await session.flush()

            # =================================================================
            # 3. PRODUCTS
            # =================================================================
            for key, name, description, price, unit, stock in PRODUCTS:
                session.add(
                    Product(
                        category_id=categories[key].id,
                        name=name,
                        description=description,
                        price=Decimal(price),
                        unit=unit,
                        stock=stock,
                    )
                )

            await session.commit()
            print(
                f"Seeded 2 users, {len(categories)} categories, {len(PRODUCTS)} products."
            )
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(seed_shop_data())
