import os
from typing import AsyncGenerator

# Settings are cached on first use, so the test environment goes in first
os.environ.setdefault("ENVIRONMENT", "local")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./unused-test.db"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from libs.auth.security import create_access_token  # noqa: E402
from libs.common.config import get_settings  # noqa: E402
from libs.db.config import Database  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402
from services.shop_service.app.main import app  # noqa: E402
from services.shop_service.models import UserRole  # noqa: E402
from tests.factories import CategoryFactory, ProductFactory, UserFactory  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """
    A fresh SQLite database file per test, with every table created.
    """
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}")
    await db.connect()
    await db.create_all()
    try:
        yield db
    finally:
        await db.disconnect()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """
    Session used by tests to seed and inspect data.

    Requests get their own sessions, so call ``refresh`` before asserting on
    rows an endpoint has changed.
    """
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB dependency.
    """

    async def _get_test_db():
        async with database.session() as session:
            yield session

    app.dependency_overrides[get_async_db] = _get_test_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_header(user) -> dict:
    """Bearer header carrying a real signed token for ``user``."""
    token = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def customer(db_session):
    user = UserFactory.create()
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def other_customer(db_session):
    user = UserFactory.create(name="Other Customer")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin(db_session):
    user = UserFactory.create(name="Shop Admin", role=UserRole.ADMIN)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def customer_headers(customer) -> dict:
    return auth_header(customer)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_header(admin)


@pytest_asyncio.fixture
async def category(db_session):
    category = CategoryFactory.create()
    db_session.add(category)
    await db_session.commit()
    return category


@pytest_asyncio.fixture
async def bananas(db_session, category):
    """Active product with stock 5 at 8.50."""
    product = ProductFactory.create(
        category_id=category.id, name="Fresh Bananas", price="8.50", stock=5
    )
    db_session.add(product)
    await db_session.commit()
    return product
