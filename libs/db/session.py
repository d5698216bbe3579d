from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from libs.db.config import Database


async def get_async_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields a session from the app's ``Database``.
    """
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session
