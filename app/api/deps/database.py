from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Database


def get_database(request: Request) -> Database:
    """Return the store handle attached to the running application."""
    return request.app.state.database


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency to get a database session for the current request."""
    database = get_database(request)
    async for session in database.session():
        yield session
