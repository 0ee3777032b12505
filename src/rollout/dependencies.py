"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session; uncommitted work is rolled back when it closes."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session
