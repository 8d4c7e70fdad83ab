from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from petfinder.database import get_db
from petfinder.storage import DatabaseStorage


async def get_storage(db: AsyncSession = Depends(get_db)) -> DatabaseStorage:
    """Request-scoped record store sharing the request's transaction."""
    return DatabaseStorage(db)
