from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def db_transaction(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def end_read_transaction(db: AsyncSession) -> None:
    """Close an implicitly begun transaction so the next statement sees fresh data."""
    if db.in_transaction():
        await db.commit()
