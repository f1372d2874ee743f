from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from venueflow.models.user import User
from venueflow.schemas.user import UserCreate

from ..core.security import get_password_hash, verify_password


async def get(db: AsyncSession, id: Any) -> Optional[User]:
    result = await db.execute(select(User).filter(User.id == id))
    first: Optional[User] = result.scalars().first()
    return first


async def get_by_email(db: AsyncSession, *, email: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.email == email))
    first: Optional[User] = result.scalars().first()
    return first


async def create(db: AsyncSession, *, obj_in: UserCreate) -> User:
    db_obj = User(
        email=obj_in.email,
        hashed_password=get_password_hash(obj_in.password),
        full_name=obj_in.full_name,
        role=obj_in.role,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def authenticate(
    db: AsyncSession, *, email: str, password: str
) -> Optional[User]:
    user = await get_by_email(db, email=email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def count(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(User.id)))
    return int(result.scalar_one())


def is_active(user: User) -> bool:
    return bool(user.is_active)
