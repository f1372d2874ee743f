"""
Demo accounts and inventory for local use.

Seeds only when the users table is empty:

    python -m venueflow.initial_data
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from venueflow import crud
from venueflow.models.user import UserRole
from venueflow.schemas.inventory import ResourceCreate, VenueCreate
from venueflow.schemas.user import UserCreate

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("admin@institution.edu", "admin123", "Admin User", UserRole.ADMIN),
    ("hod@institution.edu", "hod123", "Dr. HOD", UserRole.HOD),
    ("dean@institution.edu", "dean123", "Prof. DEAN", UserRole.DEAN),
    ("head@institution.edu", "head123", "Dr. HEAD", UserRole.HEAD),
    (
        "coordinator@institution.edu",
        "coordinator123",
        "John Coordinator",
        UserRole.COORDINATOR,
    ),
]

DEMO_VENUES = [("Main Auditorium", 500), ("Conference Room A", 100)]

DEMO_RESOURCES = [("Projector", 5), ("Microphone", 10), ("Chairs", 1000)]


async def seed_demo_data(db: AsyncSession) -> bool:
    """Returns False when data was already present."""
    if await crud.user.count(db) > 0:
        logger.info("Demo data already present; skipping seed")
        return False

    for email, password, full_name, role in DEMO_USERS:
        await crud.user.create(
            db,
            obj_in=UserCreate(
                email=email, password=password, full_name=full_name, role=role
            ),
        )
    for name, capacity in DEMO_VENUES:
        await crud.inventory.create_venue(db, VenueCreate(name=name, capacity=capacity))
    for name, quantity in DEMO_RESOURCES:
        await crud.inventory.create_resource(
            db, ResourceCreate(name=name, total_quantity=quantity)
        )

    logger.info(
        "Demo data seeded",
        extra={
            "users": len(DEMO_USERS),
            "venues": len(DEMO_VENUES),
            "resources": len(DEMO_RESOURCES),
        },
    )
    return True


async def main() -> None:
    from venueflow.core.database_manager import db_manager

    await db_manager.create_all()
    async with db_manager.get_session() as session:
        await seed_demo_data(session)
    await db_manager.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
