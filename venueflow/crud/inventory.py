"""Venue and resource catalog. Read-only from the admission checks' point of view."""

from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venueflow.models.resource import Resource
from venueflow.models.venue import Venue
from venueflow.schemas.inventory import ResourceCreate, VenueCreate


async def get_venue(db: AsyncSession, venue_id: int) -> Optional[Venue]:
    return await db.get(Venue, venue_id)


async def get_resource(db: AsyncSession, resource_id: int) -> Optional[Resource]:
    return await db.get(Resource, resource_id)


async def get_resources_by_ids(
    db: AsyncSession, resource_ids: Iterable[int]
) -> dict[int, Resource]:
    ids = list(set(resource_ids))
    if not ids:
        return {}
    result = await db.execute(select(Resource).where(Resource.id.in_(ids)))
    return {resource.id: resource for resource in result.scalars().all()}


async def list_venues(db: AsyncSession) -> List[Venue]:
    result = await db.execute(select(Venue).order_by(Venue.id))
    return list(result.scalars().all())


async def list_resources(db: AsyncSession) -> List[Resource]:
    result = await db.execute(select(Resource).order_by(Resource.id))
    return list(result.scalars().all())


async def create_venue(db: AsyncSession, venue_in: VenueCreate) -> Venue:
    venue = Venue(**venue_in.model_dump())
    db.add(venue)
    await db.commit()
    await db.refresh(venue)
    return venue


async def create_resource(db: AsyncSession, resource_in: ResourceCreate) -> Resource:
    resource = Resource(**resource_in.model_dump())
    db.add(resource)
    await db.commit()
    await db.refresh(resource)
    return resource


async def update_resource_quantity(
    db: AsyncSession, resource_id: int, total_quantity: int
) -> Optional[Resource]:
    resource = await get_resource(db, resource_id)
    if resource:
        resource.total_quantity = total_quantity
        await db.commit()
        await db.refresh(resource)
    return resource


async def lock_inventory_rows(
    db: AsyncSession, venue_id: int, resource_ids: Iterable[int]
) -> None:
    """Take row locks on a venue and resources, always venue first then resource id order.

    A no-op on SQLite, which has no row locks.
    """
    await db.execute(select(Venue.id).where(Venue.id == venue_id).with_for_update())
    ids = sorted(set(resource_ids))
    if ids:
        await db.execute(
            select(Resource.id)
            .where(Resource.id.in_(ids))
            .order_by(Resource.id)
            .with_for_update()
        )
