"""Resource claims and the committed-usage aggregation used by admission control."""

from typing import Any, Collection, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from venueflow.models.event import (
    COMMITTED_STATUSES,
    Event,
    EventResource,
    EventStatus,
)
from venueflow.schemas.event import ResourceClaimIn
from venueflow.services.overlap import TimeWindow

from .event import committed_overlap_criteria


def _overlapping_claims(
    *columns: Any,
    resource_id: int,
    window: TimeWindow,
    exclude_event_id: Optional[int],
    statuses: Collection[EventStatus],
) -> Select:
    return (
        select(*columns)
        .select_from(EventResource)
        .join(Event, EventResource.event_id == Event.id)
        .where(
            EventResource.resource_id == resource_id,
            *committed_overlap_criteria(window, exclude_event_id, statuses),
        )
    )


async def list_for_event(db: AsyncSession, event_id: int) -> List[EventResource]:
    """Claims of one event in insertion order."""
    result = await db.execute(
        select(EventResource)
        .where(EventResource.event_id == event_id)
        .options(selectinload(EventResource.resource))
        .order_by(EventResource.id)
    )
    return list(result.scalars().all())


async def sum_quantity_for_resource_overlapping(
    db: AsyncSession,
    resource_id: int,
    exclude_event_id: Optional[int],
    window: TimeWindow,
    committed_statuses: Collection[EventStatus] = COMMITTED_STATUSES,
) -> int:
    """Quantity of ``resource_id`` already held by committed events overlapping ``window``."""
    result = await db.execute(
        _overlapping_claims(
            func.coalesce(func.sum(EventResource.quantity), 0),
            resource_id=resource_id,
            window=window,
            exclude_event_id=exclude_event_id,
            statuses=committed_statuses,
        )
    )
    return int(result.scalar_one())


async def list_overlapping_claims(
    db: AsyncSession,
    resource_id: int,
    exclude_event_id: Optional[int],
    window: TimeWindow,
    committed_statuses: Collection[EventStatus] = COMMITTED_STATUSES,
) -> List[Tuple[Event, int]]:
    """The committed events behind :func:`sum_quantity_for_resource_overlapping`, with their quantities."""
    result = await db.execute(
        _overlapping_claims(
            Event,
            EventResource.quantity,
            resource_id=resource_id,
            window=window,
            exclude_event_id=exclude_event_id,
            statuses=committed_statuses,
        ).order_by(Event.start_time, Event.id)
    )
    return [(event, int(quantity)) for event, quantity in result.all()]


async def replace_claims(
    db: AsyncSession, event_id: int, claims: List[ResourceClaimIn]
) -> None:
    """Swap the event's claim set wholesale. Does not commit."""
    await db.execute(
        delete(EventResource)
        .where(EventResource.event_id == event_id)
        .execution_options(synchronize_session=False)
    )
    db.add_all(
        EventResource(event_id=event_id, resource_id=c.resource_id, quantity=c.quantity)
        for c in claims
    )
    await db.flush()
