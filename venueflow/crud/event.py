from datetime import datetime
from typing import Collection, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from venueflow.models.event import (
    COMMITTED_STATUSES,
    Event,
    EventResource,
    EventStatus,
)
from venueflow.schemas.event import ResourceClaimIn
from venueflow.services.overlap import TimeWindow, overlap_clause

# Everything the API renders for an event
EVENT_DETAIL_OPTIONS = (
    selectinload(Event.venue),
    selectinload(Event.coordinator),
    selectinload(Event.claims).selectinload(EventResource.resource),
)


def committed_overlap_criteria(
    window: TimeWindow,
    exclude_event_id: Optional[int],
    statuses: Collection[EventStatus] = COMMITTED_STATUSES,
) -> List[ColumnElement[bool]]:
    """Filter for events that hold capacity during ``window``, other than the excluded one."""
    criteria = [
        Event.status.in_(list(statuses)),
        overlap_clause(Event.start_time, Event.end_time, window),
    ]
    if exclude_event_id is not None:
        criteria.append(Event.id != exclude_event_id)
    return criteria


async def get_event(db: AsyncSession, event_id: int) -> Optional[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .options(*EVENT_DETAIL_OPTIONS)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_event_for_transition(
    db: AsyncSession,
    event_id: int,
    statuses: Collection[EventStatus],
    *,
    coordinator_id: Optional[int] = None,
    for_update: bool = False,
) -> Optional[Event]:
    """Single lookup of an event that exists in one of ``statuses``.

    A miss does not say whether the event is absent, in another status or
    owned by someone else.
    """
    query = (
        select(Event)
        .where(Event.id == event_id, Event.status.in_(list(statuses)))
        .options(selectinload(Event.claims))
        .execution_options(populate_existing=True)
    )
    if coordinator_id is not None:
        query = query.where(Event.coordinator_id == coordinator_id)
    if for_update:
        query = query.with_for_update(of=Event)
    result = await db.execute(query)
    return result.scalars().first()


async def list_events(
    db: AsyncSession,
    *,
    statuses: Optional[Collection[EventStatus]] = None,
    coordinator_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Event]:
    query = select(Event).options(*EVENT_DETAIL_OPTIONS)
    if statuses is not None:
        query = query.where(Event.status.in_(list(statuses)))
    if coordinator_id is not None:
        query = query.where(Event.coordinator_id == coordinator_id)
    result = await db.execute(
        query.order_by(Event.start_time, Event.id).offset(skip).limit(limit)
    )
    return list(result.scalars().all())


async def list_events_by_status(
    db: AsyncSession, statuses: Collection[EventStatus]
) -> List[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.status.in_(list(statuses)))
        .options(*EVENT_DETAIL_OPTIONS)
        .order_by(Event.created_at, Event.id)
    )
    return list(result.scalars().all())


async def list_committed_venue_overlaps(
    db: AsyncSession,
    venue_id: int,
    window: TimeWindow,
    exclude_event_id: Optional[int],
) -> List[Event]:
    """Committed events booked into ``venue_id`` during ``window``."""
    result = await db.execute(
        select(Event)
        .where(
            Event.venue_id == venue_id,
            *committed_overlap_criteria(window, exclude_event_id),
        )
        .order_by(Event.start_time, Event.id)
    )
    return list(result.scalars().all())


async def create_event(
    db: AsyncSession,
    *,
    title: str,
    department: str,
    coordinator_id: int,
    venue_id: int,
    start_time: datetime,
    end_time: datetime,
    participant_count: int,
    claims: List[ResourceClaimIn],
) -> Event:
    db_event = Event(
        title=title,
        department=department,
        coordinator_id=coordinator_id,
        venue_id=venue_id,
        start_time=start_time,
        end_time=end_time,
        participant_count=participant_count,
        status=EventStatus.DRAFT,
        claims=[
            EventResource(resource_id=claim.resource_id, quantity=claim.quantity)
            for claim in claims
        ],
    )
    db.add(db_event)
    await db.commit()
    return db_event


async def set_status(
    db: AsyncSession,
    event_id: int,
    new_status: EventStatus,
    *,
    expected_prior: EventStatus,
    rejection_reason: Optional[str] = None,
) -> bool:
    """Compare-and-set the status. Returns False, changing nothing, on a mismatch.

    Does not commit; the caller owns the transaction.
    """
    values: dict = {"status": new_status}
    if new_status == EventStatus.REJECTED:
        values["rejection_reason"] = rejection_reason
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.status == expected_prior)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount == 1)
