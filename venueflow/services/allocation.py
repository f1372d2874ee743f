"""
Allocation validator and the diagnostic conflict report.

Both read the committed set through the same two query primitives,
``crud.event.list_committed_venue_overlaps`` and the claim aggregation in
``crud.claims``, so the advisory report can never disagree with the gate.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from venueflow.core.metrics import metrics
from venueflow.crud import claims as claims_crud
from venueflow.crud import event as event_crud
from venueflow.crud import inventory as inventory_crud
from venueflow.models.event import Event
from venueflow.schemas.allocation import (
    AllocationDecision,
    ConflictingEvent,
    ConflictKind,
    ConflictReport,
    ResourceConflict,
    VenueConflict,
)
from venueflow.services.overlap import TimeWindow

logger = logging.getLogger(__name__)


def _reject(event_id: int, kind: ConflictKind, message: str, **details) -> AllocationDecision:
    return AllocationDecision(
        event_id=event_id, accepted=False, kind=kind, message=message, **details
    )


async def _decide(db: AsyncSession, event_id: int) -> AllocationDecision:
    event = await db.get(Event, event_id, populate_existing=True)
    if event is None:
        return _reject(event_id, ConflictKind.EVENT_NOT_FOUND, "Event not found")

    venue = await inventory_crud.get_venue(db, event.venue_id)
    if venue is None:
        return _reject(
            event_id,
            ConflictKind.VENUE_NOT_FOUND,
            "Venue not found",
            venue_id=event.venue_id,
        )

    # Equal is fine
    if venue.capacity < event.participant_count:
        return _reject(
            event_id,
            ConflictKind.CAPACITY,
            f"Venue capacity conflict: {venue.name} has capacity {venue.capacity} "
            f"but {event.participant_count} participants requested",
            venue_id=venue.id,
            venue_name=venue.name,
            capacity=venue.capacity,
            participant_count=event.participant_count,
        )

    window = TimeWindow.of(event)
    clashes = await event_crud.list_committed_venue_overlaps(
        db, venue.id, window, exclude_event_id=event.id
    )
    if clashes:
        return _reject(
            event_id,
            ConflictKind.VENUE_TIME,
            f"Venue conflict: {venue.name} is already booked during this time "
            f"by {len(clashes)} other event(s)",
            venue_id=venue.id,
            venue_name=venue.name,
            conflicting_event_count=len(clashes),
        )

    # Claim insertion order decides which shortage gets reported
    for claim in await claims_crud.list_for_event(db, event.id):
        resource = claim.resource
        if resource is None:
            return _reject(
                event_id,
                ConflictKind.RESOURCE_NOT_FOUND,
                f"Resource {claim.resource_id} not found",
                resource_id=claim.resource_id,
                requested=claim.quantity,
            )
        committed = await claims_crud.sum_quantity_for_resource_overlapping(
            db, resource.id, event.id, window
        )
        available = resource.total_quantity - committed
        if claim.quantity > available:
            return _reject(
                event_id,
                ConflictKind.RESOURCE_TIME,
                f"Resource allocation conflict: {resource.name} - {claim.quantity} "
                f"requested but only {available} available during this time",
                resource_id=resource.id,
                resource_name=resource.name,
                requested=claim.quantity,
                available=available,
            )

    return AllocationDecision(
        event_id=event_id,
        accepted=True,
        message="Allocation accepted",
        venue_id=venue.id,
        venue_name=venue.name,
    )


async def validate_allocation(db: AsyncSession, event_id: int) -> AllocationDecision:
    """Admission control for one event against the committed set.

    Checks run in a fixed order (event, venue, capacity, venue time, then each
    claim in insertion order) and the first failure is the only one reported.
    Reads only; the caller decides whether to commit anything.
    """
    decision = await _decide(db, event_id)
    metrics.record_allocation(
        decision.accepted, decision.kind.value if decision.kind else "none"
    )
    if not decision.accepted:
        logger.info(
            "Allocation rejected",
            extra={"event_id": event_id, "conflict_kind": decision.kind},
        )
    return decision


def _conflicting(
    other: Event, window: TimeWindow, quantity: Optional[int] = None
) -> ConflictingEvent:
    shared = window.intersection(TimeWindow.of(other))
    # The queries only return overlapping events
    assert shared is not None
    return ConflictingEvent(
        event_id=other.id,
        title=other.title,
        status=other.status,
        start_time=other.start_time,
        end_time=other.end_time,
        overlap_start=shared.start,
        overlap_end=shared.end,
        quantity=quantity,
    )


async def build_conflict_report(
    db: AsyncSession, event_id: int
) -> Optional[ConflictReport]:
    """Everything in the committed set competing with an event, exhaustively.

    Returns ``None`` when the event does not exist. ``admissible`` is true
    exactly when :func:`validate_allocation` would accept the event now.
    """
    event = await event_crud.get_event(db, event_id)
    if event is None:
        return None

    window = TimeWindow.of(event)
    admissible = True

    venue_conflict: Optional[VenueConflict] = None
    venue = event.venue
    if venue is None:
        admissible = False
    else:
        clashes = await event_crud.list_committed_venue_overlaps(
            db, venue.id, window, exclude_event_id=event.id
        )
        venue_conflict = VenueConflict(
            venue_id=venue.id,
            venue_name=venue.name,
            capacity=venue.capacity,
            participant_count=event.participant_count,
            capacity_ok=venue.capacity >= event.participant_count,
            conflicting_events=[_conflicting(other, window) for other in clashes],
        )
        if not venue_conflict.capacity_ok or clashes:
            admissible = False

    resources: List[ResourceConflict] = []
    for claim in event.claims:
        resource = claim.resource
        if resource is None:
            admissible = False
            continue
        rows = await claims_crud.list_overlapping_claims(
            db, resource.id, event.id, window
        )
        committed = sum(quantity for _, quantity in rows)
        available = resource.total_quantity - committed
        over_limit = claim.quantity > available
        if over_limit:
            admissible = False
        resources.append(
            ResourceConflict(
                resource_id=resource.id,
                resource_name=resource.name,
                requested=claim.quantity,
                total_quantity=resource.total_quantity,
                committed=committed,
                available=available,
                shortage=max(claim.quantity - available, 0),
                over_limit=over_limit,
                conflicting_events=[
                    _conflicting(other, window, quantity) for other, quantity in rows
                ],
            )
        )

    return ConflictReport(
        event_id=event.id,
        start_time=event.start_time,
        end_time=event.end_time,
        venue=venue_conflict,
        resources=resources,
        admissible=admissible,
    )
