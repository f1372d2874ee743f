"""
Approval state machine.

Every transition is looked up in ``TRANSITIONS`` and checked the same way:
capability first, then the required reason, then a single lookup of the event
in one of the transition's source statuses. The status write is always a
compare-and-set on the status that lookup saw, so two concurrent attempts at
the same transition resolve to one success.

Head approval additionally holds the admission keys of the event's venue and
resources while it validates and commits, so conflicting events cannot both
be admitted.
"""

import logging
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from venueflow.core.admission import AdmissionLockManager, admission_keys
from venueflow.core.db_utils import db_transaction, end_read_transaction
from venueflow.core.exceptions import (
    AllocationRejectedError,
    ForbiddenError,
    InputInvalidError,
    NotEligibleError,
)
from venueflow.core.metrics import metrics
from venueflow.core.permissions import (
    Actor,
    Capability,
    Transition,
    TransitionName,
    get_transition,
    review_stage,
)
from venueflow.crud import claims as claims_crud
from venueflow.crud import event as event_crud
from venueflow.crud import inventory as inventory_crud
from venueflow.models.event import Event, EventStatus
from venueflow.models.user import UserRole
from venueflow.schemas.allocation import AllocationDecision, ConflictReport
from venueflow.schemas.event import EventCreate, ResourceClaimIn
from venueflow.services.allocation import build_conflict_report, validate_allocation
from venueflow.services.overlap import normalize_instant

logger = logging.getLogger(__name__)

# Statuses an HOD can list: everything past DRAFT except REJECTED
HOD_VISIBLE_STATUSES = frozenset(EventStatus) - {
    EventStatus.DRAFT,
    EventStatus.REJECTED,
}


def _require(actor: Actor, capability: Capability, action: str) -> None:
    if not actor.can(capability):
        raise ForbiddenError(f"Role {actor.role.value} may not {action}")


def _not_eligible(event_id: int, action: str) -> NotEligibleError:
    return NotEligibleError(
        f"Event not found or not eligible for {action}",
        entity_type="event",
        entity_id=event_id,
    )


class ApprovalWorkflow:
    def __init__(self, lock_manager: AdmissionLockManager) -> None:
        self.lock_manager = lock_manager

    # Drafting

    async def create_event(
        self, db: AsyncSession, draft: EventCreate, actor: Actor
    ) -> Event:
        _require(actor, Capability.CREATE_EVENT, "create events")

        title = draft.title.strip()
        department = draft.department.strip()
        if not title:
            raise InputInvalidError("Title is required", field="title")
        if not department:
            raise InputInvalidError("Department is required", field="department")

        start_time = normalize_instant(draft.start_time)
        end_time = normalize_instant(draft.end_time)
        if end_time <= start_time:
            raise InputInvalidError(
                "End time must be after start time", field="end_time"
            )
        if draft.participant_count < 1:
            raise InputInvalidError(
                "Participant count must be at least 1", field="participant_count"
            )
        if await inventory_crud.get_venue(db, draft.venue_id) is None:
            raise InputInvalidError(
                f"Venue {draft.venue_id} does not exist",
                field="venue_id",
                entity_type="venue",
                entity_id=draft.venue_id,
            )
        await self._check_claims(db, draft.resources)

        event = await event_crud.create_event(
            db,
            title=title,
            department=department,
            coordinator_id=actor.id,
            venue_id=draft.venue_id,
            start_time=start_time,
            end_time=end_time,
            participant_count=draft.participant_count,
            claims=draft.resources,
        )
        logger.info(
            "Event created",
            extra={"event_id": event.id, "actor_id": actor.id},
        )
        return await self._reload(db, event.id)

    async def replace_claims(
        self,
        db: AsyncSession,
        event_id: int,
        claims: List[ResourceClaimIn],
        actor: Actor,
    ) -> Event:
        _require(actor, Capability.CREATE_EVENT, "edit event resources")
        await self._check_claims(db, claims)

        await end_read_transaction(db)
        async with db_transaction(db):
            event = await event_crud.get_event_for_transition(
                db,
                event_id,
                {EventStatus.DRAFT},
                coordinator_id=actor.id,
                for_update=True,
            )
            if event is None:
                raise _not_eligible(event_id, "resource changes")
            await claims_crud.replace_claims(db, event_id, claims)

        logger.info(
            "Event resources replaced",
            extra={"event_id": event_id, "claims": len(claims)},
        )
        return await self._reload(db, event_id)

    async def _check_claims(
        self, db: AsyncSession, claims: List[ResourceClaimIn]
    ) -> None:
        seen = set()
        for index, claim in enumerate(claims):
            if claim.quantity < 1:
                raise InputInvalidError(
                    "Resource quantity must be at least 1",
                    field=f"resources[{index}].quantity",
                )
            if claim.resource_id in seen:
                raise InputInvalidError(
                    f"Resource {claim.resource_id} is requested more than once",
                    field=f"resources[{index}].resource_id",
                )
            seen.add(claim.resource_id)

        known = await inventory_crud.get_resources_by_ids(db, seen)
        for index, claim in enumerate(claims):
            if claim.resource_id not in known:
                raise InputInvalidError(
                    f"Resource {claim.resource_id} does not exist",
                    field=f"resources[{index}].resource_id",
                    entity_type="resource",
                    entity_id=claim.resource_id,
                )

    # Transitions

    async def transition(
        self,
        db: AsyncSession,
        event_id: int,
        action: Union[TransitionName, str],
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Event:
        rule = get_transition(TransitionName(action))
        _require(actor, rule.capability, f"{rule.name.value} events")

        reason = reason.strip() if reason else None
        if rule.requires_reason and not reason:
            raise InputInvalidError("A rejection reason is required", field="reason")

        if rule.admission_control:
            await self._admit(db, event_id, rule, actor)
        else:
            await self._apply(db, event_id, rule, actor, reason)

        metrics.record_transition(rule.name.value)
        logger.info(
            "Event transition applied",
            extra={
                "event_id": event_id,
                "action": rule.name.value,
                "actor_id": actor.id,
                "new_status": rule.target.value,
            },
        )
        return await self._reload(db, event_id)

    async def _apply(
        self,
        db: AsyncSession,
        event_id: int,
        rule: Transition,
        actor: Actor,
        reason: Optional[str],
    ) -> None:
        await end_read_transaction(db)
        async with db_transaction(db):
            event = await event_crud.get_event_for_transition(
                db,
                event_id,
                rule.sources,
                coordinator_id=actor.id if rule.author_only else None,
                for_update=True,
            )
            if event is None:
                raise _not_eligible(event_id, rule.name.value)
            applied = await event_crud.set_status(
                db,
                event_id,
                rule.target,
                expected_prior=event.status,
                rejection_reason=reason,
            )
            if not applied:
                raise _not_eligible(event_id, rule.name.value)

    async def _admit(
        self, db: AsyncSession, event_id: int, rule: Transition, actor: Actor
    ) -> None:
        # Claims are frozen once submitted, so the keys read here stay valid
        probe = await event_crud.get_event_for_transition(db, event_id, rule.sources)
        if probe is None:
            raise _not_eligible(event_id, rule.name.value)
        keys = admission_keys(probe.venue_id, [c.resource_id for c in probe.claims])
        await end_read_transaction(db)

        async with self.lock_manager.hold(keys):
            async with db_transaction(db):
                event = await event_crud.get_event_for_transition(
                    db, event_id, rule.sources, for_update=True
                )
                if event is None:
                    raise _not_eligible(event_id, rule.name.value)
                await inventory_crud.lock_inventory_rows(
                    db, event.venue_id, [c.resource_id for c in event.claims]
                )

                decision = await validate_allocation(db, event_id)
                if not decision.accepted:
                    raise AllocationRejectedError(decision)

                applied = await event_crud.set_status(
                    db, event_id, rule.target, expected_prior=event.status
                )
                if not applied:
                    raise _not_eligible(event_id, rule.name.value)

    async def submit(self, db: AsyncSession, event_id: int, actor: Actor) -> Event:
        return await self.transition(db, event_id, TransitionName.SUBMIT, actor)

    async def hod_approve(
        self, db: AsyncSession, event_id: int, actor: Actor
    ) -> Event:
        return await self.transition(db, event_id, TransitionName.HOD_APPROVE, actor)

    async def hod_reject(
        self, db: AsyncSession, event_id: int, actor: Actor, reason: Optional[str]
    ) -> Event:
        return await self.transition(
            db, event_id, TransitionName.HOD_REJECT, actor, reason=reason
        )

    async def dean_approve(
        self, db: AsyncSession, event_id: int, actor: Actor
    ) -> Event:
        return await self.transition(db, event_id, TransitionName.DEAN_APPROVE, actor)

    async def head_approve(
        self, db: AsyncSession, event_id: int, actor: Actor
    ) -> Event:
        return await self.transition(db, event_id, TransitionName.HEAD_APPROVE, actor)

    async def start(self, db: AsyncSession, event_id: int, actor: Actor) -> Event:
        return await self.transition(db, event_id, TransitionName.START, actor)

    async def complete(self, db: AsyncSession, event_id: int, actor: Actor) -> Event:
        return await self.transition(db, event_id, TransitionName.COMPLETE, actor)

    # Reads

    async def preview_allocation(
        self, db: AsyncSession, event_id: int, actor: Actor
    ) -> AllocationDecision:
        """Run admission control for a DEAN_APPROVED event without committing."""
        rule = get_transition(TransitionName.HEAD_APPROVE)
        _require(actor, rule.capability, "preview allocations")
        event = await event_crud.get_event_for_transition(db, event_id, rule.sources)
        if event is None:
            raise _not_eligible(event_id, "allocation preview")
        return await validate_allocation(db, event_id)

    async def get_event(self, db: AsyncSession, event_id: int, actor: Actor) -> Event:
        event = await event_crud.get_event(db, event_id)
        if event is None or not self._can_view(actor, event):
            raise NotEligibleError(
                "Event not found", entity_type="event", entity_id=event_id
            )
        return event

    async def conflict_report(
        self, db: AsyncSession, event_id: int, actor: Actor
    ) -> ConflictReport:
        await self.get_event(db, event_id, actor)
        report = await build_conflict_report(db, event_id)
        if report is None:
            raise NotEligibleError(
                "Event not found", entity_type="event", entity_id=event_id
            )
        return report

    async def list_events(
        self, db: AsyncSession, actor: Actor, *, skip: int = 0, limit: int = 100
    ) -> List[Event]:
        if actor.role == UserRole.COORDINATOR:
            return await event_crud.list_events(
                db, coordinator_id=actor.id, skip=skip, limit=limit
            )
        if actor.role == UserRole.HOD:
            return await event_crud.list_events(
                db, statuses=HOD_VISIBLE_STATUSES, skip=skip, limit=limit
            )
        _require(actor, Capability.VIEW_ALL_EVENTS, "list events")
        return await event_crud.list_events(db, skip=skip, limit=limit)

    async def pending_for_stage(
        self, db: AsyncSession, stage: str, actor: Actor
    ) -> List[Event]:
        rule = review_stage(stage)
        if rule is None:
            raise InputInvalidError(f"Unknown approval stage: {stage}", field="stage")
        _require(actor, rule.capability, f"review {stage} approvals")
        return await event_crud.list_events_by_status(db, rule.sources)

    @staticmethod
    def _can_view(actor: Actor, event: Event) -> bool:
        return actor.can(Capability.VIEW_ALL_EVENTS) or event.coordinator_id == actor.id

    async def _reload(self, db: AsyncSession, event_id: int) -> Event:
        event = await event_crud.get_event(db, event_id)
        if event is None:
            raise NotEligibleError(
                "Event not found", entity_type="event", entity_id=event_id
            )
        return event
