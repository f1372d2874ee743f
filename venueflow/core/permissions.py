"""Role capabilities and the approval transition table."""

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from venueflow.models.event import EventStatus
from venueflow.models.user import UserRole


class Capability(str, enum.Enum):
    CREATE_EVENT = "create_event"
    SUBMIT_EVENT = "submit_event"
    HOD_REVIEW = "hod_review"
    DEAN_REVIEW = "dean_review"
    HEAD_REVIEW = "head_review"
    RUN_EVENT = "run_event"
    MANAGE_INVENTORY = "manage_inventory"
    VIEW_ALL_EVENTS = "view_all_events"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.COORDINATOR: frozenset(
        {Capability.CREATE_EVENT, Capability.SUBMIT_EVENT, Capability.RUN_EVENT}
    ),
    UserRole.HOD: frozenset({Capability.HOD_REVIEW, Capability.VIEW_ALL_EVENTS}),
    UserRole.DEAN: frozenset({Capability.DEAN_REVIEW, Capability.VIEW_ALL_EVENTS}),
    UserRole.HEAD: frozenset({Capability.HEAD_REVIEW, Capability.VIEW_ALL_EVENTS}),
    UserRole.ADMIN: frozenset(
        {Capability.MANAGE_INVENTORY, Capability.VIEW_ALL_EVENTS}
    ),
}


@dataclass(frozen=True)
class Actor:
    """An authenticated caller, already verified upstream."""

    id: int
    role: UserRole

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES.get(self.role, frozenset())


class TransitionName(str, enum.Enum):
    SUBMIT = "submit"
    HOD_APPROVE = "hod-approve"
    HOD_REJECT = "hod-reject"
    DEAN_APPROVE = "dean-approve"
    HEAD_APPROVE = "head-approve"
    START = "start"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Transition:
    name: TransitionName
    capability: Capability
    sources: FrozenSet[EventStatus]
    target: EventStatus
    author_only: bool = False
    requires_reason: bool = False
    admission_control: bool = False


TRANSITIONS: Dict[TransitionName, Transition] = {
    t.name: t
    for t in (
        Transition(
            TransitionName.SUBMIT,
            Capability.SUBMIT_EVENT,
            frozenset({EventStatus.DRAFT}),
            EventStatus.SUBMITTED,
            author_only=True,
        ),
        Transition(
            TransitionName.HOD_APPROVE,
            Capability.HOD_REVIEW,
            frozenset({EventStatus.SUBMITTED}),
            EventStatus.HOD_APPROVED,
        ),
        Transition(
            TransitionName.HOD_REJECT,
            Capability.HOD_REVIEW,
            frozenset({EventStatus.SUBMITTED}),
            EventStatus.REJECTED,
            requires_reason=True,
        ),
        Transition(
            TransitionName.DEAN_APPROVE,
            Capability.DEAN_REVIEW,
            frozenset({EventStatus.HOD_APPROVED}),
            EventStatus.DEAN_APPROVED,
        ),
        Transition(
            TransitionName.HEAD_APPROVE,
            Capability.HEAD_REVIEW,
            frozenset({EventStatus.DEAN_APPROVED}),
            EventStatus.HEAD_APPROVED,
            admission_control=True,
        ),
        Transition(
            TransitionName.START,
            Capability.RUN_EVENT,
            frozenset({EventStatus.HEAD_APPROVED}),
            EventStatus.RUNNING,
            author_only=True,
        ),
        Transition(
            TransitionName.COMPLETE,
            Capability.RUN_EVENT,
            frozenset({EventStatus.RUNNING, EventStatus.HEAD_APPROVED}),
            EventStatus.COMPLETED,
            author_only=True,
        ),
    )
}

# Approval stages and the status each one works from
REVIEW_STAGES: Dict[str, TransitionName] = {
    "hod": TransitionName.HOD_APPROVE,
    "dean": TransitionName.DEAN_APPROVE,
    "head": TransitionName.HEAD_APPROVE,
}


def get_transition(name: TransitionName) -> Transition:
    return TRANSITIONS[name]


def review_stage(stage: str) -> Optional[Transition]:
    name = REVIEW_STAGES.get(stage)
    return TRANSITIONS[name] if name else None
