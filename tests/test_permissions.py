import pytest

from venueflow.core.permissions import (
    ROLE_CAPABILITIES,
    TRANSITIONS,
    Actor,
    Capability,
    TransitionName,
    get_transition,
    review_stage,
)
from venueflow.models.event import EventStatus
from venueflow.models.user import UserRole


def test_every_role_has_capabilities():
    assert set(ROLE_CAPABILITIES) == set(UserRole)


@pytest.mark.parametrize(
    "role, capability, allowed",
    [
        (UserRole.COORDINATOR, Capability.CREATE_EVENT, True),
        (UserRole.COORDINATOR, Capability.RUN_EVENT, True),
        (UserRole.COORDINATOR, Capability.HOD_REVIEW, False),
        (UserRole.COORDINATOR, Capability.VIEW_ALL_EVENTS, False),
        (UserRole.HOD, Capability.HOD_REVIEW, True),
        (UserRole.HOD, Capability.DEAN_REVIEW, False),
        (UserRole.DEAN, Capability.DEAN_REVIEW, True),
        (UserRole.HEAD, Capability.HEAD_REVIEW, True),
        (UserRole.HEAD, Capability.CREATE_EVENT, False),
        (UserRole.ADMIN, Capability.MANAGE_INVENTORY, True),
        (UserRole.ADMIN, Capability.HEAD_REVIEW, False),
    ],
)
def test_actor_capabilities(role, capability, allowed):
    assert Actor(id=1, role=role).can(capability) is allowed


def test_transition_table():
    expected = {
        TransitionName.SUBMIT: ({EventStatus.DRAFT}, EventStatus.SUBMITTED),
        TransitionName.HOD_APPROVE: ({EventStatus.SUBMITTED}, EventStatus.HOD_APPROVED),
        TransitionName.HOD_REJECT: ({EventStatus.SUBMITTED}, EventStatus.REJECTED),
        TransitionName.DEAN_APPROVE: (
            {EventStatus.HOD_APPROVED},
            EventStatus.DEAN_APPROVED,
        ),
        TransitionName.HEAD_APPROVE: (
            {EventStatus.DEAN_APPROVED},
            EventStatus.HEAD_APPROVED,
        ),
        TransitionName.START: ({EventStatus.HEAD_APPROVED}, EventStatus.RUNNING),
        TransitionName.COMPLETE: (
            {EventStatus.RUNNING, EventStatus.HEAD_APPROVED},
            EventStatus.COMPLETED,
        ),
    }
    assert set(TRANSITIONS) == set(expected)
    for name, (sources, target) in expected.items():
        rule = get_transition(name)
        assert rule.sources == sources
        assert rule.target == target


def test_only_head_approval_runs_admission_control():
    gated = [t.name for t in TRANSITIONS.values() if t.admission_control]
    assert gated == [TransitionName.HEAD_APPROVE]


def test_author_only_and_reason_flags():
    assert {t.name for t in TRANSITIONS.values() if t.author_only} == {
        TransitionName.SUBMIT,
        TransitionName.START,
        TransitionName.COMPLETE,
    }
    assert {t.name for t in TRANSITIONS.values() if t.requires_reason} == {
        TransitionName.HOD_REJECT
    }


def test_no_transition_leaves_rejected_or_completed():
    for rule in TRANSITIONS.values():
        assert EventStatus.REJECTED not in rule.sources
        assert EventStatus.COMPLETED not in rule.sources


def test_review_stages():
    assert review_stage("hod").sources == {EventStatus.SUBMITTED}
    assert review_stage("dean").sources == {EventStatus.HOD_APPROVED}
    assert review_stage("head").sources == {EventStatus.DEAN_APPROVED}
    assert review_stage("registrar") is None
