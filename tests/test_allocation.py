import pytest

from venueflow.core.exceptions import AllocationRejectedError
from venueflow.crud import claims as claims_crud
from venueflow.models.event import EventStatus
from venueflow.schemas.allocation import ConflictKind
from venueflow.services.allocation import build_conflict_report, validate_allocation
from venueflow.services.overlap import TimeWindow

from .conftest import at


class TestCapacity:
    async def test_exact_capacity_is_accepted(self, db, scenario):
        venue = await scenario.venue(capacity=100)
        event = await scenario.dean_approved(venue, participants=100)

        decision = await validate_allocation(db, event.id)

        assert decision.accepted
        assert decision.kind is None

    async def test_one_over_capacity_is_rejected(self, db, scenario):
        venue = await scenario.venue(capacity=100)
        event = await scenario.dean_approved(venue, participants=101)

        decision = await validate_allocation(db, event.id)

        assert not decision.accepted
        assert decision.kind == ConflictKind.CAPACITY
        assert decision.capacity == 100
        assert decision.participant_count == 101
        assert "100" in decision.message and "101" in decision.message
        assert venue.name in decision.message


class TestVenueTime:
    async def test_overlapping_committed_event_blocks_venue(self, db, scenario):
        venue = await scenario.venue()
        await scenario.committed(venue, start=0, end=2)
        event = await scenario.dean_approved(venue, start=1, end=3)

        decision = await validate_allocation(db, event.id)

        assert decision.kind == ConflictKind.VENUE_TIME
        assert decision.conflicting_event_count == 1
        assert decision.venue_name == venue.name

    async def test_back_to_back_events_both_commit(self, db, scenario):
        venue = await scenario.venue()
        first = await scenario.committed(venue, start=0, end=2)
        second = await scenario.committed(venue, start=2, end=4)

        assert first.status == EventStatus.HEAD_APPROVED
        assert second.status == EventStatus.HEAD_APPROVED

    async def test_other_venue_does_not_conflict(self, db, scenario):
        hall = await scenario.venue("Hall")
        room = await scenario.venue("Conference Room A")
        await scenario.committed(hall, start=0, end=2)
        event = await scenario.dean_approved(room, start=0, end=2)

        assert (await validate_allocation(db, event.id)).accepted

    async def test_counts_every_conflicting_event(self, db, scenario):
        venue = await scenario.venue()
        await scenario.committed(venue, start=0, end=1)
        await scenario.committed(venue, start=1, end=2)
        event = await scenario.dean_approved(venue, start=0, end=2)

        decision = await validate_allocation(db, event.id)

        assert decision.conflicting_event_count == 2
        assert "2 other event(s)" in decision.message


class TestCommittedSet:
    @pytest.mark.parametrize(
        "status, blocks",
        [
            (EventStatus.DRAFT, False),
            (EventStatus.SUBMITTED, False),
            (EventStatus.HOD_APPROVED, False),
            (EventStatus.DEAN_APPROVED, False),
            (EventStatus.REJECTED, False),
            (EventStatus.HEAD_APPROVED, True),
            (EventStatus.RUNNING, True),
            (EventStatus.COMPLETED, False),
        ],
    )
    async def test_only_committed_statuses_reserve(self, db, scenario, status, blocks):
        hall = await scenario.venue("Hall")
        annex = await scenario.venue("Annex")
        projector = await scenario.resource(total_quantity=1)
        other = await scenario.draft(hall, claims=[(projector, 1)])
        await scenario.force_status(other, status)
        event = await scenario.dean_approved(annex, claims=[(projector, 1)])

        decision = await validate_allocation(db, event.id)

        assert decision.accepted is not blocks
        if blocks:
            assert decision.kind == ConflictKind.RESOURCE_TIME

    async def test_two_dean_approved_conflicting_events_coexist(self, db, scenario):
        venue = await scenario.venue()
        first = await scenario.dean_approved(venue, start=0, end=2)
        second = await scenario.dean_approved(venue, start=1, end=3)

        assert (await validate_allocation(db, first.id)).accepted
        assert (await validate_allocation(db, second.id)).accepted


class TestResources:
    async def test_exact_remainder_is_accepted(self, db, scenario):
        venue = await scenario.venue("Hall")
        annex = await scenario.venue("Annex")
        projector = await scenario.resource(total_quantity=5)
        await scenario.committed(venue, claims=[(projector, 3)])
        event = await scenario.dean_approved(annex, claims=[(projector, 2)])

        assert (await validate_allocation(db, event.id)).accepted

    async def test_one_more_than_remainder_is_rejected(self, db, scenario):
        venue = await scenario.venue("Hall")
        annex = await scenario.venue("Annex")
        projector = await scenario.resource(total_quantity=5)
        await scenario.committed(venue, claims=[(projector, 3)])
        event = await scenario.dean_approved(annex, claims=[(projector, 3)])

        decision = await validate_allocation(db, event.id)

        assert decision.kind == ConflictKind.RESOURCE_TIME
        assert decision.resource_name == "Projector"
        assert decision.requested == 3
        assert decision.available == 2
        assert decision.shortage == 1

    async def test_non_overlapping_claims_do_not_count(self, db, scenario):
        venue = await scenario.venue("Hall")
        annex = await scenario.venue("Annex")
        projector = await scenario.resource(total_quantity=5)
        await scenario.committed(venue, start=0, end=2, claims=[(projector, 5)])
        event = await scenario.dean_approved(
            annex, start=2, end=4, claims=[(projector, 5)]
        )

        assert (await validate_allocation(db, event.id)).accepted

    async def test_no_claims_passes_resource_check(self, db, scenario):
        venue = await scenario.venue()
        await scenario.resource()
        event = await scenario.dean_approved(venue)

        assert (await validate_allocation(db, event.id)).accepted

    async def test_projector_scenario(self, db, scenario):
        hall = await scenario.venue("Hall", capacity=100)
        annex = await scenario.venue("Annex", capacity=100)
        projector = await scenario.resource("Projector", total_quantity=5)
        a = await scenario.committed(hall, start=0, end=3, claims=[(projector, 5)])
        assert a.status == EventStatus.HEAD_APPROVED
        b = await scenario.dean_approved(annex, start=1, end=2, claims=[(projector, 1)])

        with pytest.raises(AllocationRejectedError) as exc_info:
            await scenario.workflow.head_approve(db, b.id, scenario.head)

        decision = exc_info.value.decision
        assert decision.kind == ConflictKind.RESOURCE_TIME
        assert decision.available == 0
        assert decision.requested == 1

    async def test_sum_query_excludes_candidate(self, db, scenario):
        venue = await scenario.venue()
        projector = await scenario.resource(total_quantity=5)
        event = await scenario.committed(venue, claims=[(projector, 4)])
        window = TimeWindow(at(0), at(2))

        assert await claims_crud.sum_quantity_for_resource_overlapping(
            db, projector.id, None, window
        ) == 4
        assert await claims_crud.sum_quantity_for_resource_overlapping(
            db, projector.id, event.id, window
        ) == 0


class TestOrdering:
    async def test_capacity_is_reported_before_venue_time(self, db, scenario):
        venue = await scenario.venue(capacity=50)
        await scenario.committed(venue, start=0, end=2)
        event = await scenario.dean_approved(venue, start=1, end=3, participants=51)

        assert (await validate_allocation(db, event.id)).kind == ConflictKind.CAPACITY

    async def test_venue_time_is_reported_before_resources(self, db, scenario):
        venue = await scenario.venue()
        projector = await scenario.resource(total_quantity=1)
        await scenario.committed(venue, claims=[(projector, 1)])
        event = await scenario.dean_approved(venue, claims=[(projector, 1)])

        assert (await validate_allocation(db, event.id)).kind == ConflictKind.VENUE_TIME

    async def test_first_short_resource_in_claim_order_is_reported(self, db, scenario):
        hall = await scenario.venue("Hall")
        annex = await scenario.venue("Annex")
        mics = await scenario.resource("Microphone", total_quantity=2)
        projector = await scenario.resource("Projector", total_quantity=2)
        await scenario.committed(hall, claims=[(mics, 2), (projector, 2)])
        event = await scenario.dean_approved(annex, claims=[(projector, 1), (mics, 1)])

        decision = await validate_allocation(db, event.id)

        assert decision.resource_name == "Projector"

    async def test_decision_is_deterministic(self, db, scenario):
        hall = await scenario.venue("Hall")
        annex = await scenario.venue("Annex")
        mics = await scenario.resource("Microphone", total_quantity=1)
        chairs = await scenario.resource("Chairs", total_quantity=10)
        await scenario.committed(hall, claims=[(mics, 1), (chairs, 10)])
        event = await scenario.dean_approved(annex, claims=[(chairs, 1), (mics, 1)])

        decisions = [await validate_allocation(db, event.id) for _ in range(3)]

        assert {d.resource_name for d in decisions} == {"Chairs"}


async def test_missing_event(db, scenario):
    decision = await validate_allocation(db, 9999)
    assert decision.kind == ConflictKind.EVENT_NOT_FOUND
    assert not decision.accepted


class TestConflictReport:
    async def test_report_lists_everything_competing(self, db, scenario):
        hall = await scenario.venue("Hall", capacity=100)
        projector = await scenario.resource("Projector", total_quantity=5)
        mics = await scenario.resource("Microphone", total_quantity=10)
        first = await scenario.committed(hall, start=0, end=2, claims=[(projector, 4)])
        annex = await scenario.venue("Annex")
        second = await scenario.committed(annex, start=1, end=3, claims=[(mics, 3)])
        event = await scenario.dean_approved(
            hall, start=1, end=4, participants=120, claims=[(projector, 2), (mics, 2)]
        )

        report = await build_conflict_report(db, event.id)

        assert report is not None
        assert not report.admissible
        assert report.venue.capacity_ok is False
        assert [c.event_id for c in report.venue.conflicting_events] == [first.id]
        overlap = report.venue.conflicting_events[0]
        assert (overlap.overlap_start, overlap.overlap_end) == (at(1), at(2))

        by_name = {r.resource_name: r for r in report.resources}
        assert by_name["Projector"].committed == 4
        assert by_name["Projector"].available == 1
        assert by_name["Projector"].shortage == 1
        assert by_name["Projector"].over_limit
        assert by_name["Microphone"].committed == 3
        assert not by_name["Microphone"].over_limit
        assert by_name["Microphone"].conflicting_events[0].event_id == second.id
        assert by_name["Microphone"].conflicting_events[0].quantity == 3

    async def test_missing_event_has_no_report(self, db, scenario):
        assert await build_conflict_report(db, 4242) is None

    @pytest.mark.parametrize(
        "start, end, participants, quantity",
        [
            (0, 2, 10, 1),
            (2, 4, 10, 5),
            (1, 3, 10, 1),
            (3, 5, 200, 1),
            (3, 5, 10, 3),
            (3, 5, 10, 2),
        ],
    )
    async def test_report_agrees_with_validator(
        self, db, scenario, start, end, participants, quantity
    ):
        hall = await scenario.venue("Hall", capacity=100)
        annex = await scenario.venue("Annex", capacity=100)
        projector = await scenario.resource(total_quantity=5)
        await scenario.committed(hall, start=0, end=2, claims=[(projector, 3)])
        venue = hall if start < 2 else annex
        event = await scenario.dean_approved(
            venue,
            start=start,
            end=end,
            participants=participants,
            claims=[(projector, quantity)],
        )
        if start >= 3:
            await scenario.committed(hall, start=3, end=5, claims=[(projector, 2)])

        decision = await validate_allocation(db, event.id)
        report = await build_conflict_report(db, event.id)

        assert report.admissible == decision.accepted
