from typing import Any, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from venueflow.api import deps
from venueflow.core.permissions import Actor
from venueflow.schemas.allocation import ConflictReport
from venueflow.schemas.event import ClaimsUpdate
from venueflow.schemas.event import Event as EventSchema
from venueflow.schemas.event import EventCreate
from venueflow.services.workflow import ApprovalWorkflow

router = APIRouter()


@router.get("/", response_model=List[EventSchema], summary="List Events")  # type: ignore[misc]
async def read_events(
    db: AsyncSession = Depends(deps.get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    """
    **List Events Visible to the Caller**

    - Coordinators see only the events they created.
    - HODs see every event that left DRAFT, except rejected ones.
    - Deans, heads and admins see everything.
    """
    return await workflow.list_events(db, actor, skip=skip, limit=limit)


@router.post(
    "/",
    response_model=EventSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create Event Draft",
)  # type: ignore[misc]
async def create_event(
    *,
    db: AsyncSession = Depends(deps.get_db),
    event_in: EventCreate,
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    """
    **Create New Event** (Coordinator Only)

    The event starts in `DRAFT` and reserves nothing until head approval.

    **Example Request:**
    ```json
    {
        "title": "Annual Tech Symposium",
        "department": "Computer Science",
        "venue_id": 1,
        "start_time": "2025-03-10T09:00:00Z",
        "end_time": "2025-03-10T17:00:00Z",
        "participant_count": 300,
        "resources": [{"resource_id": 1, "quantity": 2}]
    }
    ```

    **Errors:**
    - `400`: Invalid times, participant count, venue or resources
    - `403`: Caller cannot create events
    """
    return await workflow.create_event(db, event_in, actor)


@router.get("/{event_id}", response_model=EventSchema, summary="Get Event")  # type: ignore[misc]
async def read_event(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    return await workflow.get_event(db, event_id, actor)


@router.put("/{event_id}/resources", response_model=EventSchema, summary="Replace Event Resources")  # type: ignore[misc]
async def replace_event_resources(
    *,
    event_id: int,
    claims_in: ClaimsUpdate,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    """Replace the resource requests of a draft the caller owns."""
    return await workflow.replace_claims(db, event_id, claims_in.resources, actor)


@router.put("/{event_id}/submit", response_model=EventSchema, summary="Submit Event")  # type: ignore[misc]
async def submit_event(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    return await workflow.submit(db, event_id, actor)


@router.put("/{event_id}/start", response_model=EventSchema, summary="Start Event")  # type: ignore[misc]
async def start_event(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    return await workflow.start(db, event_id, actor)


@router.put("/{event_id}/complete", response_model=EventSchema, summary="Complete Event")  # type: ignore[misc]
async def complete_event(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    return await workflow.complete(db, event_id, actor)


@router.get("/{event_id}/conflicts", response_model=ConflictReport, summary="Event Conflict Report")  # type: ignore[misc]
async def read_event_conflicts(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    """
    **Advisory Conflict Report**

    Lists the approved or running events competing with this one for its
    venue and for each requested resource. `admissible` tells whether head
    approval would succeed right now.
    """
    return await workflow.conflict_report(db, event_id, actor)
