from typing import Any, List, Literal

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from venueflow.api import deps
from venueflow.core.permissions import Actor
from venueflow.schemas.allocation import AllocationDecision
from venueflow.schemas.event import Event as EventSchema
from venueflow.schemas.event import RejectRequest
from venueflow.services.workflow import ApprovalWorkflow

router = APIRouter()


@router.get("/pending/{stage}", response_model=List[EventSchema], summary="Pending Approvals")  # type: ignore[misc]
async def read_pending(
    stage: Literal["hod", "dean", "head"],
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    """
    **Events Awaiting a Review Stage**

    - `hod`: submitted events
    - `dean`: HOD approved events
    - `head`: dean approved events
    """
    return await workflow.pending_for_stage(db, stage, actor)


@router.put("/{event_id}/hod-approve", response_model=EventSchema, summary="HOD Approve")  # type: ignore[misc]
async def hod_approve(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    return await workflow.hod_approve(db, event_id, actor)


@router.put("/{event_id}/hod-reject", response_model=EventSchema, summary="HOD Reject")  # type: ignore[misc]
async def hod_reject(
    *,
    event_id: int,
    reject_in: RejectRequest,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    """
    **Reject a Submitted Event**

    A non-empty `reason` is required. Rejection is final; the coordinator
    has to create a new event.
    """
    return await workflow.hod_reject(db, event_id, actor, reject_in.reason)


@router.put("/{event_id}/dean-approve", response_model=EventSchema, summary="Dean Approve")  # type: ignore[misc]
async def dean_approve(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    return await workflow.dean_approve(db, event_id, actor)


@router.put("/{event_id}/head-approve", response_model=EventSchema, summary="Head Approve")  # type: ignore[misc]
async def head_approve(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    """
    **Final Approval with Admission Control**

    Checks venue capacity, venue time exclusivity and resource quantities
    against approved and running events, then commits the approval.

    **Errors:**
    - `404`: Event not found or not awaiting head approval
    - `409`: Allocation conflict; the body's `detail.conflict` names it
    - `503`: Another approval holds the same venue or resource, retry
    """
    return await workflow.head_approve(db, event_id, actor)


@router.get("/{event_id}/allocation-preview", response_model=AllocationDecision, summary="Allocation Preview")  # type: ignore[misc]
async def allocation_preview(
    event_id: int,
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
    workflow: ApprovalWorkflow = Depends(deps.get_workflow),
) -> Any:
    return await workflow.preview_allocation(db, event_id, actor)
