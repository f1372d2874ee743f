"""
Error taxonomy for the approval workflow.

Every error carries a machine readable ``kind``, a human readable message and,
where one exists, the offending field or entity. None of these are retried by
the workflow itself; retry policy belongs to the caller.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from venueflow.schemas.allocation import AllocationDecision


class WorkflowError(Exception):
    kind: str = "workflow_error"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.entity_type = entity_type
        self.entity_id = entity_id

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.field is not None:
            payload["field"] = self.field
        if self.entity_type is not None:
            payload["entity"] = {"type": self.entity_type, "id": self.entity_id}
        return payload


class NotEligibleError(WorkflowError):
    """The event is absent, in the wrong status, or not owned by the actor.

    These cases are deliberately indistinguishable to the caller.
    """

    kind = "not_eligible"
    status_code = 404


class ForbiddenError(WorkflowError):
    """The actor's role lacks the capability for the requested action."""

    kind = "forbidden"
    status_code = 403


class InputInvalidError(WorkflowError):
    kind = "input_invalid"
    status_code = 400


class AllocationRejectedError(WorkflowError):
    """Admission control refused to commit the event's venue and resource claims."""

    kind = "allocation_rejected"
    status_code = 409

    def __init__(self, decision: "AllocationDecision") -> None:
        super().__init__(
            decision.message,
            entity_type="event",
            entity_id=decision.event_id,
        )
        self.decision = decision

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["conflict"] = self.decision.model_dump(mode="json")
        return payload


class AdmissionBusyError(WorkflowError):
    """Contended admission keys could not be acquired in time. Safe to retry."""

    kind = "admission_busy"
    status_code = 503
