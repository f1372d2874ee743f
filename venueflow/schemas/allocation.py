import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from venueflow.models.event import EventStatus


class ConflictKind(str, enum.Enum):
    EVENT_NOT_FOUND = "event_not_found"
    VENUE_NOT_FOUND = "venue_not_found"
    CAPACITY = "capacity"
    VENUE_TIME = "venue_time"
    RESOURCE_NOT_FOUND = "resource_not_found"
    RESOURCE_TIME = "resource_time"


class AllocationDecision(BaseModel):
    """Outcome of admission control for one event.

    Only the first failing check is reported. The fields relevant to the
    failing kind are filled in; the others stay ``None``.
    """

    event_id: int
    accepted: bool
    kind: Optional[ConflictKind] = None
    message: str

    venue_id: Optional[int] = None
    venue_name: Optional[str] = None
    capacity: Optional[int] = None
    participant_count: Optional[int] = None
    conflicting_event_count: Optional[int] = None

    resource_id: Optional[int] = None
    resource_name: Optional[str] = None
    requested: Optional[int] = None
    available: Optional[int] = None

    @property
    def shortage(self) -> Optional[int]:
        if self.requested is None or self.available is None:
            return None
        return self.requested - self.available


class ConflictingEvent(BaseModel):
    event_id: int
    title: str
    status: EventStatus
    start_time: datetime
    end_time: datetime
    overlap_start: datetime
    overlap_end: datetime
    quantity: Optional[int] = None


class VenueConflict(BaseModel):
    venue_id: int
    venue_name: str
    capacity: int
    participant_count: int
    capacity_ok: bool
    conflicting_events: List[ConflictingEvent] = []


class ResourceConflict(BaseModel):
    resource_id: int
    resource_name: str
    requested: int
    total_quantity: int
    committed: int
    available: int
    shortage: int
    over_limit: bool
    conflicting_events: List[ConflictingEvent] = []


class ConflictReport(BaseModel):
    """Advisory view of everything competing with an event for its slot."""

    event_id: int
    start_time: datetime
    end_time: datetime
    venue: Optional[VenueConflict] = None
    resources: List[ResourceConflict] = []
    admissible: bool
