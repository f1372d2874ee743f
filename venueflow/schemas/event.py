from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from venueflow.models.event import EventStatus


class ResourceClaimIn(BaseModel):
    resource_id: int
    quantity: int


class ResourceClaim(ResourceClaimIn):
    resource_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EventBase(BaseModel):
    title: str
    department: str
    venue_id: int
    start_time: datetime
    end_time: datetime
    participant_count: int


# Range and reference checks happen in the workflow service so that every
# caller gets the same InputInvalidError, not only HTTP clients.
class EventCreate(EventBase):
    resources: List[ResourceClaimIn] = []


class ClaimsUpdate(BaseModel):
    resources: List[ResourceClaimIn]


class RejectRequest(BaseModel):
    reason: str = ""


class Event(EventBase):
    id: int
    coordinator_id: int
    coordinator_name: Optional[str] = None
    venue_name: Optional[str] = None
    status: EventStatus
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    resources: List[ResourceClaim] = Field(
        default_factory=list, validation_alias=AliasChoices("claims", "resources")
    )

    model_config = ConfigDict(from_attributes=True)
