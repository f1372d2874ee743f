from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class VenueCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    capacity: int = Field(..., gt=0, description="Capacity must be positive.")


class Venue(VenueCreate):
    id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ResourceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    total_quantity: int = Field(..., ge=0)


class ResourceUpdate(BaseModel):
    total_quantity: int = Field(..., ge=0)


class Resource(ResourceCreate):
    id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
