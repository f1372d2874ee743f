import logging
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from venueflow import crud
from venueflow.api import deps
from venueflow.core.permissions import Actor, Capability
from venueflow.schemas.inventory import (
    Resource,
    ResourceCreate,
    ResourceUpdate,
    Venue,
    VenueCreate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

require_inventory = deps.require_capability(Capability.MANAGE_INVENTORY)


@router.get("/venues", response_model=List[Venue], summary="List Venues")  # type: ignore[misc]
async def read_venues(
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
) -> Any:
    return await crud.inventory.list_venues(db)


@router.post(
    "/venues",
    response_model=Venue,
    status_code=status.HTTP_201_CREATED,
    summary="Create Venue",
)  # type: ignore[misc]
async def create_venue(
    *,
    db: AsyncSession = Depends(deps.get_db),
    venue_in: VenueCreate,
    actor: Actor = Depends(require_inventory),
) -> Any:
    """
    **Create Venue** (Admin Only)

    **Errors:**
    - `403`: Caller cannot manage inventory
    - `422`: Capacity not positive
    """
    venue = await crud.inventory.create_venue(db, venue_in)
    logger.info("Venue created", extra={"venue_id": venue.id, "actor_id": actor.id})
    return venue


@router.get("/resources", response_model=List[Resource], summary="List Resources")  # type: ignore[misc]
async def read_resources(
    db: AsyncSession = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_actor),
) -> Any:
    return await crud.inventory.list_resources(db)


@router.post(
    "/resources",
    response_model=Resource,
    status_code=status.HTTP_201_CREATED,
    summary="Create Resource",
)  # type: ignore[misc]
async def create_resource(
    *,
    db: AsyncSession = Depends(deps.get_db),
    resource_in: ResourceCreate,
    actor: Actor = Depends(require_inventory),
) -> Any:
    resource = await crud.inventory.create_resource(db, resource_in)
    logger.info(
        "Resource created", extra={"resource_id": resource.id, "actor_id": actor.id}
    )
    return resource


@router.put("/resources/{resource_id}", response_model=Resource, summary="Update Resource Quantity")  # type: ignore[misc]
async def update_resource(
    *,
    db: AsyncSession = Depends(deps.get_db),
    resource_id: int,
    resource_in: ResourceUpdate,
    actor: Actor = Depends(require_inventory),
) -> Any:
    """
    **Update Resource Quantity** (Admin Only)

    Changing the pool size does not revisit events that are already
    approved; it only affects later admission checks.
    """
    resource = await crud.inventory.update_resource_quantity(
        db, resource_id, resource_in.total_quantity
    )
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource
