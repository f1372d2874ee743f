from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose.exceptions import JWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from venueflow import crud
from venueflow.core import security
from venueflow.core.permissions import Actor, Capability
from venueflow.core.settings import settings
from venueflow.database import get_db
from venueflow.models.user import User
from venueflow.schemas.user import TokenPayload
from venueflow.services.workflow import ApprovalWorkflow

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login/access-token"
)

__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "get_actor",
    "require_capability",
    "get_workflow",
]


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    db: AsyncSession = Depends(get_db), token: str = Depends(reusable_oauth2)
) -> User:
    try:
        token_data = TokenPayload(**security.decode_token(token))
    except (JWTError, ValidationError):
        raise _credentials_error()
    user = await crud.user.get(db, id=token_data.sub)
    if not user:
        raise _credentials_error()
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not crud.user.is_active(current_user):
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def get_actor(current_user: User = Depends(get_current_active_user)) -> Actor:
    return Actor(id=current_user.id, role=current_user.role)


def require_capability(capability: Capability) -> Any:
    """Dependency factory for capability-based access control"""

    def capability_dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if not actor.can(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {actor.role.value} lacks {capability.value}",
            )
        return actor

    return capability_dependency


def get_workflow(request: Request) -> ApprovalWorkflow:
    workflow: ApprovalWorkflow = request.app.state.workflow
    return workflow
