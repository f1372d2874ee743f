import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from venueflow import crud
from venueflow.api import deps
from venueflow.core import security
from venueflow.core.settings import settings
from venueflow.models.user import User
from venueflow.schemas.user import Token
from venueflow.schemas.user import User as UserSchema
from venueflow.schemas.user import UserCreate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=UserSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
)  # type: ignore[misc]
async def register(
    *,
    db: AsyncSession = Depends(deps.get_db),
    user_in: UserCreate,
) -> Any:
    """
    **Register a New Account**

    Creates a user with one of the institutional roles
    (`COORDINATOR`, `HOD`, `DEAN`, `HEAD`, `ADMIN`).

    **Errors:**
    - `400`: Email already registered or password too short
    - `403`: Open registration is disabled
    - `422`: Invalid email or unknown role
    """
    if not settings.USERS_OPEN_REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Open user registration is forbidden on this server",
        )
    if len(user_in.password) < settings.security.PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.security.PASSWORD_MIN_LENGTH} characters",
        )
    if await crud.user.get_by_email(db, email=user_in.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = await crud.user.create(db, obj_in=user_in)
    logger.info("User registered", extra={"user_id": user.id, "role": user.role.value})
    return user


@router.post("/login/access-token", response_model=Token, summary="User Login")  # type: ignore[misc]
async def login_access_token(
    db: AsyncSession = Depends(deps.get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> Any:
    """
    **Authenticate User and Get Access Token**

    OAuth2 compatible token login. `username` carries the email address.

    **Example Request:**
    ```bash
    curl -X POST "/api/v1/auth/login/access-token" \\
         -H "Content-Type: application/x-www-form-urlencoded" \\
         -d "username=coordinator@institution.edu&password=coordinator123"
    ```

    **Errors:**
    - `400`: Incorrect email/password or inactive user
    """
    user = await crud.user.authenticate(
        db, email=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    elif not crud.user.is_active(user):
        raise HTTPException(status_code=400, detail="Inactive user")

    access_token = security.create_access_token(
        user.id,
        expires_delta=timedelta(minutes=settings.security.ACCESS_TOKEN_EXPIRE_MINUTES),
        additional_claims={"role": user.role.value},
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserSchema, summary="Current User")  # type: ignore[misc]
async def read_current_user(
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return current_user
