from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from venueflow.models.user import UserRole


class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    role: UserRole


# Properties to receive via API on registration
class UserCreate(UserBase):
    password: str


class User(UserBase):
    id: int
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenPayload(BaseModel):
    sub: Optional[int] = None
    role: Optional[UserRole] = None
