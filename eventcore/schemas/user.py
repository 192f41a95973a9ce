from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime

from eventcore.models.user import UserRole


class UserCreateSchema(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.USER


class UserResponseSchema(BaseModel):
    """Public view of a user; the password hash is never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    name: Optional[str] = None
    role: UserRole
    created_at: Optional[datetime] = None


class UserSeedSchema(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    role: UserRole = UserRole.USER
