"""Pydantic schemas for the users API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes field names as camelCase for the browser client."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserSummary(CamelModel):
    """Identity embedded in auth responses."""

    id: str
    email: str
    name: str
    role: Literal["user", "admin"] = "user"


class UserResponse(UserSummary):
    """Full user record; the password hash is never part of it."""

    created_at: datetime
    updated_at: datetime


class UserCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str | None = Field(None, min_length=8, max_length=128)


class UserUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8, max_length=128)
    role: Literal["user", "admin"] | None = None
