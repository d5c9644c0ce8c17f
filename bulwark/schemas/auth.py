"""Pydantic schemas for authentication API."""

from pydantic import BaseModel, EmailStr, Field

from bulwark.schemas.user import CamelModel, UserSummary


class RegisterRequest(BaseModel):
    """Request for self-registration."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    """Request for login."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class AuthResponse(CamelModel):
    """Bearer token, the signed-in user and the CSRF token to echo in headers."""

    token: str
    user: UserSummary
    csrf_token: str


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
