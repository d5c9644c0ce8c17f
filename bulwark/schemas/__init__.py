from bulwark.schemas.auth import AuthResponse, LoginRequest, MessageResponse, RegisterRequest
from bulwark.schemas.user import (
    UserCreateRequest,
    UserResponse,
    UserSummary,
    UserUpdateRequest,
)

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "UserCreateRequest",
    "UserResponse",
    "UserSummary",
    "UserUpdateRequest",
]
