"""User management endpoints."""

import logging

from fastapi import APIRouter, Depends, Response, status

from bulwark.api.deps import get_user_repository, require_admin, require_user
from bulwark.core.errors import NotFoundError
from bulwark.repositories.base import DuplicateEmailError, UserRepository
from bulwark.schemas.user import UserCreateRequest, UserResponse, UserUpdateRequest
from bulwark.services.auth import AuthContext, hash_password_async

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

USER_NOT_FOUND = "User not found"


@router.get("", response_model=list[UserResponse])
async def list_users(
    _admin: AuthContext = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
) -> list[UserResponse]:
    """List all users (admin only)."""
    return [UserResponse.model_validate(user) for user in await users.list_all()]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    context: AuthContext = Depends(require_user),
    users: UserRepository = Depends(get_user_repository),
) -> UserResponse:
    """Create a regular user. The password is optional and stored hashed."""
    if await users.get_by_email(body.email) is not None:
        raise DuplicateEmailError()

    password = await hash_password_async(body.password) if body.password else None
    user = await users.create(name=body.name, email=body.email, password=password)
    logger.info(f"User {user.id} created by {context.user_id}")
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _context: AuthContext = Depends(require_user),
    users: UserRepository = Depends(get_user_repository),
) -> UserResponse:
    user = await users.get_by_id(user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    context: AuthContext = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
) -> UserResponse:
    """Apply a partial update; only fields present in the body change."""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in changes:
        existing = await users.get_by_email(changes["email"])
        if existing is not None and existing.id != user_id:
            raise DuplicateEmailError()
    if "password" in changes:
        changes["password"] = await hash_password_async(changes["password"])

    user = await users.update(user_id, changes)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)

    if "role" in changes:
        logger.info(f"Admin {context.user_id} set role of {user_id} to {changes['role']}")
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    context: AuthContext = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
) -> Response:
    if not await users.delete(user_id):
        raise NotFoundError(USER_NOT_FOUND)
    logger.info(f"User {user_id} deleted by admin {context.user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
