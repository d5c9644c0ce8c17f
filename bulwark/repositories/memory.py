"""Process-local user repository."""

import asyncio
import uuid
from datetime import UTC, datetime
from typing import Any

from bulwark.models.user import User
from bulwark.repositories.base import UPDATABLE_FIELDS, DuplicateEmailError


class InMemoryUserRepository:
    """Dict-backed repository for development and tests.

    Email uniqueness is checked under the same lock as the write.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    def _find_email(self, email: str) -> User | None:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    async def list_all(self) -> list[User]:
        async with self._lock:
            return sorted(self._users.values(), key=lambda u: u.created_at)

    async def get_by_id(self, user_id: str) -> User | None:
        async with self._lock:
            return self._users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        async with self._lock:
            return self._find_email(email)

    async def create(self, *, name: str, email: str, password: str | None, role: str = "user") -> User:
        now = datetime.now(UTC)
        user = User(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            password=password,
            role=role,
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            if self._find_email(email) is not None:
                raise DuplicateEmailError()
            self._users[user.id] = user
        return user

    async def update(self, user_id: str, changes: dict[str, Any]) -> User | None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            if "email" in changes:
                holder = self._find_email(changes["email"])
                if holder is not None and holder.id != user_id:
                    raise DuplicateEmailError()
            for key, value in changes.items():
                if key in UPDATABLE_FIELDS:
                    setattr(user, key, value)
            user.updated_at = datetime.now(UTC)
            return user

    async def delete(self, user_id: str) -> bool:
        async with self._lock:
            return self._users.pop(user_id, None) is not None

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        async with self._lock:
            self._users.clear()
