"""User repository interface."""

from typing import Any, Protocol

from bulwark.core.errors import ConflictError
from bulwark.models.user import User


class DuplicateEmailError(ConflictError):
    """Another user already holds this email.

    Raised by the stores themselves, so concurrent requests that both
    passed a lookup still cannot create two accounts.
    """

    default_message = "User with this email already exists"


class UserRepository(Protocol):
    """Storage for users, selected once at startup from configuration.

    ``create`` and ``update`` raise ``DuplicateEmailError`` when the email
    belongs to a different user.
    """

    async def list_all(self) -> list[User]: ...

    async def get_by_id(self, user_id: str) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def create(self, *, name: str, email: str, password: str | None, role: str = "user") -> User: ...

    async def update(self, user_id: str, changes: dict[str, Any]) -> User | None: ...

    async def delete(self, user_id: str) -> bool: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


UPDATABLE_FIELDS = frozenset({"name", "email", "password", "role"})
