"""User repositories and the startup-time selector."""

from bulwark.core.config import Settings
from bulwark.core.database import create_engine
from bulwark.repositories.base import DuplicateEmailError, UserRepository
from bulwark.repositories.database import SqlAlchemyUserRepository
from bulwark.repositories.memory import InMemoryUserRepository


def create_user_repository(settings: Settings) -> UserRepository:
    """Select the repository implementation from USER_STORE."""
    if settings.user_store == "database":
        engine = create_engine(settings.database_url, echo=settings.debug and settings.log_level == "DEBUG")
        return SqlAlchemyUserRepository(engine)
    return InMemoryUserRepository()


__all__ = [
    "DuplicateEmailError",
    "InMemoryUserRepository",
    "SqlAlchemyUserRepository",
    "UserRepository",
    "create_user_repository",
]
