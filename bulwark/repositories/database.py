"""SQLAlchemy-backed user repository."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from bulwark.core.database import check_db_connection, create_session_maker, create_tables
from bulwark.models.user import User
from bulwark.repositories.base import UPDATABLE_FIELDS, DuplicateEmailError


class SqlAlchemyUserRepository:
    """User repository over an async SQLAlchemy engine.

    Each call runs in its own short-lived session. The unique index on
    ``email`` decides races; its violation surfaces as ``DuplicateEmailError``.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_maker: async_sessionmaker[AsyncSession] = create_session_maker(engine)

    async def initialize(self) -> None:
        await create_tables(self.engine)

    async def list_all(self) -> list[User]:
        async with self.session_maker() as session:
            result = await session.execute(select(User).order_by(User.created_at))
            return list(result.scalars().all())

    async def get_by_id(self, user_id: str) -> User | None:
        async with self.session_maker() as session:
            return await session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        async with self.session_maker() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

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
        async with self.session_maker() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                raise DuplicateEmailError() from e
            await session.refresh(user)
        return user

    async def update(self, user_id: str, changes: dict[str, Any]) -> User | None:
        async with self.session_maker() as session:
            user = await session.get(User, user_id)
            if user is None:
                return None
            for key, value in changes.items():
                if key in UPDATABLE_FIELDS:
                    setattr(user, key, value)
            user.updated_at = datetime.now(UTC)
            try:
                await session.commit()
            except IntegrityError as e:
                raise DuplicateEmailError() from e
            await session.refresh(user)
            return user

    async def delete(self, user_id: str) -> bool:
        async with self.session_maker() as session:
            result = await session.execute(delete(User).where(User.id == user_id))
            await session.commit()
            return (result.rowcount or 0) > 0

    async def ping(self) -> bool:
        return await check_db_connection(self.session_maker)

    async def close(self) -> None:
        await self.engine.dispose()
