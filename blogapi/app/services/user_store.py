"""User persistence behind the :class:`UserStore` capability.

Handlers and the user service only see :class:`UserRecord` values; the
SQLAlchemy implementation converts ORM rows at this boundary so nothing
downstream holds a session-bound object.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogapi.app.db import crud
from blogapi.app.db.models import REACTION_BOOKMARK, REACTION_LIKE, User
from blogapi.app.exceptions import ConflictError, NotFoundError


@dataclass
class UserRecord:
    id: str
    name: str
    email: str
    photo_url: str
    created_at: datetime
    updated_at: datetime
    is_admin: bool = False
    bookmarks: List[str] = field(default_factory=list)
    likes: List[str] = field(default_factory=list)


class UserStore(ABC):
    """Capability for storing users and their blog reactions."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserRecord]:
        """Return the user with its likes and bookmarks, or None."""

    @abstractmethod
    async def create(self, user: UserRecord) -> UserRecord:
        """Persist a new user.

        Raises:
            ConflictError: If a user with the same id already exists
        """

    @abstractmethod
    async def update_name(self, user_id: str, name: str) -> UserRecord:
        """Raises NotFoundError if the user does not exist."""

    @abstractmethod
    async def list_users(self, limit: int = 50, offset: int = 0) -> List[UserRecord]:
        """Page of users without their reaction lists."""

    @abstractmethod
    async def count_users(self) -> int:
        ...

    @abstractmethod
    async def has_reaction(self, user_id: str, blog_id: str, kind: str) -> bool:
        ...

    @abstractmethod
    async def add_reaction(self, user_id: str, blog_id: str, kind: str) -> None:
        ...

    @abstractmethod
    async def remove_reaction(self, user_id: str, blog_id: str, kind: str) -> None:
        ...

    @abstractmethod
    async def list_reactions(self, user_id: str, kind: str) -> List[str]:
        ...

    @abstractmethod
    async def count_reactions(self, user_id: str, kind: str) -> int:
        ...

    @abstractmethod
    async def count_blog_reactions(self, blog_id: str, kind: str) -> int:
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(user: User, bookmarks: Optional[List[str]] = None, likes: Optional[List[str]] = None) -> UserRecord:
    return UserRecord(
        id=user.id,
        name=user.name,
        email=user.email,
        photo_url=user.photo_url,
        created_at=_as_utc(user.created_at),
        updated_at=_as_utc(user.updated_at),
        is_admin=user.is_admin,
        bookmarks=bookmarks or [],
        likes=likes or [],
    )


class SqlAlchemyUserStore(UserStore):
    """UserStore on SQLAlchemy async sessions, one session per operation."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get(self, user_id: str) -> Optional[UserRecord]:
        async with self._session_maker() as session:
            user = await crud.get_user_by_id(session, user_id)
            if user is None:
                return None
            bookmarks = await crud.list_reaction_blog_ids(session, user_id, REACTION_BOOKMARK)
            likes = await crud.list_reaction_blog_ids(session, user_id, REACTION_LIKE)
            return _to_record(user, bookmarks=bookmarks, likes=likes)

    async def create(self, user: UserRecord) -> UserRecord:
        async with self._session_maker() as session:
            if await crud.user_exists(session, user.id):
                raise ConflictError("user already exists")
            row = User(
                id=user.id,
                name=user.name,
                email=user.email,
                photo_url=user.photo_url,
                created_at=user.created_at,
                updated_at=user.updated_at,
                is_admin=user.is_admin,
            )
            try:
                await crud.insert_user(session, row)
            except IntegrityError as e:
                # Lost a race with a concurrent insert of the same id
                await session.rollback()
                raise ConflictError("user already exists") from e
            return _to_record(row)

    async def update_name(self, user_id: str, name: str) -> UserRecord:
        async with self._session_maker() as session:
            user = await crud.update_user_name(session, user_id, name)
            if user is None:
                raise NotFoundError("user not found")
            return _to_record(user)

    async def list_users(self, limit: int = 50, offset: int = 0) -> List[UserRecord]:
        async with self._session_maker() as session:
            users = await crud.list_users(session, limit=limit, offset=offset)
            return [_to_record(user) for user in users]

    async def count_users(self) -> int:
        async with self._session_maker() as session:
            return await crud.count_users(session)

    async def has_reaction(self, user_id: str, blog_id: str, kind: str) -> bool:
        async with self._session_maker() as session:
            return await crud.has_reaction(session, user_id, blog_id, kind)

    async def add_reaction(self, user_id: str, blog_id: str, kind: str) -> None:
        async with self._session_maker() as session:
            try:
                await crud.add_reaction(session, user_id, blog_id, kind)
            except IntegrityError:
                # Already present: adding is idempotent
                await session.rollback()

    async def remove_reaction(self, user_id: str, blog_id: str, kind: str) -> None:
        async with self._session_maker() as session:
            await crud.remove_reaction(session, user_id, blog_id, kind)

    async def list_reactions(self, user_id: str, kind: str) -> List[str]:
        async with self._session_maker() as session:
            return await crud.list_reaction_blog_ids(session, user_id, kind)

    async def count_reactions(self, user_id: str, kind: str) -> int:
        async with self._session_maker() as session:
            return await crud.count_user_reactions(session, user_id, kind)

    async def count_blog_reactions(self, blog_id: str, kind: str) -> int:
        async with self._session_maker() as session:
            return await crud.count_blog_reactions(session, blog_id, kind)
