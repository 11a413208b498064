"""User and blog reaction CRUD operations."""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.app.db.models import BlogReaction, User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_user_by_id(session: AsyncSession, user_id: str) -> Optional[User]:
    """Get a user by ID.

    Args:
        session: Database session
        user_id: Identity provider uid

    Returns:
        User object if found, None otherwise
    """
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def user_exists(session: AsyncSession, user_id: str) -> bool:
    result = await session.execute(
        select(func.count()).select_from(User).where(User.id == user_id)
    )
    return result.scalar_one() > 0


async def insert_user(session: AsyncSession, user: User, auto_commit: bool = True) -> User:
    """Insert a new user row.

    The caller is expected to have checked for an existing row; a duplicate
    id raises IntegrityError on flush/commit.
    """
    session.add(user)
    if auto_commit:
        await session.commit()
    else:
        await session.flush()
    return user


async def update_user_name(
    session: AsyncSession,
    user_id: str,
    name: str,
    auto_commit: bool = True,
) -> Optional[User]:
    """Set a user's display name and bump updated_at.

    Returns:
        The updated user, or None if no user has that ID
    """
    result = await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(name=name, updated_at=utcnow())
    )
    if result.rowcount == 0:
        return None
    if auto_commit:
        await session.commit()
    return await session.get(User, user_id, populate_existing=True)


async def list_users(session: AsyncSession, limit: int = 50, offset: int = 0) -> List[User]:
    """Get a page of users, oldest first."""
    result = await session.execute(
        select(User).order_by(User.created_at, User.id).limit(limit).offset(offset)
    )
    return list(result.scalars().all())


async def count_users(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(User))
    return result.scalar_one()


async def has_reaction(session: AsyncSession, user_id: str, blog_id: str, kind: str) -> bool:
    result = await session.execute(
        select(BlogReaction.id).where(
            BlogReaction.user_id == user_id,
            BlogReaction.blog_id == blog_id,
            BlogReaction.kind == kind,
        )
    )
    return result.first() is not None


async def add_reaction(
    session: AsyncSession,
    user_id: str,
    blog_id: str,
    kind: str,
    auto_commit: bool = True,
) -> None:
    """Add a reaction and bump the user's updated_at."""
    session.add(
        BlogReaction(user_id=user_id, blog_id=blog_id, kind=kind, created_at=utcnow())
    )
    await session.execute(update(User).where(User.id == user_id).values(updated_at=utcnow()))
    if auto_commit:
        await session.commit()


async def remove_reaction(
    session: AsyncSession,
    user_id: str,
    blog_id: str,
    kind: str,
    auto_commit: bool = True,
) -> None:
    """Remove a reaction (no-op if absent) and bump the user's updated_at."""
    await session.execute(
        delete(BlogReaction).where(
            BlogReaction.user_id == user_id,
            BlogReaction.blog_id == blog_id,
            BlogReaction.kind == kind,
        )
    )
    await session.execute(update(User).where(User.id == user_id).values(updated_at=utcnow()))
    if auto_commit:
        await session.commit()


async def list_reaction_blog_ids(session: AsyncSession, user_id: str, kind: str) -> List[str]:
    """Blog ids the user reacted to with ``kind``, oldest first."""
    result = await session.execute(
        select(BlogReaction.blog_id)
        .where(BlogReaction.user_id == user_id, BlogReaction.kind == kind)
        .order_by(BlogReaction.created_at, BlogReaction.id)
    )
    return list(result.scalars().all())


async def count_user_reactions(session: AsyncSession, user_id: str, kind: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(BlogReaction)
        .where(BlogReaction.user_id == user_id, BlogReaction.kind == kind)
    )
    return result.scalar_one()


async def count_blog_reactions(session: AsyncSession, blog_id: str, kind: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(BlogReaction)
        .where(BlogReaction.blog_id == blog_id, BlogReaction.kind == kind)
    )
    return result.scalar_one()
