"""User business logic: profiles, registration and blog reactions."""

import logging
import re
from typing import List, Optional

from blogapi.app.core.logging import get_log_context, get_logger
from blogapi.app.db.crud.user import utcnow
from blogapi.app.db.models import REACTION_BOOKMARK, REACTION_LIKE
from blogapi.app.exceptions import ConflictError, NotFoundError, ValidationError
from blogapi.app.services.identity import IdentityDirectory
from blogapi.app.services.user_store import UserRecord, UserStore

# Blog posts live in a document store keyed by 12-byte object ids.
BLOG_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def new_user(user_id: str, name: str, email: str, photo_url: str = "") -> UserRecord:
    """Build a fresh user with no likes or bookmarks."""
    now = utcnow()
    return UserRecord(
        id=user_id,
        name=name,
        email=email,
        photo_url=photo_url,
        created_at=now,
        updated_at=now,
        is_admin=False,
    )


def validate_blog_id(blog_id: str) -> str:
    """Return the normalised (lowercase) blog id.

    Raises:
        ValidationError: If ``blog_id`` is not a 24 character hex string
    """
    if not BLOG_ID_PATTERN.match(blog_id or ""):
        raise ValidationError("invalid blog ID format")
    return blog_id.lower()


class UserService:
    """User-facing operations over a UserStore.

    Args:
        store: Persistence capability
        directory: Identity provider lookup, used to backfill users that
            authenticated but were never stored, and to keep the provider's
            display name in sync. Optional.
        logger: Logger for service events
    """

    def __init__(
        self,
        store: UserStore,
        directory: Optional[IdentityDirectory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.directory = directory
        self._logger = logger or get_logger(__name__)

    async def get_user_by_id(self, user_id: str) -> UserRecord:
        """Stored user, falling back to the identity provider's record.

        Raises:
            NotFoundError: If neither the store nor the provider knows the id
        """
        user = await self.store.get(user_id)
        if user is not None:
            return user

        if self.directory is None:
            raise NotFoundError("user not found")

        identity = await self.directory.get_user(user_id)
        if identity is None:
            raise NotFoundError("user not found")

        self._logger.info(
            "Backfilling user from identity provider",
            extra=get_log_context(user_id=user_id),
        )
        created = new_user(identity.uid, identity.display_name, identity.email, identity.photo_url)
        try:
            return await self.store_user(created)
        except ConflictError:
            # Created concurrently by another request
            stored = await self.store.get(user_id)
            if stored is None:
                raise
            return stored

    async def store_user(self, user: UserRecord) -> UserRecord:
        """Persist a new user.

        Raises:
            ConflictError: If a user with the same id is already stored
        """
        return await self.store.create(user)

    async def register(self, user_id: str, name: str, email: str, photo_url: str = "") -> UserRecord:
        """Create the user for an authenticated uid.

        Raises:
            ConflictError: If the user is already registered
        """
        user = await self.store_user(new_user(user_id, name, email, photo_url))
        self._logger.info(
            "User registration completed successfully",
            extra=get_log_context(user_id=user_id, email=email),
        )
        return user

    async def login(self, user_id: str) -> UserRecord:
        user = await self.store.get(user_id)
        if user is None:
            self._logger.warning("User not found in database", extra=get_log_context(user_id=user_id))
            raise NotFoundError("User not found. Please register first.")
        return user

    async def login_or_register(self, user_id: str, name: str, email: str, photo_url: str = "") -> UserRecord:
        user = await self.store.get(user_id)
        if user is not None:
            return user
        self._logger.info("User not found in database, creating new user", extra=get_log_context(user_id=user_id))
        try:
            return await self.store_user(new_user(user_id, name, email, photo_url))
        except ConflictError:
            return await self.login(user_id)

    async def update_profile(self, user_id: str, name: str) -> UserRecord:
        """Rename the user at the identity provider and in the store.

        Raises:
            NotFoundError: If the user is not stored
        """
        if await self.store.get(user_id) is None:
            raise NotFoundError("user not found")
        if self.directory is not None:
            await self.directory.update_display_name(user_id, name)
        return await self.store.update_name(user_id, name)

    async def toggle_like(self, user_id: str, blog_id: str) -> bool:
        """Like the blog, or unlike it if already liked. Returns the new state."""
        return await self._toggle(user_id, blog_id, REACTION_LIKE)

    async def toggle_bookmark(self, user_id: str, blog_id: str) -> bool:
        """Bookmark the blog, or remove the bookmark. Returns the new state."""
        return await self._toggle(user_id, blog_id, REACTION_BOOKMARK)

    async def _toggle(self, user_id: str, blog_id: str, kind: str) -> bool:
        try:
            await self.get_user_by_id(user_id)
        except NotFoundError:
            raise NotFoundError("user not found")
        blog_id = validate_blog_id(blog_id)

        if await self.store.has_reaction(user_id, blog_id, kind):
            await self.store.remove_reaction(user_id, blog_id, kind)
            return False
        await self.store.add_reaction(user_id, blog_id, kind)
        return True

    async def list_bookmarks(self, user_id: str) -> List[str]:
        await self.get_user_by_id(user_id)
        return await self.store.list_reactions(user_id, REACTION_BOOKMARK)

    async def list_likes(self, user_id: str) -> List[str]:
        await self.get_user_by_id(user_id)
        return await self.store.list_reactions(user_id, REACTION_LIKE)

    async def reaction_totals(self, user_id: str) -> dict:
        """Number of blogs the user has bookmarked and liked."""
        return {
            "bookmarks": await self.store.count_reactions(user_id, REACTION_BOOKMARK),
            "likes": await self.store.count_reactions(user_id, REACTION_LIKE),
        }

    async def blog_reaction_counts(self, blog_id: str) -> dict:
        blog_id = validate_blog_id(blog_id)
        return {
            "likes": await self.store.count_blog_reactions(blog_id, REACTION_LIKE),
            "bookmarks": await self.store.count_blog_reactions(blog_id, REACTION_BOOKMARK),
        }

    async def reaction_state(self, user_id: str, blog_id: str) -> dict:
        blog_id = validate_blog_id(blog_id)
        return {
            "liked": await self.store.has_reaction(user_id, blog_id, REACTION_LIKE),
            "bookmarked": await self.store.has_reaction(user_id, blog_id, REACTION_BOOKMARK),
        }

    async def list_users(self, limit: int = 50, offset: int = 0) -> List[UserRecord]:
        return await self.store.list_users(limit=limit, offset=offset)

    async def count_users(self) -> int:
        return await self.store.count_users()
