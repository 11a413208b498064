"""Services package for the blog API.

This package provides:
- The Firebase identity provider (token verification and user directory)
- User persistence behind the UserStore capability
- User business logic (registration, profiles, likes and bookmarks)
"""

from blogapi.app.services.identity import (
    FirebaseIdentityProvider,
    IdentityDirectory,
    IdentityRecord,
)
from blogapi.app.services.user_service import UserService, validate_blog_id
from blogapi.app.services.user_store import SqlAlchemyUserStore, UserRecord, UserStore

__all__ = [
    # Identity provider
    "FirebaseIdentityProvider",
    "IdentityDirectory",
    "IdentityRecord",
    # User store
    "SqlAlchemyUserStore",
    "UserRecord",
    "UserStore",
    # User service
    "UserService",
    "validate_blog_id",
]
