from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

REACTION_LIKE = "like"
REACTION_BOOKMARK = "bookmark"


class Base(AsyncAttrs, DeclarativeBase):
    """Declarative base; AsyncAttrs allows awaiting lazy attributes."""


class User(Base):
    """A platform user, keyed by the identity provider's uid."""

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_created", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    email: Mapped[str] = mapped_column(String(320), default="")
    photo_url: Mapped[str] = mapped_column(String(2048), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    # Stored for display only; authorization reads the token's admin claim.
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)


class BlogReaction(Base):
    """A user's like or bookmark of a blog post."""

    __tablename__ = "blog_reactions"
    __table_args__ = (
        UniqueConstraint("user_id", "blog_id", "kind", name="uq_blog_reactions_user_blog_kind"),
        Index("idx_blog_reactions_blog_kind", "blog_id", "kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    blog_id: Mapped[str] = mapped_column(String(24))
    kind: Mapped[str] = mapped_column(String(16))  # like | bookmark
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
