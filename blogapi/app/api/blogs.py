"""Blog reaction endpoints (likes and bookmarks)."""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from blogapi.app.api.dependencies import CurrentPrincipal, OptionalPrincipal, UserServiceDep

router = APIRouter(prefix="/blogs", tags=["blogs"])


class ReactionCountsResponse(BaseModel):
    blog_id: str
    likes: int
    bookmarks: int
    # Only present for authenticated callers
    liked: Optional[bool] = None
    bookmarked: Optional[bool] = None


class LikeToggleResponse(BaseModel):
    message: str
    liked: bool


class BookmarkToggleResponse(BaseModel):
    message: str
    bookmarked: bool


@router.get(
    "/{blog_id}/reactions",
    response_model=ReactionCountsResponse,
    response_model_exclude_none=True,
)
async def get_reactions(
    blog_id: str,
    principal: OptionalPrincipal,
    service: UserServiceDep,
) -> ReactionCountsResponse:
    """Like and bookmark counts, plus the caller's own state when signed in."""
    counts = await service.blog_reaction_counts(blog_id)
    response = ReactionCountsResponse(blog_id=blog_id.lower(), **counts)
    if principal is not None:
        state = await service.reaction_state(principal.uid, blog_id)
        response.liked = state["liked"]
        response.bookmarked = state["bookmarked"]
    return response


@router.post("/{blog_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    blog_id: str,
    principal: CurrentPrincipal,
    service: UserServiceDep,
) -> LikeToggleResponse:
    liked = await service.toggle_like(principal.uid, blog_id)
    return LikeToggleResponse(
        message=f"Blog {blog_id} like toggled by user {principal.uid}",
        liked=liked,
    )


@router.post("/{blog_id}/bookmark", response_model=BookmarkToggleResponse)
async def toggle_bookmark(
    blog_id: str,
    principal: CurrentPrincipal,
    service: UserServiceDep,
) -> BookmarkToggleResponse:
    bookmarked = await service.toggle_bookmark(principal.uid, blog_id)
    return BookmarkToggleResponse(
        message=f"Blog {blog_id} bookmark toggled by user {principal.uid}",
        bookmarked=bookmarked,
    )
