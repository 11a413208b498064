"""Endpoints for the authenticated user's own profile and saved blogs."""

from datetime import datetime
from typing import List

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from blogapi.app.api.dependencies import CurrentPrincipal, UserServiceDep

router = APIRouter(prefix="/user", tags=["user"])


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    photo_url: str
    created_at: datetime
    bookmarks_count: int
    likes_count: int


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ProfileUpdateResponse(BaseModel):
    id: str
    name: str
    email: str
    photo_url: str
    updated_at: datetime


class BookmarksResponse(BaseModel):
    user: str
    bookmarks: List[str]


class LikesResponse(BaseModel):
    user: str
    likes: List[str]


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(principal: CurrentPrincipal, service: UserServiceDep) -> ProfileResponse:
    user = await service.get_user_by_id(principal.uid)
    totals = await service.reaction_totals(user.id)
    return ProfileResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        photo_url=user.photo_url,
        created_at=user.created_at,
        bookmarks_count=totals["bookmarks"],
        likes_count=totals["likes"],
    )


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    data: ProfileUpdateRequest,
    principal: CurrentPrincipal,
    service: UserServiceDep,
) -> ProfileUpdateResponse:
    """Rename the user, both at the identity provider and locally."""
    user = await service.update_profile(principal.uid, data.name)
    return ProfileUpdateResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        photo_url=user.photo_url,
        updated_at=user.updated_at,
    )


@router.get("/bookmarks", response_model=BookmarksResponse)
async def get_bookmarks(principal: CurrentPrincipal, service: UserServiceDep) -> BookmarksResponse:
    user = await service.get_user_by_id(principal.uid)
    bookmarks = await service.list_bookmarks(user.id)
    return BookmarksResponse(user=user.email, bookmarks=bookmarks)


@router.get("/likes", response_model=LikesResponse)
async def get_likes(principal: CurrentPrincipal, service: UserServiceDep) -> LikesResponse:
    user = await service.get_user_by_id(principal.uid)
    likes = await service.list_likes(user.id)
    return LikesResponse(user=user.email, likes=likes)
