"""Admin-only endpoints.

Every route here runs ``require_auth`` then ``require_admin``; the admin
check reads the principal attached by the first stage.
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from blogapi.app.api.dependencies import UserServiceDep
from blogapi.app.middleware.auth import require_admin, require_auth

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_auth), Depends(require_admin)],
)


class AdminUser(BaseModel):
    id: str
    name: str
    email: str
    photo_url: str
    is_admin: bool
    created_at: datetime
    updated_at: datetime


class AdminUserListResponse(BaseModel):
    users: List[AdminUser]
    total: int
    limit: int
    offset: int


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    service: UserServiceDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> AdminUserListResponse:
    """Page through all registered users, oldest first."""
    users = await service.list_users(limit=limit, offset=offset)
    total = await service.count_users()
    return AdminUserListResponse(
        users=[
            AdminUser(
                id=u.id,
                name=u.name,
                email=u.email,
                photo_url=u.photo_url,
                is_admin=u.is_admin,
                created_at=u.created_at,
                updated_at=u.updated_at,
            )
            for u in users
        ],
        total=total,
        limit=limit,
        offset=offset,
    )
