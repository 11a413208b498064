"""API endpoints package for the blog API."""

from fastapi import APIRouter

from blogapi.app.api.admin import router as admin_router
from blogapi.app.api.auth import router as auth_router
from blogapi.app.api.blogs import router as blogs_router
from blogapi.app.api.users import router as users_router

API_PREFIX = "/api/v1"

api_router = APIRouter(prefix=API_PREFIX)
api_router.include_router(auth_router)
api_router.include_router(blogs_router)
api_router.include_router(users_router)
api_router.include_router(admin_router)

__all__ = [
    "API_PREFIX",
    "api_router",
    "admin_router",
    "auth_router",
    "blogs_router",
    "users_router",
]
