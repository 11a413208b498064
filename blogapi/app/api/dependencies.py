"""FastAPI dependencies shared by the API routers.

Usage:
    from blogapi.app.api.dependencies import CurrentPrincipal, UserServiceDep

    @router.get("/user/profile")
    async def get_profile(principal: CurrentPrincipal, service: UserServiceDep):
        ...
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request

from blogapi.app.middleware.auth import Principal, optional_auth, require_auth
from blogapi.app.services.user_service import UserService


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_api_logger(request: Request) -> logging.Logger:
    """Logger for route handlers, from the app's LoggingService."""
    return request.app.state.logging_service.get_logger("blogapi.api")


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
ApiLogger = Annotated[logging.Logger, Depends(get_api_logger)]
CurrentPrincipal = Annotated[Principal, Depends(require_auth)]
OptionalPrincipal = Annotated[Optional[Principal], Depends(optional_auth)]

__all__ = [
    "ApiLogger",
    "CurrentPrincipal",
    "OptionalPrincipal",
    "UserServiceDep",
    "get_api_logger",
    "get_user_service",
]
