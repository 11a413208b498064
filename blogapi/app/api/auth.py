"""Authentication endpoints: token validation, login and registration.

``/auth/validate-token`` is public and verifies the token from the request
body. The other endpoints run behind ``require_auth`` and act on the uid of
the verified bearer token.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from blogapi.app.api.dependencies import ApiLogger, CurrentPrincipal, UserServiceDep
from blogapi.app.api.schemas import UserRegistrationInput, UserResponse
from blogapi.app.core.logging import get_log_context
from blogapi.app.exceptions import AuthenticationError, VerificationError
from blogapi.app.middleware.auth import INVALID_TOKEN_MESSAGE, get_authenticator
from blogapi.app.services.user_store import UserRecord

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenUser(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    email: str = ""
    photo_url: str = ""


class ValidateTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)
    user: TokenUser


class ValidateTokenResponse(BaseModel):
    uid: str
    email: str
    name: str


def _user_response(user: UserRecord) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        photo_url=user.photo_url,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.post("/validate-token", response_model=ValidateTokenResponse)
async def validate_token(
    data: ValidateTokenRequest,
    request: Request,
    service: UserServiceDep,
    logger: ApiLogger,
) -> ValidateTokenResponse:
    """Verify an identity token and get or create the matching user."""
    verifier = get_authenticator(request).verifier
    try:
        principal = await verifier.verify_credential(data.token)
    except VerificationError as exc:
        logger.warning(
            f"Token validation failed: {exc.reason}",
            extra=get_log_context(path=request.url.path, method=request.method),
        )
        raise AuthenticationError(INVALID_TOKEN_MESSAGE) from exc

    if principal.uid != data.user.id:
        raise AuthenticationError("Token UID does not match user ID")

    user = await service.login_or_register(
        principal.uid,
        data.user.name,
        data.user.email,
        data.user.photo_url,
    )
    return ValidateTokenResponse(uid=user.id, email=user.email, name=user.name)


@router.post("/login", response_model=UserResponse)
async def login(
    principal: CurrentPrincipal,
    service: UserServiceDep,
    logger: ApiLogger,
) -> UserResponse:
    """Return the stored profile of the authenticated user."""
    user = await service.login(principal.uid)
    logger.info("User login successful", extra=get_log_context(user_id=user.id))
    return _user_response(user)


@router.post("/register", response_model=UserResponse)
async def register(
    data: UserRegistrationInput,
    principal: CurrentPrincipal,
    service: UserServiceDep,
) -> UserResponse:
    """Create the user for the authenticated uid; 409 if already registered."""
    user = await service.register(principal.uid, data.name, data.email, data.photo_url)
    return _user_response(user)


@router.post("/login-or-register", response_model=UserResponse)
async def login_or_register(
    data: UserRegistrationInput,
    principal: CurrentPrincipal,
    service: UserServiceDep,
) -> UserResponse:
    user = await service.login_or_register(principal.uid, data.name, data.email, data.photo_url)
    return _user_response(user)
