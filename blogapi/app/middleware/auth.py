"""Bearer-token authentication stages for protected routes.

The stages are FastAPI dependencies, so each route picks the ones it needs:

    @router.get("/user/profile")
    async def profile(principal: Principal = Depends(require_auth)): ...

    router = APIRouter(dependencies=[Depends(require_auth), Depends(require_admin)])

``require_auth`` verifies the credential once and stores the resulting
:class:`Principal` on ``request.state``; ``require_admin`` reads the claims
from there instead of calling the identity provider a second time.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from fastapi import Request

from blogapi.app.core.logging import get_log_context, get_logger
from blogapi.app.exceptions import AuthenticationError, ForbiddenError, VerificationError

MISSING_HEADER_MESSAGE = "Authorization header is required"
MALFORMED_HEADER_MESSAGE = "Authorization header format must be Bearer <token>"
INVALID_TOKEN_MESSAGE = "Invalid token"
AUTH_REQUIRED_MESSAGE = "Authentication required"
ADMIN_REQUIRED_MESSAGE = "Admin access required"


@dataclass(frozen=True)
class Principal:
    """Verified identity of the caller for the current request."""
    uid: str
    claims: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        # Only a literal boolean true grants admin
        return self.claims.get("admin") is True


class Verifier(ABC):
    """Capability to verify a bearer credential with the identity provider."""

    @abstractmethod
    async def verify_credential(self, credential: str) -> Principal:
        """Verify ``credential`` and return the caller's principal.

        Raises:
            VerificationError: If the credential is empty, invalid, expired
                or revoked, or the provider cannot be reached
        """


def parse_bearer_credential(header: Optional[str]) -> str:
    """Extract the credential from an ``Authorization`` header value.

    The header must be exactly ``"Bearer <credential>"``: two tokens separated
    by a single space, with the literal scheme ``Bearer``.

    Raises:
        AuthenticationError: If the header is missing or malformed
    """
    if not header:
        raise AuthenticationError(MISSING_HEADER_MESSAGE)
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise AuthenticationError(MALFORMED_HEADER_MESSAGE)
    return parts[1]


def _request_log_context(request: Request, **extra: Any) -> dict:
    return get_log_context(
        path=request.url.path,
        method=request.method,
        client_ip=request.client.host if request.client else None,
        **extra,
    )


class Authenticator:
    """Runs the per-request auth stages against one verifier.

    One instance lives on ``app.state.authenticator``; the module-level
    dependency functions look it up from the request.
    """

    def __init__(self, verifier: Verifier, logger: Optional[logging.Logger] = None):
        self.verifier = verifier
        self._logger = logger or get_logger(__name__)

    async def authenticate(self, request: Request) -> Principal:
        """Verify the request's bearer credential and attach the principal."""
        try:
            credential = parse_bearer_credential(request.headers.get("Authorization"))
        except AuthenticationError as exc:
            self._logger.warning(
                f"Rejected request: {exc.message}",
                extra=_request_log_context(request),
            )
            raise

        try:
            principal = await self.verifier.verify_credential(credential)
        except VerificationError as exc:
            # The cause stays in the server log; the caller only sees 401.
            self._logger.warning(
                f"Token verification failed: {exc.reason}",
                extra=_request_log_context(request),
            )
            raise AuthenticationError(INVALID_TOKEN_MESSAGE) from exc

        attach_principal(request, principal)
        self._logger.info(
            "User authenticated successfully",
            extra=_request_log_context(request, user_id=principal.uid),
        )
        return principal

    async def try_authenticate(self, request: Request) -> Optional[Principal]:
        """Like :meth:`authenticate`, but any failure yields ``None``."""
        header = request.headers.get("Authorization")
        if not header:
            return None
        try:
            credential = parse_bearer_credential(header)
            principal = await self.verifier.verify_credential(credential)
        except (AuthenticationError, VerificationError) as exc:
            self._logger.debug(
                f"Optional authentication skipped: {exc}",
                extra=_request_log_context(request),
            )
            return None

        attach_principal(request, principal)
        return principal

    def authorize_admin(self, request: Request) -> Principal:
        """Require the already-attached principal to carry ``admin: true``."""
        principal = get_principal(request)
        if principal is None:
            raise AuthenticationError(AUTH_REQUIRED_MESSAGE)
        if not principal.is_admin:
            self._logger.warning(
                "Admin access denied",
                extra=_request_log_context(request, user_id=principal.uid),
            )
            raise ForbiddenError(ADMIN_REQUIRED_MESSAGE)
        return principal


def attach_principal(request: Request, principal: Principal) -> None:
    request.state.principal = principal
    request.state.uid = principal.uid


def get_principal(request: Request) -> Optional[Principal]:
    """Principal attached by an earlier auth stage, if any."""
    return getattr(request.state, "principal", None)


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


async def require_auth(request: Request) -> Principal:
    """Dependency: reject the request unless it carries a valid bearer token.

    Raises:
        AuthenticationError: 401 if the header is missing, malformed, or the
            token does not verify
    """
    return await get_authenticator(request).authenticate(request)


async def optional_auth(request: Request) -> Optional[Principal]:
    """Dependency: attach a principal when possible, never reject."""
    return await get_authenticator(request).try_authenticate(request)


async def require_admin(request: Request) -> Principal:
    """Dependency: must be listed after ``require_auth``.

    Raises:
        AuthenticationError: 401 if no principal was attached upstream
        ForbiddenError: 403 if the ``admin`` claim is absent or not true
    """
    return get_authenticator(request).authorize_admin(request)
