"""Firebase identity provider adapter.

Implements the :class:`Verifier` capability used by the auth stages and the
:class:`IdentityDirectory` capability used by the user service. The Firebase
Admin SDK is blocking, so every call runs in Starlette's threadpool.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials, exceptions as firebase_exceptions
from starlette.concurrency import run_in_threadpool

from blogapi.app.core.config import Settings
from blogapi.app.core.logging import get_logger
from blogapi.app.exceptions import VerificationError
from blogapi.app.middleware.auth import Principal, Verifier


@dataclass
class IdentityRecord:
    """User record as held by the identity provider."""
    uid: str
    display_name: str = ""
    email: str = ""
    photo_url: str = ""


class IdentityDirectory(ABC):
    """Capability to look up and update users at the identity provider."""

    @abstractmethod
    async def get_user(self, uid: str) -> Optional[IdentityRecord]:
        """Return the provider's record for ``uid``, or None if unknown."""

    @abstractmethod
    async def update_display_name(self, uid: str, display_name: str) -> IdentityRecord:
        """Set the display name at the provider."""


class FirebaseIdentityProvider(Verifier, IdentityDirectory):
    """Firebase Authentication backed verifier and user directory."""

    APP_NAME = "blogapi"

    def __init__(self, app: firebase_admin.App, logger: Optional[logging.Logger] = None):
        self._app = app
        self._logger = logger or get_logger(__name__)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        logger: Optional[logging.Logger] = None,
    ) -> "FirebaseIdentityProvider":
        """Initialise a named Firebase app from the service account file.

        Raises:
            ValueError: If the project id is missing or the credentials file
                does not exist
        """
        if not settings.firebase_project_id:
            raise ValueError("Firebase project ID is required")
        credentials_file = os.path.abspath(settings.firebase_credentials_file)
        if not os.path.exists(credentials_file):
            raise ValueError(f"Firebase credentials file not found: {credentials_file}")

        app = firebase_admin.initialize_app(
            credentials.Certificate(credentials_file),
            {"projectId": settings.firebase_project_id},
            name=cls.APP_NAME,
        )
        return cls(app, logger=logger)

    async def verify_credential(self, credential: str) -> Principal:
        if not credential:
            raise VerificationError("id token is empty")

        try:
            decoded = await run_in_threadpool(auth.verify_id_token, credential, app=self._app)
        except auth.ExpiredIdTokenError as e:
            raise VerificationError(f"token expired: {e}") from e
        except auth.RevokedIdTokenError as e:
            raise VerificationError(f"token revoked: {e}") from e
        except auth.InvalidIdTokenError as e:
            raise VerificationError(f"invalid token: {e}") from e
        except auth.CertificateFetchError as e:
            self._logger.error(f"Could not fetch Firebase public keys: {e}")
            raise VerificationError(f"certificate fetch failed: {e}") from e
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise VerificationError(f"verification error: {e}") from e

        return Principal(uid=decoded["uid"], claims=dict(decoded))

    async def get_user(self, uid: str) -> Optional[IdentityRecord]:
        try:
            record = await run_in_threadpool(auth.get_user, uid, app=self._app)
        except auth.UserNotFoundError:
            return None
        return _to_identity_record(record)

    async def update_display_name(self, uid: str, display_name: str) -> IdentityRecord:
        record = await run_in_threadpool(
            auth.update_user, uid, display_name=display_name, app=self._app
        )
        return _to_identity_record(record)

    def close(self) -> None:
        firebase_admin.delete_app(self._app)


def _to_identity_record(record) -> IdentityRecord:
    return IdentityRecord(
        uid=record.uid,
        display_name=record.display_name or "",
        email=record.email or "",
        photo_url=record.photo_url or "",
    )
