"""Recovery middleware: turn unexpected faults into a uniform 500 response.

Written as a plain ASGI middleware rather than ``BaseHTTPMiddleware`` so it
can watch whether the response has already started.
"""

import logging
import traceback
from typing import Optional

from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from blogapi.app.core.logging import get_log_context, get_logger


class RecoveryMiddleware:
    """Catch any exception raised by the stages it wraps.

    Must be the outermost application middleware. The fault and its stack
    trace go to the log together with the request context; the client gets
    ``{"error": "Internal server error: <fault>"}``.
    """

    def __init__(self, app: ASGIApp, logger: Optional[logging.Logger] = None):
        self.app = app
        self._logger = logger or get_logger(__name__)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            headers = Headers(scope=scope)
            client = scope.get("client")
            self._logger.error(
                f"Panic recovered: {exc!r}\nStack trace: {traceback.format_exc()}",
                extra=get_log_context(
                    path=scope.get("path"),
                    method=scope.get("method"),
                    client_ip=client[0] if client else None,
                    user_agent=headers.get("user-agent"),
                ),
            )
            if response_started:
                # Part of the response is already on the wire; nothing
                # consistent can be sent anymore.
                raise

            response = JSONResponse(
                status_code=500,
                content={"error": f"Internal server error: {exc}"},
            )
            await response(scope, receive, send)
