"""Custom exceptions for the blog API."""


class BlogAPIException(Exception):
    """Base class for API exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code. The application renders every subclass as
    ``{"error": message}`` with that status.
    """
    status_code: int = 500

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)


class AuthenticationError(BlogAPIException):
    """Raised when no credential, a malformed one, or an invalid one is presented.

    Maps to HTTP 401 Unauthorized. The message never carries the verifier's
    own error detail.
    """
    status_code = 401

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class ForbiddenError(BlogAPIException):
    """Raised when a verified caller lacks a required privilege.

    Maps to HTTP 403 Forbidden.
    """
    status_code = 403

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)


class RateLimitExceededError(BlogAPIException):
    """Raised when a client has used up its requests for the current window.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429

    def __init__(
        self,
        retry_after: int | None = None,
        message: str = "Rate limit exceeded. Try again later.",
    ):
        self.retry_after = retry_after
        super().__init__(message)


class ValidationError(BlogAPIException):
    """Maps to HTTP 400 Bad Request."""
    status_code = 400


class NotFoundError(BlogAPIException):
    """Maps to HTTP 404 Not Found."""
    status_code = 404


class ConflictError(BlogAPIException):
    """Maps to HTTP 409 Conflict."""
    status_code = 409


class VerificationError(Exception):
    """Raised by a verifier when a credential cannot be verified.

    Internal only: the auth dependencies log it and turn it into an
    AuthenticationError.
    """

    def __init__(self, reason: str = "verification failed"):
        self.reason = reason
        super().__init__(reason)
