"""
Domain errors for authentication, access keys and storage.

Each error carries the HTTP status and the client-facing message it is
rendered with by the handlers registered in `app.main`. Messages stay
generic where a precise one would tell a guesser which keys exist.
"""
from fastapi import status


class GalleryError(Exception):
    """Base class for errors rendered as `{success: false, message}`."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredential(GalleryError):
    """Wrong admin password or unknown access key."""
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class InvalidKey(InvalidCredential):
    message = "Invalid access key"


class KeyExpired(InvalidKey):
    """Shares the unknown-key message so expiry is not distinguishable."""


class KeyInUseElsewhere(GalleryError):
    status_code = status.HTTP_403_FORBIDDEN
    message = (
        "This access key is already active on another device. "
        "Ask an administrator to reset it to switch devices."
    )


class Unauthorized(GalleryError):
    """Missing, unknown or expired bearer token."""
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized: valid token required"


class Forbidden(GalleryError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Forbidden: admin access required"


class BadRequest(GalleryError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class NotFound(GalleryError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class StoreUnavailable(GalleryError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Storage temporarily unavailable, please retry"


class IssuanceFailed(GalleryError):
    message = "Could not persist the login session"


class RateLimited(GalleryError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Too many requests, please try again later"

    def __init__(self, message: str = None, limit: int = 0, reset_at: float = 0.0):
        super().__init__(message)
        self.limit = limit
        self.reset_at = reset_at
