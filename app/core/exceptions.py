"""Error taxonomy for the auth flow; each error carries the HTTP status it maps to."""


class AuthServiceError(Exception):
    """Base error raised by the auth flow. message is safe to show to clients."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AuthServiceError):
    """Missing, blank or malformed input."""

    status_code = 400


class ConflictError(AuthServiceError):
    """Username or email already taken."""

    status_code = 400


class NotFoundError(AuthServiceError):
    """Login identifier does not resolve to a user."""

    status_code = 404


class AuthenticationError(AuthServiceError):
    """Wrong password, or a missing, invalid or expired access token."""

    status_code = 401


class UnexpectedError(AuthServiceError):
    """Store or signing failure. The message never includes internal details."""

    status_code = 500
