"""
Error taxonomy.

Every failure that crosses a service boundary is a 'ChatRelayError' subclass.
The class carries the HTTP status the request surface answers with, so route
handlers never translate errors themselves: a single FastAPI exception handler
reads 'status_code' and returns '{"error": message}'.
"""


class ChatRelayError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ChatRelayError):
    """A chat, message or user does not exist."""

    status_code = 404


class PermissionDeniedError(ChatRelayError):
    """The requester's role does not allow the operation."""

    status_code = 403


class InvalidArgumentError(ChatRelayError):
    """Missing or malformed input, or a request that conflicts with current state."""

    status_code = 400


class AuthenticationError(ChatRelayError):
    """Credentials or identity tokens were rejected by the identity provider."""

    status_code = 401


class UpstreamError(ChatRelayError):
    """The tree store or the identity provider failed."""

    status_code = 500
