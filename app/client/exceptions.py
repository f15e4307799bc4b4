"""Failure taxonomy surfaced by the client session layer.

Client-side validation failures are plain pydantic ``ValidationError``s raised
by ``app.client.forms`` before any request is made; everything here comes
from talking to the API.
"""
from typing import Any, Dict, Optional

TRANSPORT_FAILURE_MESSAGE = "Unable to reach the server. Please check your connection and try again."


class AuthClientError(Exception):
    """Base class for all remote auth failures."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class TransportError(AuthClientError):
    """No response was received; safe to retry."""

    def __init__(self, message: str = TRANSPORT_FAILURE_MESSAGE, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, None, details)


class RemoteRejectionError(AuthClientError):
    """The API answered and refused; ``message`` is the server's own wording."""


class OtpRejectedError(RemoteRejectionError):
    """Wrong or expired one-time code."""


class NotAuthenticatedError(RemoteRejectionError):
    """The bearer token is missing, expired or revoked."""
