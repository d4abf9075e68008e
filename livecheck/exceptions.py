"""
Exceptions raised by the liveness core and its collaborators
"""
from typing import Optional


class InvalidSessionState(RuntimeError):
    """
    Raised when the session state machine is driven out of order.

    Examples: ingesting a frame with no active session, or starting a
    session while another one is still active.
    """


class ApiError(Exception):
    """Raised when the FlashBack API answers with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationRequired(Exception):
    """Raised when an upload is attempted without a stored token or phone number."""


class LivenessNotVerified(Exception):
    """Raised when a selfie upload is attempted for a session that did not pass."""
