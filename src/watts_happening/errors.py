"""Error types raised during a sync run.

Everything except a streams-endpoint ApiError is fatal and unwinds to the
command line entry point.
"""

from typing import Optional


class WattsHappeningError(Exception):
    """Base exception for sync errors."""

    pass


class ConfigError(WattsHappeningError):
    """Raised when a required credential is missing from the environment."""

    pass


class AuthError(WattsHappeningError):
    """Raised when the refresh-token exchange fails.

    Attributes:
        status: HTTP status of the token response, None for transport failures
        body: Raw response body, if any
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(message)


class ApiError(WattsHappeningError):
    """Raised when the Strava API answers with a non-success status.

    Attributes:
        status: HTTP status code, None when the request never got a response
        body: Raw response body, kept for diagnosing API-side problems
    """

    def __init__(self, status: Optional[int], body: str, message: Optional[str] = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message or f"API returned status {status}: {body}")


class DecodeError(ApiError):
    """Raised when a response body does not match the expected structure."""

    def __init__(self, status: Optional[int], body: str, reason: str) -> None:
        self.reason = reason
        super().__init__(status, body, f"Could not decode response (status {status}): {reason}")


class FilesystemError(WattsHappeningError):
    """Raised when a directory or file under the data directory cannot be written."""

    pass
