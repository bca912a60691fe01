"""
Uniform error shapes raised by the HTTP client.

Screens only ever see these; raw httpx exceptions never leave ``api.client``.
"""

from typing import Dict, List, Optional

GENERIC_MESSAGE = "An error occurred"


class ApiError(Exception):
    """Non-2xx response from the API, or an unusable response body."""

    def __init__(
        self,
        message: str = GENERIC_MESSAGE,
        status_code: Optional[int] = None,
        errors: Optional[Dict[str, List[str]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}

    def __str__(self) -> str:
        return self.message


class NetworkError(ApiError):
    """The request never produced a response (connection failure, timeout)."""


class AuthorizationError(ApiError):
    """401 from the API. The session is torn down before this is raised."""


class NotFoundError(ApiError):
    """404 from the API. Views render an empty state for it."""
