#!/usr/bin/env python3
"""
Asana REST Client Exception Classes

Custom exception hierarchy for validation, transport, HTTP status,
decoding and lookup failures.
"""

from typing import Any, List, Optional


class AsanaClientError(Exception):
    """Base exception for Asana client errors"""

    # Set by with_api_error_handling to the label of the failed operation
    operation: Optional[str] = None


class AsanaValidationError(AsanaClientError, ValueError):
    """Raised before any network call when a required argument is missing"""

    pass


class AsanaTransportError(AsanaClientError):
    """Raised when the request never produced an HTTP response"""

    pass


class AsanaHTTPError(AsanaClientError):
    """Raised when the API answers with a non-2xx status"""

    def __init__(self, status_code: int, message: str, body: bytes = b""):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.body = body


class AsanaBadRequestError(AsanaHTTPError):
    """Raised when request parameters are rejected (400)"""

    pass


class AsanaAuthenticationError(AsanaHTTPError):
    """Raised when authentication or authorization fails (401, 403)"""

    pass


class AsanaNotFoundError(AsanaHTTPError):
    """Raised when the API reports a missing resource (404)"""

    pass


class AsanaRateLimitError(AsanaHTTPError):
    """Raised when rate limit is exceeded (429)"""

    def __init__(
        self,
        status_code: int,
        message: str,
        body: bytes = b"",
        retry_after: Optional[int] = None,
    ):
        super().__init__(status_code, message, body)
        self.retry_after = retry_after


class AsanaServerError(AsanaHTTPError):
    """Raised when server returns 5xx error"""

    pass


class AsanaDecodeError(AsanaClientError):
    """
    Raised when a response body is not the JSON shape we expect.

    Items decoded before the failure are kept in partial_items so a
    paginated caller can still see them next to the error.
    """

    def __init__(self, message: str, partial_items: Optional[List[Any]] = None):
        super().__init__(message)
        self.partial_items = list(partial_items or [])


class ResourceNotFoundError(AsanaClientError):
    """Raised when a well-formed single-item response carries no data"""

    def __init__(self, resource: str, gid: str = ""):
        if gid:
            super().__init__(f"no {resource} found for ID {gid}")
        else:
            super().__init__(f"no {resource} was received")
        self.resource = resource
        self.gid = gid
