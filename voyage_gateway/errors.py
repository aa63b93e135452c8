"""
Exception hierarchy for the Voyage gateway.
"""

from typing import Iterable, Optional


class VoyageError(Exception):
    """Base class for every error raised by the gateway."""


class MissingApiKey(VoyageError):
    """No API key was configured."""

    def __init__(self):
        super().__init__("api_key must be provided or VOYAGE_API_KEY environment variable must be set")


class RequestValidationError(VoyageError, ValueError):
    """A request was rejected before any network activity."""


class TransportError(VoyageError):
    """A call to the remote service failed."""

    @property
    def is_retryable(self) -> bool:
        return False


class Unauthorized(TransportError):
    """HTTP 401: the credential was rejected."""

    def __init__(self):
        super().__init__("Unauthorized: invalid API key")


class Forbidden(TransportError):
    """HTTP 403."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Forbidden: {detail}")


class ApiError(TransportError):
    """Any other non-success HTTP status. Carries the raw status and body."""

    def __init__(self, status_code: int, body: str, retry_on: Optional[Iterable[int]] = None):
        self.status_code = status_code
        self.body = body
        self._retry_on = frozenset(retry_on) if retry_on is not None else frozenset((429, 500, 502, 503, 504))
        super().__init__(f"API error {status_code}: {body}")

    @property
    def is_retryable(self) -> bool:
        return self.status_code in self._retry_on


class MalformedResponse(TransportError):
    """A success response whose body does not match the expected schema."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed response: {detail}")


class ConnectionFailed(TransportError):
    """No HTTP response was received (DNS, connect, read timeout)."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Connection failed: {detail}")

    @property
    def is_retryable(self) -> bool:
        return True


class TaskCancelled(VoyageError):
    """A background task ended without producing a value."""

    def __init__(self, operation: str = "task"):
        self.operation = operation
        super().__init__(f"{operation} canceled")


class NoMatchingDocuments(VoyageError):
    """The service returned an empty ranking."""

    def __init__(self):
        super().__init__("No matching documents found")
