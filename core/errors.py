"""
Error taxonomy for media generation.

Every component raises one of these and lets it propagate unchanged up to
the caller. Nothing here retries.

- TransportError: remote call returned a non-success status
- MalformedResponseError: call succeeded but a required field is missing
- EmptyResultError / NoMediaFoundError: valid payload, nothing in it
- UnresolvedReferenceError: payload shape not recognized
- PollTimeoutError / PollCancelledError: polling stopped before a terminal state
- OperationFailedError: the remote job finished with an error
"""

from pathlib import Path
from typing import Any, Optional


class MediaGenerationError(Exception):
    """Base class for all media generation failures."""

    def __init__(self, message: str, error_code: str = None, provider: str = None):
        self.error_code = error_code
        self.provider = provider
        # Set by the downloader when the failure happened while producing a file
        self.destination: Optional[Path] = None
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.destination is not None:
            return f"{message} (destination: {self.destination})"
        return message


class TransportError(MediaGenerationError):
    """A remote call returned a non-success status (or never got one)."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
        provider: str = None,
    ):
        self.status = status
        self.body = body
        code = f"HTTP_{status}" if status is not None else "REQUEST_ERROR"
        detail = f"{message} ({status}): {body}" if status is not None else message
        super().__init__(detail, error_code=code, provider=provider)


class MalformedResponseError(MediaGenerationError):
    """A remote call succeeded but its payload lacks a required field."""

    def __init__(self, message: str, provider: str = None):
        super().__init__(message, error_code="MALFORMED_RESPONSE", provider=provider)


class EmptyResultError(MediaGenerationError):
    """Image generation returned no usable image payload."""

    def __init__(self, message: str = "No inline image found in response", provider: str = None):
        super().__init__(message, error_code="EMPTY_RESULT", provider=provider)


class NoMediaFoundError(MediaGenerationError):
    """A finished operation carries an empty list of generated media."""

    def __init__(self, message: str = "Operation completed but no videos found in response"):
        super().__init__(message, error_code="NO_MEDIA")


class UnresolvedReferenceError(MediaGenerationError):
    """A media entry (or reference) matches none of the known shapes."""

    def __init__(self, message: str = "Could not resolve media download reference"):
        super().__init__(message, error_code="UNRESOLVED_REFERENCE")


class PollTimeoutError(MediaGenerationError):
    """The operation was still running when the polling deadline passed."""

    def __init__(self, elapsed: float, operation_name: str):
        self.elapsed = elapsed
        self.operation_name = operation_name
        super().__init__(
            f"Timed out waiting for operation {operation_name} to complete "
            f"after {elapsed:.1f}s",
            error_code="POLL_TIMEOUT",
        )


class PollCancelledError(MediaGenerationError):
    """Polling was interrupted by the caller before a terminal state."""

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        super().__init__(
            f"Polling cancelled for operation {operation_name}",
            error_code="POLL_CANCELLED",
        )


class OperationFailedError(MediaGenerationError):
    """The remote job reached a terminal state carrying an error."""

    def __init__(self, operation_name: str, error: dict[str, Any]):
        self.operation_name = operation_name
        self.error = error
        reason = error.get("message") or "unknown error"
        super().__init__(
            f"Operation {operation_name} failed: {reason}",
            error_code=f"OPERATION_{error.get('code', 'FAILED')}",
        )
