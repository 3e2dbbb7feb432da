"""
animated-image Core Components

Provides foundational infrastructure shared by the generation services:
- Explicit configuration (no component reads the environment itself)
- Error taxonomy for transport, polling and result resolution
"""

from .config import Config
from .errors import (
    EmptyResultError,
    MalformedResponseError,
    MediaGenerationError,
    NoMediaFoundError,
    OperationFailedError,
    PollCancelledError,
    PollTimeoutError,
    TransportError,
    UnresolvedReferenceError,
)

__all__ = [
    "Config",
    "MediaGenerationError",
    "TransportError",
    "MalformedResponseError",
    "EmptyResultError",
    "NoMediaFoundError",
    "UnresolvedReferenceError",
    "PollTimeoutError",
    "PollCancelledError",
    "OperationFailedError",
]
