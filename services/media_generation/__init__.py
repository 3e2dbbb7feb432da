"""
Media Generation Service

Drives a generation run from request to file on disk:
- transport: one contract, REST (httpx) and SDK (google-genai) variants
- poller: fixed-cadence polling of a long-running operation under a deadline
- resolver: normalizes finished-operation payloads into one MediaReference
- downloader: atomic write of fetched bytes
- pipeline: image -> image-conditioned video orchestration
"""

from .downloader import ArtifactDownloader
from .models import (
    ConditioningImage,
    DirectUri,
    FileId,
    GeneratedImage,
    GenerationRequest,
    InlineBytes,
    MediaAsset,
    MediaReference,
    Operation,
    OutputConfig,
    PipelineResult,
)
from .pipeline import MediaPipeline
from .poller import OperationPoller, PollState
from .resolver import resolve
from .transport import MediaTransport, create_transport

__all__ = [
    "ArtifactDownloader",
    "ConditioningImage",
    "DirectUri",
    "FileId",
    "GeneratedImage",
    "GenerationRequest",
    "InlineBytes",
    "MediaAsset",
    "MediaPipeline",
    "MediaReference",
    "MediaTransport",
    "Operation",
    "OperationPoller",
    "OutputConfig",
    "PipelineResult",
    "PollState",
    "create_transport",
    "resolve",
]
