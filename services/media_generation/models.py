"""
Data model for media generation.

GenerationRequest and its parts are immutable inputs built by the pipeline.
Operation mirrors the remote long-running job; only transports create it.
MediaReference is the tagged variant the resolver produces, and MediaAsset
is the file the downloader leaves behind.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import MalformedResponseError

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def infer_image_mime_type(path: Union[str, Path]) -> str:
    """Map an image file extension to its MIME type."""
    return IMAGE_MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


# ============================================================
# Requests
# ============================================================


@dataclass(frozen=True)
class OutputConfig:
    """Video output settings sent with a job."""
    duration_seconds: int = 8
    resolution: str = "720p"
    aspect_ratio: str = "16:9"


@dataclass(frozen=True)
class ConditioningImage:
    """First-frame image a video job is conditioned on."""
    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class GenerationRequest:
    """Request for image-conditioned video generation."""
    prompt: str
    model: str
    output: OutputConfig = field(default_factory=OutputConfig)
    image: Optional[ConditioningImage] = None


@dataclass(frozen=True)
class GeneratedImage:
    """Image bytes returned by a synchronous image generation call."""
    data: bytes
    mime_type: str


# ============================================================
# Remote operation
# ============================================================


class Operation(BaseModel):
    """A remote asynchronous job, polled by name until done."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    done: bool = False
    response: Optional[dict[str, Any]] = None
    error: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = None

    @classmethod
    def from_payload(cls, payload: Any, provider: str = None) -> "Operation":
        """Build an Operation from a decoded operation payload.

        Raises:
            MalformedResponseError: If the payload has no job name.
        """
        if not isinstance(payload, dict) or not payload.get("name"):
            raise MalformedResponseError(
                "Unexpected video operation response; missing name",
                provider=provider,
            )
        data = {**payload, "done": bool(payload.get("done"))}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Unexpected video operation response: {e}",
                provider=provider,
            ) from e

    @property
    def failed(self) -> bool:
        return self.done and self.error is not None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return self.error.get("message") or str(self.error)


# ============================================================
# Resolved references and assets
# ============================================================


@dataclass(frozen=True)
class DirectUri:
    """Media downloadable from a URI."""
    uri: str
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class FileId:
    """Media held by the provider's file service (e.g. 'files/abc')."""
    file_id: str
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class InlineBytes:
    """Media already present in the payload."""
    data: bytes = field(repr=False)
    mime_type: Optional[str] = None


MediaReference = Union[DirectUri, FileId, InlineBytes]


@dataclass(frozen=True)
class MediaAsset:
    """A generated file that has been fully written to disk."""
    file_path: Path
    mime_type: str


# ============================================================
# Process boundary
# ============================================================


class PipelineResult(BaseModel):
    """Machine-readable outcome printed by the CLI."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["ok", "error"]
    file_path: Optional[str] = Field(default=None, alias="filePath")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    message: Optional[str] = None

    @classmethod
    def ok(cls, asset: MediaAsset) -> "PipelineResult":
        return cls(status="ok", file_path=str(asset.file_path), mime_type=asset.mime_type)

    @classmethod
    def failure(cls, message: str) -> "PipelineResult":
        return cls(status="error", message=message)

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
