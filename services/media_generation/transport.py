"""
Media Transport contract.

Two interchangeable implementations satisfy it:
- RestTransport: direct calls to the Generative Language REST endpoints
- SdkTransport: the same calls made through the google-genai SDK

Nothing outside a transport knows which one is in use; the variant is
picked once, at construction, by create_transport().
"""

from abc import ABC, abstractmethod

from core.config import Config

from .models import GeneratedImage, GenerationRequest, MediaReference, Operation


class MediaTransport(ABC):
    """The four remote actions the pipeline needs."""

    provider: str = "google"

    @abstractmethod
    async def generate_image(self, prompt: str, model: str) -> GeneratedImage:
        """
        Generate a still image in one synchronous call.

        Raises:
            TransportError: On a non-success status
            EmptyResultError: If no candidate carries inline image data
        """

    @abstractmethod
    async def submit_video_job(self, request: GenerationRequest) -> Operation:
        """
        Submit an (optionally image-conditioned) video job.

        Raises:
            TransportError: On a non-success status
            MalformedResponseError: If the response has no operation name
        """

    @abstractmethod
    async def fetch_status(self, operation: Operation) -> Operation:
        """
        Fetch the current state of a submitted operation.

        Returns a new Operation; the argument is never modified.

        Raises:
            TransportError: On a non-success status
        """

    @abstractmethod
    async def fetch_bytes(self, reference: MediaReference) -> bytes:
        """
        Resolve a MediaReference into raw bytes.

        Raises:
            TransportError: If the remote fetch fails
            UnresolvedReferenceError: If the reference is not a known variant
        """

    async def aclose(self):
        """Release network resources held by the transport."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False


def create_transport(config: Config) -> MediaTransport:
    """Build the transport variant selected by config.transport."""
    if config.transport == "rest":
        from .rest_transport import RestTransport

        return RestTransport(
            api_key=config.api.google_api_key,
            base_url=config.api.api_base,
            timeout=config.api.request_timeout,
            temperature=config.models.image_temperature,
        )

    if config.transport == "sdk":
        from .sdk_transport import SdkTransport

        return SdkTransport(
            api_key=config.api.google_api_key,
            temperature=config.models.image_temperature,
        )

    raise ValueError(f"Unknown transport: {config.transport}")
