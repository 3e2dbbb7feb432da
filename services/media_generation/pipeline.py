"""
Media Pipeline - image generation, then image-conditioned video.

Flow:
    generate_image -> MediaAsset(image)
    submit_video_job(image) -> Operation -> poll -> resolve -> download
        -> MediaAsset(video)

The first failure from any stage propagates. Nothing is retried, and an
image produced before a failed video stage stays on disk so the video stage
can be rerun on its own.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Union

import aiofiles

from core.config import Config

from .downloader import ArtifactDownloader
from .models import (
    ConditioningImage,
    GenerationRequest,
    InlineBytes,
    MediaAsset,
    Operation,
    OutputConfig,
    infer_image_mime_type,
)
from .poller import OperationPoller
from .resolver import resolve
from .transport import MediaTransport, create_transport

logger = logging.getLogger(__name__)


async def load_conditioning_image(
    path: Union[str, Path],
    mime_type: Optional[str] = None,
) -> ConditioningImage:
    """Read an image file for use as a video's first frame.

    The MIME type is taken from mime_type when known, else from the extension.
    """
    async with aiofiles.open(path, "rb") as f:
        data = await f.read()
    return ConditioningImage(data=data, mime_type=mime_type or infer_image_mime_type(path))


class MediaPipeline:
    """
    Orchestrates one generation run against a single transport.

    Usage:
        async with MediaPipeline(config) as pipeline:
            image = await pipeline.generate_image("A wooden ball on a ramp", "out/image.png")
            video = await pipeline.generate_video("Roll the ball", image.file_path, "out/video.mp4")
    """

    def __init__(
        self,
        config: Config,
        transport: Optional[MediaTransport] = None,
        poller: Optional[OperationPoller] = None,
        downloader: Optional[ArtifactDownloader] = None,
        on_progress: Optional[Callable[[str, str], None]] = None,
    ):
        """
        Args:
            config: Explicit configuration
            transport: Transport override (built from config.transport if None)
            poller: Poller override (built from config.polling if None)
            downloader: Downloader override
            on_progress: Callback for progress updates (stage, message)
        """
        self.config = config
        self.on_progress = on_progress

        self.transport = transport or create_transport(config)
        self._owns_transport = transport is None

        self.poller = poller or OperationPoller(
            self.transport.fetch_status,
            poll_interval=config.polling.poll_interval,
            timeout=config.polling.timeout,
            on_poll=self._on_poll,
        )
        self.downloader = downloader or ArtifactDownloader()

    async def aclose(self):
        """Close the transport if this pipeline created it."""
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    def _emit_progress(self, stage: str, message: str):
        """Emit progress update via callback."""
        if self.on_progress:
            try:
                self.on_progress(stage, message)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def _on_poll(self, attempt: int, operation: Operation):
        state = "done" if operation.done else "running"
        self._emit_progress("poll", f"Poll {attempt}: {operation.name} {state}")

    def build_video_request(
        self,
        prompt: str,
        image: Optional[ConditioningImage] = None,
    ) -> GenerationRequest:
        """Combine caller input with configured model and output defaults."""
        defaults = self.config.video
        return GenerationRequest(
            prompt=prompt,
            model=self.config.models.video_model,
            output=OutputConfig(
                duration_seconds=defaults.duration_seconds,
                resolution=defaults.resolution,
                aspect_ratio=defaults.aspect_ratio,
            ),
            image=image,
        )

    async def generate_image(
        self,
        prompt: str,
        destination: Union[str, Path],
    ) -> MediaAsset:
        """Generate a still image and write it to destination."""
        self._emit_progress("image", "Submitting image request")
        image = await self.transport.generate_image(prompt, self.config.models.image_model)

        asset = await self.downloader.download(
            InlineBytes(image.data, mime_type=image.mime_type),
            self.transport.fetch_bytes,
            destination,
        )
        self._emit_progress("image", f"Image saved to {asset.file_path}")
        return asset

    async def generate_video(
        self,
        prompt: str,
        image_path: Optional[Union[str, Path]],
        destination: Union[str, Path],
        cancel_event: Optional[asyncio.Event] = None,
        image_mime_type: Optional[str] = None,
    ) -> MediaAsset:
        """
        Generate a video conditioned on image_path and write it to destination.

        Args:
            prompt: Animation prompt
            image_path: First-frame image (None for text-only video)
            destination: Target video path
            cancel_event: Optional event that stops polling early
            image_mime_type: MIME type of the image (guessed from its extension if None)

        Returns:
            MediaAsset for the downloaded video
        """
        image = None
        if image_path:
            image = await load_conditioning_image(image_path, mime_type=image_mime_type)
        request = self.build_video_request(prompt, image)

        self._emit_progress("video", "Submitting video job")
        operation = await self.transport.submit_video_job(request)
        self._emit_progress("video", f"Job queued: {operation.name}")

        done = await self.poller.poll_until_done(operation, cancel_event=cancel_event)
        reference = resolve(done)
        self._emit_progress("download", f"Downloading {type(reference).__name__}")

        asset = await self.downloader.download(reference, self.transport.fetch_bytes, destination)
        self._emit_progress("video", f"Video saved to {asset.file_path}")
        return asset

    async def run(
        self,
        image_prompt: str,
        animation_prompt: str,
        image_destination: Union[str, Path],
        video_destination: Union[str, Path],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> MediaAsset:
        """Generate an image, then animate it. Returns the video asset."""
        image = await self.generate_image(image_prompt, image_destination)
        logger.info(f"Image generated at: {image.file_path}")

        video = await self.generate_video(
            animation_prompt,
            image.file_path,
            video_destination,
            cancel_event=cancel_event,
            image_mime_type=image.mime_type,
        )
        logger.info(f"Video generated at: {video.file_path}")
        return video
