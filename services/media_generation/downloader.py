"""
Artifact Downloader - fetch a MediaReference and persist it to disk.

The payload is buffered in full, written to a hidden sibling file and then
moved onto the destination, so the destination never exists half-written.
"""

import contextlib
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Union

import aiofiles
import aiofiles.os

from core.errors import MediaGenerationError

from .models import DEFAULT_MIME_TYPE, MediaAsset, MediaReference

logger = logging.getLogger(__name__)

FetchBytes = Callable[[MediaReference], Awaitable[bytes]]


def guess_mime_type(reference: MediaReference, destination: Path) -> str:
    """Reference MIME type, else the destination suffix, else octet-stream."""
    if reference.mime_type:
        return reference.mime_type
    guessed, _ = mimetypes.guess_type(destination.name)
    return guessed or DEFAULT_MIME_TYPE


class ArtifactDownloader:
    """Writes fetched media to caller-chosen paths. Holds no cache."""

    async def download(
        self,
        reference: MediaReference,
        fetch_bytes: FetchBytes,
        destination: Union[str, Path],
    ) -> MediaAsset:
        """
        Fetch the referenced bytes and write them to destination.

        Args:
            reference: Resolved media reference
            fetch_bytes: Coroutine turning a reference into bytes
            destination: Target file path; missing parent directories are created

        Returns:
            MediaAsset for the fully written file

        Raises:
            MediaGenerationError: Whatever fetch_bytes raised, with .destination set
            OSError: If the file cannot be written
        """
        destination = Path(destination)

        try:
            data = await fetch_bytes(reference)
        except MediaGenerationError as e:
            e.destination = destination
            raise

        await aiofiles.os.makedirs(destination.parent, exist_ok=True)
        await self._write_atomic(destination, data)

        asset = MediaAsset(file_path=destination, mime_type=guess_mime_type(reference, destination))
        logger.info(f"Saved {asset.mime_type} to {destination} ({len(data) / 1024 / 1024:.1f} MB)")
        return asset

    async def _write_atomic(self, destination: Path, data: bytes):
        partial = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.part")
        try:
            async with aiofiles.open(partial, "wb") as f:
                await f.write(data)
                await f.flush()
            await aiofiles.os.replace(partial, destination)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                await aiofiles.os.remove(partial)
            raise
