"""
google-genai SDK transport.

Makes the same four calls as RestTransport through the provider SDK's async
client, and normalises SDK operation objects into our Operation so the
resolver sees the same camelCase payload either way.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from core.errors import EmptyResultError, TransportError, UnresolvedReferenceError

from .models import (
    DirectUri,
    FileId,
    GeneratedImage,
    GenerationRequest,
    InlineBytes,
    MediaReference,
    Operation,
)
from .transport import MediaTransport

logger = logging.getLogger(__name__)


class SdkTransport(MediaTransport):
    """Transport backed by genai.Client(...).aio."""

    provider = "sdk"

    def __init__(
        self,
        api_key: str,
        temperature: float = 0.6,
        client: Optional[genai.Client] = None,
    ):
        if client is None:
            if not api_key:
                raise ValueError("Google API key is required")
            client = genai.Client(api_key=api_key)

        self.temperature = temperature
        self._client = client

    async def _call(self, action: str, func: Callable[..., Awaitable[Any]], **kwargs) -> Any:
        """Invoke an SDK coroutine, mapping SDK and network errors to TransportError."""
        try:
            return await func(**kwargs)
        except genai_errors.APIError as e:
            raise TransportError(
                f"{action} failed",
                status=e.code,
                body=e.message,
                provider=self.provider,
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"{action} request failed: {type(e).__name__}: {e}",
                provider=self.provider,
            ) from e

    def _to_operation(self, sdk_operation: types.GenerateVideosOperation) -> Operation:
        payload: dict[str, Any] = {
            "name": sdk_operation.name,
            "done": sdk_operation.done,
            "error": sdk_operation.error,
            "metadata": sdk_operation.metadata,
        }
        if sdk_operation.response is not None:
            payload["response"] = sdk_operation.response.model_dump(
                mode="json", by_alias=True, exclude_none=True
            )
        return Operation.from_payload(payload, provider=self.provider)

    async def generate_image(self, prompt: str, model: str) -> GeneratedImage:
        logger.info(f"Image request (sdk): model={model}, prompt={prompt[:50]}...")
        response = await self._call(
            "Image generation",
            self._client.aio.models.generate_content,
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(temperature=self.temperature),
        )

        candidates = response.candidates or []
        if not candidates:
            raise EmptyResultError(
                "No candidates returned from image generation",
                provider=self.provider,
            )

        for candidate in candidates:
            content = candidate.content
            parts = (content.parts if content else None) or []
            for part in parts:
                inline = part.inline_data
                if inline and inline.data and inline.mime_type:
                    logger.info(f"Image generated: {inline.mime_type}, {len(inline.data)} bytes")
                    return GeneratedImage(data=inline.data, mime_type=inline.mime_type)

        raise EmptyResultError(provider=self.provider)

    async def submit_video_job(self, request: GenerationRequest) -> Operation:
        image = None
        if request.image is not None:
            image = types.Image(
                image_bytes=request.image.data,
                mime_type=request.image.mime_type,
            )

        logger.info(f"Video request (sdk): model={request.model}, prompt={request.prompt[:50]}...")
        sdk_operation = await self._call(
            "Video generation request",
            self._client.aio.models.generate_videos,
            model=request.model,
            prompt=request.prompt,
            image=image,
            config=types.GenerateVideosConfig(
                duration_seconds=request.output.duration_seconds,
                resolution=request.output.resolution,
                aspect_ratio=request.output.aspect_ratio,
            ),
        )
        operation = self._to_operation(sdk_operation)
        logger.info(f"Video operation submitted: {operation.name}")
        return operation

    async def fetch_status(self, operation: Operation) -> Operation:
        sdk_operation = await self._call(
            "Polling",
            self._client.aio.operations.get,
            operation=types.GenerateVideosOperation(name=operation.name),
        )
        return self._to_operation(sdk_operation)

    async def fetch_bytes(self, reference: MediaReference) -> bytes:
        if isinstance(reference, InlineBytes):
            return reference.data

        if isinstance(reference, DirectUri):
            target: Any = types.Video(uri=reference.uri, mime_type=reference.mime_type)
        elif isinstance(reference, FileId):
            target = reference.file_id
        else:
            raise UnresolvedReferenceError(
                f"Could not resolve video download reference for {type(reference).__name__}"
            )

        return await self._call(
            "Video download",
            self._client.aio.files.download,
            file=target,
        )
