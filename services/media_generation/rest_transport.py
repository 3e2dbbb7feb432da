"""
Direct REST transport for the Generative Language API.

Endpoints used:
- POST models/{model}:generateContent      (image, synchronous)
- POST models/{model}:predictLongRunning   (video job submission)
- GET  {operation name}                     (status)
- GET  files/{id}:download?alt=media        (file download)
"""

import base64
import binascii
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from core.errors import (
    EmptyResultError,
    MalformedResponseError,
    TransportError,
    UnresolvedReferenceError,
)

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

GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


def _field(obj: dict, camel: str, snake: str) -> Any:
    """Read a field that may be spelled camelCase or snake_case."""
    value = obj.get(camel)
    return obj.get(snake) if value is None else value


class RestTransport(MediaTransport):
    """
    Transport that calls the REST endpoints with httpx.

    Usage:
        async with RestTransport(api_key) as transport:
            image = await transport.generate_image("A wooden ball", "gemini-2.5-flash-image")
    """

    provider = "rest"

    def __init__(
        self,
        api_key: str,
        base_url: str = GOOGLE_API_BASE,
        timeout: float = 60.0,
        temperature: float = 0.6,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Google API key, sent as x-goog-api-key
            base_url: API root including the version segment
            timeout: Per-request timeout in seconds
            temperature: Sampling temperature for image generation
            http_client: Optional pre-built client (not closed by aclose)
        """
        if not api_key:
            raise ValueError("Google API key is required")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature

        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def aclose(self):
        """Close the HTTP client if this transport created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        method: str,
        url: str,
        action: str,
        authenticated: bool = True,
        **kwargs,
    ) -> httpx.Response:
        """Send one request; any non-2xx status becomes a TransportError."""
        client = await self._get_client()
        headers = dict(kwargs.pop("headers", None) or {})
        if authenticated:
            headers["x-goog-api-key"] = self.api_key

        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"{action} timed out: {type(e).__name__}",
                provider=self.provider,
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportError(
                f"{action} request failed: {type(e).__name__}: {e}",
                provider=self.provider,
            ) from e

        if not response.is_success:
            raise TransportError(
                f"{action} failed",
                status=response.status_code,
                body=response.text,
                provider=self.provider,
            )
        return response

    def _decode_json(self, response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{action} returned invalid JSON: {e}",
                provider=self.provider,
            ) from e

    # --------------------------------------------------------
    # Image
    # --------------------------------------------------------

    async def generate_image(self, prompt: str, model: str) -> GeneratedImage:
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                },
            ],
            "generationConfig": {
                "temperature": self.temperature,
            },
        }

        logger.info(f"Image request: model={model}, prompt={prompt[:50]}...")
        response = await self._request(
            "POST",
            f"{self.base_url}/models/{quote(model, safe='')}:generateContent",
            "Image generation",
            json=body,
        )
        data = self._decode_json(response, "Image generation")

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Image generation returned {type(data).__name__}, expected an object",
                provider=self.provider,
            )

        candidates = data.get("candidates") or []
        if not candidates:
            raise EmptyResultError(
                "No candidates returned from image generation",
                provider=self.provider,
            )

        # Every candidate is scanned; the first non-empty inline image wins
        for candidate in candidates:
            parts = (candidate.get("content") or {}).get("parts") or []
            for part in parts:
                inline = _field(part, "inlineData", "inline_data")
                if not inline:
                    continue
                mime_type = _field(inline, "mimeType", "mime_type")
                encoded = inline.get("data")
                if mime_type and encoded:
                    try:
                        image_bytes = base64.b64decode(encoded)
                    except (binascii.Error, ValueError) as e:
                        raise MalformedResponseError(
                            f"Inline image data is not valid base64: {e}",
                            provider=self.provider,
                        ) from e
                    logger.info(f"Image generated: {mime_type}, {len(image_bytes)} bytes")
                    return GeneratedImage(data=image_bytes, mime_type=mime_type)

        raise EmptyResultError(provider=self.provider)

    # --------------------------------------------------------
    # Video operation
    # --------------------------------------------------------

    async def submit_video_job(self, request: GenerationRequest) -> Operation:
        instance: dict[str, Any] = {"prompt": request.prompt}
        if request.image is not None:
            instance["image"] = {
                "bytesBase64Encoded": base64.b64encode(request.image.data).decode("ascii"),
                "mimeType": request.image.mime_type,
            }

        body = {
            "instances": [instance],
            "parameters": {
                "durationSeconds": request.output.duration_seconds,
                "resolution": request.output.resolution,
                "aspectRatio": request.output.aspect_ratio,
            },
        }

        logger.info(f"Video request: model={request.model}, prompt={request.prompt[:50]}...")
        response = await self._request(
            "POST",
            f"{self.base_url}/models/{quote(request.model, safe='')}:predictLongRunning",
            "Video generation request",
            json=body,
        )
        operation = Operation.from_payload(
            self._decode_json(response, "Video generation request"),
            provider=self.provider,
        )
        logger.info(f"Video operation submitted: {operation.name}")
        return operation

    async def fetch_status(self, operation: Operation) -> Operation:
        name = operation.name
        path = name if "/" in name else f"operations/{name}"

        response = await self._request("GET", f"{self.base_url}/{path}", "Polling")
        data = self._decode_json(response, "Polling")

        # Status payloads normally repeat the name; keep the submitted one otherwise
        if isinstance(data, dict) and not data.get("name"):
            data = {**data, "name": name}
        return Operation.from_payload(data, provider=self.provider)

    # --------------------------------------------------------
    # Download
    # --------------------------------------------------------

    async def fetch_bytes(self, reference: MediaReference) -> bytes:
        if isinstance(reference, InlineBytes):
            return reference.data

        if isinstance(reference, DirectUri):
            # Only send the key to the API host itself
            try:
                same_host = httpx.URL(reference.uri).host == httpx.URL(self.base_url).host
            except httpx.InvalidURL as e:
                raise TransportError(
                    f"Video download failed: invalid URI {reference.uri!r}: {e}",
                    provider=self.provider,
                ) from e
            response = await self._request(
                "GET",
                reference.uri,
                "Video download",
                authenticated=same_host,
                follow_redirects=True,
            )
            return response.content

        if isinstance(reference, FileId):
            file_id = reference.file_id
            if file_id.startswith("files/"):
                file_id = file_id[len("files/"):]
            response = await self._request(
                "GET",
                f"{self.base_url}/files/{quote(file_id, safe='')}:download",
                "Video download",
                params={"alt": "media"},
                follow_redirects=True,
            )
            return response.content

        raise UnresolvedReferenceError(
            f"Could not resolve video download URL for {type(reference).__name__}"
        )
