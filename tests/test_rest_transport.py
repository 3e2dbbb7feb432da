"""
REST Transport Tests

Requests are served by httpx.MockTransport; nothing leaves the process.

Run with:
    python -m pytest tests/test_rest_transport.py -v
"""

import base64
import json
import os
import sys

import httpx
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import (
    EmptyResultError,
    MalformedResponseError,
    TransportError,
    UnresolvedReferenceError,
)
from services.media_generation.models import (
    ConditioningImage,
    DirectUri,
    FileId,
    GeneratedImage,
    GenerationRequest,
    InlineBytes,
    Operation,
    OutputConfig,
)
from services.media_generation.rest_transport import RestTransport

API_KEY = "test-key"


def make_transport(handler, requests=None):
    """Build a RestTransport whose HTTP client is served by handler."""

    def recording_handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return RestTransport(API_KEY, http_client=client)


def image_part(data: bytes, mime_type: str = "image/png") -> dict:
    return {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(data).decode()}}


class TestConstruction:
    """Test transport construction."""

    def test_requires_api_key(self):
        """Test an empty key is rejected up front."""
        with pytest.raises(ValueError):
            RestTransport("")

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        """Test aclose leaves a caller-provided client open."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport = RestTransport(API_KEY, http_client=client)

        await transport.aclose()

        assert not client.is_closed
        await client.aclose()


class TestGenerateImage:
    """Test synchronous image generation."""

    @pytest.mark.asyncio
    async def test_returns_first_inline_image_across_candidates(self):
        """Test every candidate is scanned, skipping text-only parts."""
        requests = []
        payload = {
            "candidates": [
                {"content": {"parts": [{"text": "Here is your image"}]}},
                {"content": {"parts": [{"text": "again"}, image_part(b"\x89PNG-second")]}},
                {"content": {"parts": [image_part(b"\x89PNG-third")]}},
            ]
        }
        transport = make_transport(lambda r: httpx.Response(200, json=payload), requests)

        image = await transport.generate_image("A wooden ball", "gemini-2.5-flash-image")

        assert image.data == b"\x89PNG-second"
        assert image.mime_type == "image/png"

        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1beta/models/gemini-2.5-flash-image:generateContent"
        assert request.headers["x-goog-api-key"] == API_KEY
        body = json.loads(request.content)
        assert body["contents"][0]["parts"][0]["text"] == "A wooden ball"
        assert body["generationConfig"]["temperature"] == 0.6

    @pytest.mark.asyncio
    async def test_accepts_snake_case_inline_data(self):
        """Test inline_data/mime_type spellings are accepted."""
        part = {"inline_data": {"mime_type": "image/jpeg", "data": base64.b64encode(b"jpg").decode()}}
        payload = {"candidates": [{"content": {"parts": [part]}}]}
        transport = make_transport(lambda r: httpx.Response(200, json=payload))

        image = await transport.generate_image("prompt", "model")

        assert image == GeneratedImage(data=b"jpg", mime_type="image/jpeg")

    @pytest.mark.asyncio
    async def test_no_inline_image(self):
        """Test text-only candidates raise EmptyResultError."""
        payload = {"candidates": [{"content": {"parts": [{"text": "sorry"}]}}]}
        transport = make_transport(lambda r: httpx.Response(200, json=payload))

        with pytest.raises(EmptyResultError, match="No inline image"):
            await transport.generate_image("prompt", "model")

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        """Test an empty candidate list raises EmptyResultError."""
        transport = make_transport(lambda r: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(EmptyResultError):
            await transport.generate_image("prompt", "model")

    @pytest.mark.asyncio
    async def test_http_error_carries_status_and_body(self):
        """Test a non-2xx response raises TransportError with details."""
        transport = make_transport(lambda r: httpx.Response(429, text="quota exceeded"))

        with pytest.raises(TransportError) as exc_info:
            await transport.generate_image("prompt", "model")

        assert exc_info.value.status == 429
        assert exc_info.value.body == "quota exceeded"
        assert exc_info.value.error_code == "HTTP_429"
        assert "quota exceeded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test an unparseable 200 response is malformed."""
        transport = make_transport(lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(MalformedResponseError):
            await transport.generate_image("prompt", "model")

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        """Test a JSON array body is malformed rather than an AttributeError."""
        transport = make_transport(lambda r: httpx.Response(200, json=[{"candidates": []}]))

        with pytest.raises(MalformedResponseError, match="expected an object"):
            await transport.generate_image("prompt", "model")


class TestVideoOperation:
    """Test submission and status polling."""

    @pytest.mark.asyncio
    async def test_submit_sends_image_and_parameters(self):
        """Test the predictLongRunning body carries prompt, image and output settings."""
        requests = []
        transport = make_transport(
            lambda r: httpx.Response(200, json={"name": "models/veo/operations/op-1"}),
            requests,
        )
        request = GenerationRequest(
            prompt="spin",
            model="veo-3.1-generate-preview",
            output=OutputConfig(duration_seconds=6, resolution="1080p", aspect_ratio="9:16"),
            image=ConditioningImage(data=b"\x89PNG", mime_type="image/png"),
        )

        operation = await transport.submit_video_job(request)

        assert operation == Operation(name="models/veo/operations/op-1")
        sent = requests[0]
        assert sent.url.path == "/v1beta/models/veo-3.1-generate-preview:predictLongRunning"
        body = json.loads(sent.content)
        assert body["instances"][0]["prompt"] == "spin"
        assert base64.b64decode(body["instances"][0]["image"]["bytesBase64Encoded"]) == b"\x89PNG"
        assert body["instances"][0]["image"]["mimeType"] == "image/png"
        assert body["parameters"] == {"durationSeconds": 6, "resolution": "1080p", "aspectRatio": "9:16"}

    @pytest.mark.asyncio
    async def test_submit_text_only(self):
        """Test no image field is sent without a conditioning image."""
        requests = []
        transport = make_transport(lambda r: httpx.Response(200, json={"name": "op-1"}), requests)

        await transport.submit_video_job(GenerationRequest(prompt="waves", model="veo"))

        assert "image" not in json.loads(requests[0].content)["instances"][0]

    @pytest.mark.asyncio
    async def test_submit_without_name(self):
        """Test a submission response lacking a name is malformed."""
        transport = make_transport(lambda r: httpx.Response(200, json={"done": False}))

        with pytest.raises(MalformedResponseError, match="missing name"):
            await transport.submit_video_job(GenerationRequest(prompt="p", model="veo"))

    @pytest.mark.asyncio
    async def test_fetch_status_full_name(self):
        """Test a resource name is appended to the API root."""
        requests = []
        payload = {
            "name": "models/veo/operations/op-1",
            "done": True,
            "response": {"generateVideoResponse": {"generatedSamples": [{"video": {"uri": "https://u"}}]}},
        }
        transport = make_transport(lambda r: httpx.Response(200, json=payload), requests)
        submitted = Operation(name="models/veo/operations/op-1")

        current = await transport.fetch_status(submitted)

        assert requests[0].method == "GET"
        assert requests[0].url.path == "/v1beta/models/veo/operations/op-1"
        assert current.done
        assert current.response == payload["response"]
        assert submitted.done is False

    @pytest.mark.asyncio
    async def test_fetch_status_bare_name(self):
        """Test a bare id is looked up under operations/ and keeps its name."""
        requests = []
        transport = make_transport(lambda r: httpx.Response(200, json={"done": False}), requests)

        current = await transport.fetch_status(Operation(name="op-1"))

        assert requests[0].url.path == "/v1beta/operations/op-1"
        assert current == Operation(name="op-1", done=False)

    @pytest.mark.asyncio
    async def test_fetch_status_network_error(self):
        """Test connection failures become TransportError without a status."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError) as exc_info:
            await transport.fetch_status(Operation(name="op-1"))

        assert exc_info.value.status is None
        assert exc_info.value.error_code == "REQUEST_ERROR"


class TestFetchBytes:
    """Test download of each reference variant."""

    @pytest.mark.asyncio
    async def test_inline_bytes_make_no_request(self):
        """Test inline payloads are returned directly."""
        requests = []
        transport = make_transport(lambda r: httpx.Response(500), requests)

        data = await transport.fetch_bytes(InlineBytes(b"abc"))

        assert data == b"abc"
        assert requests == []

    @pytest.mark.asyncio
    async def test_file_id_download(self):
        """Test a file id maps to the files download endpoint."""
        requests = []
        transport = make_transport(lambda r: httpx.Response(200, content=b"\x01\x02\x03"), requests)

        data = await transport.fetch_bytes(FileId("files/abc"))

        assert data == b"\x01\x02\x03"
        assert requests[0].url.path == "/v1beta/files/abc:download"
        assert requests[0].url.params["alt"] == "media"
        assert requests[0].headers["x-goog-api-key"] == API_KEY

    @pytest.mark.asyncio
    async def test_direct_uri_same_host_authenticated(self):
        """Test URIs on the API host carry the key."""
        requests = []
        transport = make_transport(lambda r: httpx.Response(200, content=b"video"), requests)

        uri = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media"
        data = await transport.fetch_bytes(DirectUri(uri))

        assert data == b"video"
        assert requests[0].headers["x-goog-api-key"] == API_KEY

    @pytest.mark.asyncio
    async def test_direct_uri_other_host_unauthenticated(self):
        """Test the key is not sent to third-party hosts."""
        requests = []
        transport = make_transport(lambda r: httpx.Response(200, content=b"video"), requests)

        await transport.fetch_bytes(DirectUri("https://storage.example.com/video.mp4"))

        assert "x-goog-api-key" not in requests[0].headers

    @pytest.mark.asyncio
    async def test_download_failure(self):
        """Test a failed download raises TransportError."""
        transport = make_transport(lambda r: httpx.Response(404, text="not found"))

        with pytest.raises(TransportError) as exc_info:
            await transport.fetch_bytes(FileId("files/missing"))

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_malformed_uri(self):
        """Test an unparseable download URI becomes TransportError without a request."""
        requests = []
        transport = make_transport(lambda r: httpx.Response(200, content=b"video"), requests)

        with pytest.raises(TransportError) as exc_info:
            await transport.fetch_bytes(DirectUri("http://[::1"))

        assert exc_info.value.status is None
        assert requests == []

    @pytest.mark.asyncio
    async def test_unknown_reference(self):
        """Test an unknown reference type is rejected."""
        transport = make_transport(lambda r: httpx.Response(200))

        with pytest.raises(UnresolvedReferenceError):
            await transport.fetch_bytes(object())
