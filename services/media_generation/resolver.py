"""
Result Resolver - turns a finished operation into one MediaReference.

Providers describe generated media in several shapes. The list lives under
`generatedVideos` or `videos` (the REST API nests it as
`generateVideoResponse.generatedSamples`), and each entry, optionally
wrapped in a `video` key, is one of:

    "files/abc"                         -> FileId
    {"uri": "https://..."}              -> DirectUri
    {"videoBytes": "<base64>"}          -> InlineBytes
    {"file": "files/abc"}               -> FileId
    {"file": {"name": "files/abc"}}     -> FileId
    {"name": "files/abc"}               -> FileId

Shapes are tried in that order on each entry, so a URI wins over a file id
on the same object. Entries are scanned in order; the first that matches
any shape is returned. Pure: no I/O.
"""

import base64
import binascii
import logging
from typing import Any, Callable, Optional

from core.errors import NoMediaFoundError, OperationFailedError, UnresolvedReferenceError

from .models import DirectUri, FileId, InlineBytes, MediaReference, Operation

logger = logging.getLogger(__name__)

MEDIA_LIST_FIELDS = ("generatedVideos", "videos", "generatedSamples")
RESPONSE_WRAPPER_FIELD = "generateVideoResponse"


def _mime(obj: dict) -> Optional[str]:
    return obj.get("mimeType") or None


def _plain_string(entry: Any) -> Optional[MediaReference]:
    if isinstance(entry, str) and entry:
        return FileId(entry)
    return None


def _uri(entry: Any) -> Optional[MediaReference]:
    if isinstance(entry, dict) and isinstance(entry.get("uri"), str) and entry["uri"]:
        return DirectUri(entry["uri"], mime_type=_mime(entry))
    return None


def _inline_bytes(entry: Any) -> Optional[MediaReference]:
    if not isinstance(entry, dict):
        return None
    encoded = entry.get("videoBytes") or entry.get("bytesBase64Encoded")
    if not isinstance(encoded, str) or not encoded:
        return None
    try:
        # Accepts both standard and URL-safe alphabets
        data = base64.b64decode(encoded, altchars=b"-_")
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Ignoring undecodable videoBytes ({len(encoded)} chars, keys={sorted(entry)}): {e}")
        return None
    return InlineBytes(data, mime_type=_mime(entry))


def _file(entry: Any) -> Optional[MediaReference]:
    if not isinstance(entry, dict):
        return None
    file_ref = entry.get("file")
    if isinstance(file_ref, str) and file_ref:
        return FileId(file_ref, mime_type=_mime(entry))
    if isinstance(file_ref, dict) and isinstance(file_ref.get("name"), str) and file_ref["name"]:
        return FileId(file_ref["name"], mime_type=_mime(file_ref) or _mime(entry))
    return None


def _name(entry: Any) -> Optional[MediaReference]:
    if isinstance(entry, dict) and isinstance(entry.get("name"), str) and entry["name"]:
        return FileId(entry["name"], mime_type=_mime(entry))
    return None


# Order is priority
SHAPES: tuple[tuple[str, Callable[[Any], Optional[MediaReference]]], ...] = (
    ("string", _plain_string),
    ("uri", _uri),
    ("inline_bytes", _inline_bytes),
    ("file", _file),
    ("name", _name),
)


def _unwrap_response(response: dict) -> dict:
    wrapped = response.get(RESPONSE_WRAPPER_FIELD)
    return wrapped if isinstance(wrapped, dict) else response


def media_entries(response: Optional[dict]) -> list:
    """Return the generated-media entries of an operation response."""
    if not response:
        return []
    body = _unwrap_response(response)
    for field_name in MEDIA_LIST_FIELDS:
        entries = body.get(field_name)
        if entries:
            return entries if isinstance(entries, list) else [entries]
    return []


def match_entry(entry: Any) -> Optional[MediaReference]:
    """Match a single entry against SHAPES; None if nothing applies."""
    target = entry.get("video", entry) if isinstance(entry, dict) else entry
    for _, shape in SHAPES:
        reference = shape(target)
        if reference is not None:
            return reference
    return None


def _no_media_message(response: Optional[dict]) -> str:
    message = "Operation completed but no videos found in response"
    if not response:
        return message
    body = _unwrap_response(response)
    filtered = body.get("raiMediaFilteredCount")
    if filtered:
        reasons = body.get("raiMediaFilteredReasons") or []
        detail = "; ".join(reasons) if reasons else "no reason given"
        message += f" ({filtered} filtered by safety checks: {detail})"
    return message


def resolve(operation: Operation) -> MediaReference:
    """
    Extract the downloadable media reference from a terminal operation.

    Raises:
        ValueError: If the operation is not done yet
        OperationFailedError: If the operation finished with an error
        NoMediaFoundError: If the media list is empty
        UnresolvedReferenceError: If entries exist but none matches a shape
    """
    if not operation.done:
        raise ValueError(f"Operation {operation.name} is not done")

    if operation.error is not None:
        raise OperationFailedError(operation.name, operation.error)

    entries = media_entries(operation.response)
    if not entries:
        raise NoMediaFoundError(_no_media_message(operation.response))

    for index, entry in enumerate(entries):
        reference = match_entry(entry)
        if reference is not None:
            logger.debug(f"Operation {operation.name}: entry {index} -> {type(reference).__name__}")
            return reference

    raise UnresolvedReferenceError(
        f"Could not resolve video download URL from {len(entries)} media entries"
    )
