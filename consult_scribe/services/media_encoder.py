"""
Media encoding and validation
"""

import base64
import mimetypes
from pathlib import Path
from typing import Optional, Union

from consult_scribe.core.errors import (
    EmptyPayloadError,
    EncodingError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from consult_scribe.core.logging import get_logger
from consult_scribe.models.requests import MediaPayload

logger = get_logger(__name__)

MAX_MEDIA_BYTES = 50 * 1024 * 1024

# Extensions the stdlib mimetypes table does not know or maps oddly
_EXTENSION_TYPES = {
    ".m4a": "audio/m4a",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".opus": "audio/ogg",
    ".webm": "video/webm",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
}


def is_media_type(content_type: Optional[str]) -> bool:
    """True for audio/* and video/* content types"""
    return bool(content_type) and (content_type.startswith("audio/") or content_type.startswith("video/"))


def format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):.1f}MB"


def check_media_size(size_bytes: int, max_bytes: int = MAX_MEDIA_BYTES) -> None:
    if size_bytes > max_bytes:
        raise PayloadTooLargeError(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB. "
            f"Received: {format_megabytes(size_bytes)}",
            details={"size_bytes": size_bytes, "max_bytes": max_bytes},
        )
    if size_bytes == 0:
        raise EmptyPayloadError("Empty file received")


def encode_media(data: bytes, max_bytes: int = MAX_MEDIA_BYTES) -> str:
    """Base64 encodes the whole payload in memory, after enforcing the ceiling."""
    check_media_size(len(data), max_bytes)
    return base64.b64encode(data).decode("ascii")


def build_media_payload(data: bytes, mime_type: str, max_bytes: int = MAX_MEDIA_BYTES) -> MediaPayload:
    if not is_media_type(mime_type):
        raise UnsupportedMediaTypeError(
            f"Invalid content type '{mime_type}'. Must be audio/* or video/*"
        )
    return MediaPayload(mime_type=mime_type, data=encode_media(data, max_bytes))


def guess_media_type(path: Union[str, Path]) -> Optional[str]:
    """Guesses the MIME type from the file extension."""
    suffix = Path(path).suffix.lower()
    if suffix in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(str(path))
    return guessed


def load_media_file(
    path: Union[str, Path],
    max_bytes: int = MAX_MEDIA_BYTES,
    mime_type: Optional[str] = None,
) -> MediaPayload:
    """
    Reads a local media file into a MediaPayload.
    - Rejects files above the ceiling before reading them.
    - Raises EncodingError when the file cannot be read.
    """
    path = Path(path)
    mime_type = mime_type or guess_media_type(path)
    if not is_media_type(mime_type):
        raise UnsupportedMediaTypeError(
            f"Please select a valid audio or video file (got {mime_type or 'unknown type'})"
        )

    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise PayloadTooLargeError(
                f"Media file is too large ({format_megabytes(size)}). "
                f"Maximum size is {max_bytes // (1024 * 1024)}MB.",
                details={"size_bytes": size, "max_bytes": max_bytes},
            )
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"Failed to read media file {path}: {e}")
        raise EncodingError(f"Failed to read media file '{path}': {e}") from e

    logger.info(f"Loaded {len(data)} bytes of {mime_type} from {path.name}")
    return build_media_payload(data, mime_type, max_bytes)
