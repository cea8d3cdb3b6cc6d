"""Helpers for converting image files to and from base64 data URLs."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from PIL import Image

from modules.errors import InvalidFileType, ReadError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
FALLBACK_FILE_MIME_TYPE = "application/octet-stream"

# The MIME type ends at the first parameter; "data:image/png;charset=x;base64" is image/png.
_HEADER_PATTERN = re.compile(r"^data:([^;]*);")

FileSource = Union[str, Path, BinaryIO]


@dataclass(frozen=True, slots=True)
class DataUrlParts:
    """MIME type and base64 payload of a data URL."""

    mime_type: str
    payload: str


def _source_name(source: Any) -> Optional[str]:
    if isinstance(source, (str, Path)):
        return str(source)
    name = getattr(source, "name", None)
    return name if isinstance(name, str) else None


def guess_mime_type(name: Optional[str]) -> Optional[str]:
    """Guess a MIME type from a file name."""
    if not name:
        return None
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type


def ensure_image_file(name: Optional[str], mime_type: Optional[str] = None) -> str:
    """Return the image MIME type of a file or raise InvalidFileType."""
    resolved = mime_type or guess_mime_type(name)
    if not resolved or not resolved.startswith("image/"):
        raise InvalidFileType(
            "Please upload a valid image file (for example PNG, JPG or WEBP)."
        )
    return resolved


def build_data_url(mime_type: str, data: bytes) -> str:
    """Format raw bytes as a base64 data URL."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def encode_file(source: FileSource, mime_type: Optional[str] = None) -> str:
    """Read a file fully and return it as a base64 data URL.

    ``source`` may be a path or an open binary file object. The declared
    ``mime_type`` wins; otherwise the type is guessed from the file name.
    """
    try:
        if isinstance(source, (str, Path)):
            data = Path(source).read_bytes()
        else:
            data = source.read()
    except (OSError, ValueError) as exc:
        raise ReadError(f"Could not read the image file: {exc}") from exc

    if not isinstance(data, (bytes, bytearray)):
        raise ReadError("Could not read the image file: expected binary content.")

    resolved = mime_type or guess_mime_type(_source_name(source)) or FALLBACK_FILE_MIME_TYPE
    return build_data_url(resolved, bytes(data))


def decode_data_url(data_url: str) -> DataUrlParts:
    """Split a data URL into its MIME type and base64 payload.

    Header parameters after the MIME type are ignored. A header that does
    not look like ``data:<mime>;...`` falls back to ``image/jpeg`` instead
    of failing.
    """
    header, _, payload = data_url.partition(",")
    match = _HEADER_PATTERN.match(header.strip())
    if match and match.group(1):
        mime_type = match.group(1)
    else:
        logger.warning("Unrecognized data URL header %r, assuming %s", header[:40], DEFAULT_MIME_TYPE)
        mime_type = DEFAULT_MIME_TYPE
    return DataUrlParts(mime_type=mime_type, payload=payload)


def data_url_to_bytes(data_url: str) -> bytes:
    """Decode the binary payload of a data URL."""
    parts = decode_data_url(data_url)
    try:
        return base64.b64decode(parts.payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ReadError(f"Invalid base64 payload: {exc}") from exc


def data_url_to_image(data_url: str) -> Image.Image:
    """Open a data URL as a Pillow image for display."""
    image = Image.open(io.BytesIO(data_url_to_bytes(data_url)))
    image.load()
    return image
