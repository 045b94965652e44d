"""Image helpers for uploaded photos.

This module wraps the small amount of image handling the API needs before
and after a generation call: decoding data URLs, checking that uploaded
bytes really are an image using Pillow, and building data URLs for the
generated result.
"""

from __future__ import annotations

import base64
import binascii
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError  # type: ignore[import]

INVALID_IMAGE_MESSAGE = "Please upload a valid image file (PNG, JPG, etc.)."


class InvalidImageError(ValueError):
    """Raised when uploaded bytes cannot be used as a source photo."""


def decode_data_url(data_url: str) -> Tuple[bytes, Optional[str]]:
    """Split a data URL into raw bytes and its declared media type.

    Args:
        data_url: A string such as ``data:image/png;base64,AAAA``. A bare
            base64 string without the ``data:`` header is also accepted.

    Returns:
        A tuple of the decoded bytes and the media type from the header, or
        ``None`` when the header is missing or carries no type.

    Raises:
        InvalidImageError: If the payload is not valid base64.
    """
    header, sep, payload = data_url.partition(",")
    if not sep:
        header, payload = "", data_url
    mime_type = None
    if header.startswith("data:"):
        mime_type = header[len("data:"):].split(";", 1)[0] or None
    try:
        raw = base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(INVALID_IMAGE_MESSAGE) from e
    return raw, mime_type


def sniff_image(data: bytes, declared_type: Optional[str] = None) -> str:
    """Return the media type to send along with an uploaded photo.

    An ``image/`` declared type (e.g. the upload's content type) is trusted
    and returned as-is, so formats Pillow cannot decode (HEIC/HEIF) are still
    forwarded to the model. Without a declared type, or with
    ``application/octet-stream``, Pillow must recognise the bytes.

    Args:
        data: Raw image bytes.
        declared_type: Media type reported by the client, if any.

    Returns:
        The media type to send along with the image.

    Raises:
        InvalidImageError: If the bytes are empty, the declared type is not
            an image type, or undeclared bytes are not a readable image.
    """
    if not data:
        raise InvalidImageError(INVALID_IMAGE_MESSAGE)
    if declared_type and declared_type.startswith("image/"):
        return declared_type
    if declared_type and declared_type != "application/octet-stream":
        raise InvalidImageError(INVALID_IMAGE_MESSAGE)
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
            detected = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidImageError(INVALID_IMAGE_MESSAGE) from e
    if not detected:
        raise InvalidImageError(INVALID_IMAGE_MESSAGE)
    return detected


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def to_data_url(b64: str, mime_type: str = "image/png") -> str:
    """Wrap base64 image data in a data URL."""
    return f"data:{mime_type};base64,{b64}"
