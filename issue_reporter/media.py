"""Encoding of captured photos and audio clips as base64 data-URLs."""

from __future__ import annotations

import base64
import binascii
import re
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from issue_reporter import config

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*?);base64,(?P<data>.*)$", re.S)


class MediaError(Exception):
    """Captured media could not be read."""


def to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(url: str) -> Tuple[str, bytes]:
    """Split a base64 data-URL into (mime type, raw bytes)."""
    match = _DATA_URL_RE.match(url or "")
    if not match:
        raise MediaError("Not a base64 data URL")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as e:
        raise MediaError(f"Invalid base64 payload: {e}") from e
    return match.group("mime") or "application/octet-stream", data


def encode_image(data: bytes, max_size: Tuple[int, int] = config.MAX_IMAGE_SIZE) -> str:
    """Decode a photo, bound its size and return it as a JPEG data-URL."""
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise MediaError(f"Could not read the image: {e}") from e
    # convert to RGB to avoid issues with PNG palette, alpha, etc.
    if img.mode != "RGB":
        img = img.convert("RGB")
    img.thumbnail(max_size)
    out = BytesIO()
    img.save(out, format="JPEG", quality=85)
    return to_data_url(out.getvalue(), "image/jpeg")


def encode_audio(data: bytes, mime: Optional[str] = None) -> str:
    if not data:
        raise MediaError("Empty audio recording")
    return to_data_url(data, mime or "audio/wav")


def image_from_upload(uploaded_file) -> Optional[str]:
    """Data-URL for a Streamlit camera/file upload, or None if nothing captured."""
    if uploaded_file is None:
        return None
    return encode_image(uploaded_file.getvalue())


def audio_from_upload(uploaded_file) -> Optional[str]:
    if uploaded_file is None:
        return None
    return encode_audio(uploaded_file.getvalue(), getattr(uploaded_file, "type", None))
