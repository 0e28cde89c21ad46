"""
Helpers for base64 image payloads and data URLs
"""
import base64
import binascii
import io
import logging
import re
from typing import Optional, Tuple

from PIL import Image, ImageEnhance, UnidentifiedImageError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)

MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}

_MAGIC_NUMBERS = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_mime(image_bytes: bytes) -> Optional[str]:
    """Mime type from the file signature alone, without decoding the image."""
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    for magic, mime_type in _MAGIC_NUMBERS:
        if image_bytes.startswith(magic):
            return mime_type
    return None


def split_data_url(image_data: str) -> Tuple[Optional[str], str]:
    """Split a data URL into (mime_type, base64_data). Bare base64 yields a None mime type."""
    match = _DATA_URL_RE.match(image_data.strip())
    if match:
        return match.group("mime"), match.group("data")
    return None, image_data.strip()


def to_data_url(base64_data: str, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64_data}"


def decode_base64(base64_data: str) -> bytes:
    """Decode base64 text, raising ValueError on malformed input."""
    try:
        return base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Image payload is not valid base64: {e}") from e


def inspect_image(image_bytes: bytes) -> Tuple[str, Tuple[int, int]]:
    """Return (mime_type, (width, height)) of an encoded image, raising ValueError when undecodable."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.verify()
            fmt = image.format
            size = image.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"Image payload could not be decoded: {e}") from e
    mime_type = Image.MIME.get(fmt or "", "application/octet-stream")
    return mime_type, size


def preprocess_for_analysis(image_bytes: bytes, max_size: int = 1024) -> bytes:
    """Normalise an image for AI analysis: RGB, at most `max_size` px per side, JPEG."""
    image = Image.open(io.BytesIO(image_bytes))

    if image.mode != "RGB":
        image = image.convert("RGB")

    if image.width > max_size or image.height > max_size:
        image.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    enhancer = ImageEnhance.Sharpness(image)
    image = enhancer.enhance(1.1)

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=90, optimize=True)
    return buffer.getvalue()
