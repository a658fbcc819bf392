"""Sniff uploaded bytes to find out what image format they really are."""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type
ALLOWED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


@dataclass(frozen=True)
class ImageInfo:
    format: str
    content_type: str
    width: int
    height: int


def sniff_image(data: bytes) -> Optional[ImageInfo]:
    """
    Identify `data` as one of the allowed image formats.

    Returns None when Pillow cannot read the bytes or the format is not allowed.
    Only the header is decoded; `verify()` walks the rest of the file for
    structural damage without decoding pixels.
    """
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        logger.info(f"Rejected unreadable image: {e}")
        return None

    content_type = ALLOWED_FORMATS.get(image_format or "")
    if content_type is None:
        logger.info(f"Rejected image in disallowed format: {image_format}")
        return None

    return ImageInfo(
        format=image_format.lower(),
        content_type=content_type,
        width=width,
        height=height,
    )
