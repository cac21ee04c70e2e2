"""
Intrinsic image metadata.

Only the header is read. An unreadable payload is not an error here: the
caller gets a record without dimensions and sizes the image blind.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ORIENTATION_TAG = 0x0112
# EXIF orientations that rotate the image by 90 or 270 degrees
TRANSPOSED_ORIENTATIONS = frozenset({5, 6, 7, 8})


@dataclass(frozen=True)
class ImageMetadata:
    width: int | None = None
    height: int | None = None
    format: str | None = None
    orientation: int | None = None

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width and self.height)


def probe_image(data: bytes) -> ImageMetadata:
    """Read display width/height (after EXIF orientation) from raw bytes."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            orientation = img.getexif().get(ORIENTATION_TAG)
            fmt = img.format
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug("Could not read image metadata: %s", e)
        return ImageMetadata()

    if orientation in TRANSPOSED_ORIENTATIONS:
        width, height = height, width

    return ImageMetadata(width=width, height=height, format=fmt, orientation=orientation)
