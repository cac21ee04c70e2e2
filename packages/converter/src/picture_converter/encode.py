"""
Pillow encoder for the modern (WebP) and fallback (JPEG/PNG) variants.

This module provides:
- The immutable encode state the convergence loop walks through
- A single resize + encode pass producing both variants
- The step function choosing the next state when over budget
"""

from __future__ import annotations

import io
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from PIL import Image, ImageOps, UnidentifiedImageError

from picture_shared.protocol import ImageKind, ProcessingOptions

from .probe import ImageMetadata

logger = logging.getLogger(__name__)

QUALITY_STEP = 5
QUALITY_FLOOR = 60
WEBP_METHOD = 6
WEBP_LOSSLESS_EFFORT = 80


class EncodeError(RuntimeError):
    """Raised when Pillow cannot decode or encode an image."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


@dataclass(frozen=True)
class EncodeState:
    width: int
    jpeg_quality: int
    webp_quality: int


@dataclass(frozen=True)
class EncodedPair:
    modern: bytes = field(repr=False)
    fallback: bytes = field(repr=False)
    width: int
    height: int

    @property
    def largest(self) -> int:
        return max(len(self.modern), len(self.fallback))


def initial_state(metadata: ImageMetadata, options: ProcessingOptions) -> EncodeState:
    """Start at max_width, capped by the native width when it is known."""
    width = options.max_width
    if metadata.has_dimensions:
        width = min(options.max_width, metadata.width)
    return EncodeState(
        width=width,
        jpeg_quality=options.jpeg_quality,
        webp_quality=options.webp_quality,
    )


def _lower_quality(value: int) -> int:
    if value <= QUALITY_FLOOR:
        return value
    return max(value - QUALITY_STEP, QUALITY_FLOOR)


def next_state(state: EncodeState, kind: ImageKind, options: ProcessingOptions) -> EncodeState | None:
    """
    Pick the next state after an over-budget encode.

    Width goes first, down to min_width. Then, for JPEG sources only, both
    qualities step down to QUALITY_FLOOR. Returns None when nothing can move.
    """
    if state.width > options.min_width:
        width = max(math.floor(state.width * options.resize_step), options.min_width)
        if width < state.width:
            return EncodeState(width, state.jpeg_quality, state.webp_quality)

    if kind != "jpeg":
        return None

    jpeg_quality = _lower_quality(state.jpeg_quality)
    webp_quality = _lower_quality(state.webp_quality)
    if (jpeg_quality, webp_quality) == (state.jpeg_quality, state.webp_quality):
        return None
    return EncodeState(state.width, jpeg_quality, webp_quality)


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)


def _prepare(img: Image.Image, kind: ImageKind) -> Image.Image:
    """Apply orientation and bring the image into an encodable mode."""
    img = ImageOps.exif_transpose(img)
    if kind == "png" and _has_alpha(img):
        return img.convert("RGBA")
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _resize(img: Image.Image, width: int) -> Image.Image:
    native_w, native_h = img.size
    if width >= native_w:
        return img
    height = max(1, round(native_h * width / native_w))
    return img.resize((width, height), Image.Resampling.LANCZOS)


def _encode_modern(img: Image.Image, kind: ImageKind, state: EncodeState) -> bytes:
    out = io.BytesIO()
    if kind == "jpeg":
        img.save(out, format="WEBP", quality=state.webp_quality, method=WEBP_METHOD)
    else:
        img.save(out, format="WEBP", lossless=True, quality=WEBP_LOSSLESS_EFFORT, method=WEBP_METHOD)
    return out.getvalue()


def _encode_fallback(img: Image.Image, kind: ImageKind, state: EncodeState) -> bytes:
    out = io.BytesIO()
    if kind == "jpeg":
        img.save(out, format="JPEG", quality=state.jpeg_quality, optimize=True, progressive=True)
    else:
        img.save(out, format="PNG", optimize=True)
    return out.getvalue()


def encode_pair(data: bytes, kind: ImageKind, state: EncodeState) -> EncodedPair:
    """
    Resize to state.width (never upscaling) and encode both variants.

    Raises:
        EncodeError: If the payload cannot be decoded or encoded
    """
    try:
        with Image.open(io.BytesIO(data)) as src:
            src.load()
            img = _resize(_prepare(src, kind), state.width)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise EncodeError(f"Cannot decode {kind} image: {e}", e) from e

    try:
        with ThreadPoolExecutor(max_workers=2) as pool:
            modern = pool.submit(_encode_modern, img, kind, state)
            fallback = pool.submit(_encode_fallback, img, kind, state)
            pair = EncodedPair(
                modern=modern.result(),
                fallback=fallback.result(),
                width=img.width,
                height=img.height,
            )
    except (OSError, ValueError) as e:
        raise EncodeError(f"Cannot encode {kind} image at width {state.width}: {e}", e) from e

    logger.debug(
        "Encoded %dx%d (jpeg q=%d, webp q=%d): modern=%d fallback=%d bytes",
        pair.width, pair.height, state.jpeg_quality, state.webp_quality,
        len(pair.modern), len(pair.fallback),
    )
    return pair
