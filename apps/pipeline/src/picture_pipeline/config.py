"""Configuration for the picture pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from picture_shared.protocol import (
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_WIDTH,
    DEFAULT_MIN_WIDTH,
    DEFAULT_PUBLIC_BASE,
    DEFAULT_QUALITY,
    ProcessingOptions,
)

from .limiter import default_concurrency

ASSETS_DIR = "assets"


@dataclass(frozen=True)
class PipelineConfig:
    """Pipeline configuration."""

    output_dir: Path = Path("dist/assets")
    source_dir: Path | None = None
    public_base: str | None = DEFAULT_PUBLIC_BASE
    max_workers: int | None = None
    max_width: int = DEFAULT_MAX_WIDTH
    max_bytes: int = DEFAULT_MAX_BYTES
    allow_remote: bool = True

    @classmethod
    def load(cls) -> PipelineConfig:
        """Load from environment variables."""
        source_dir = os.getenv("PICTURE_SOURCE_DIR")
        workers = os.getenv("PICTURE_MAX_WORKERS")
        public_base = os.getenv("PICTURE_PUBLIC_BASE", DEFAULT_PUBLIC_BASE)
        return cls(
            output_dir=Path(os.getenv("PICTURE_OUTPUT_DIR", "dist/assets")),
            source_dir=Path(source_dir) if source_dir else None,
            public_base=public_base or None,
            max_workers=int(workers) if workers else None,
            max_width=int(os.getenv("PICTURE_MAX_WIDTH", str(DEFAULT_MAX_WIDTH))),
            max_bytes=int(os.getenv("PICTURE_MAX_BYTES", str(DEFAULT_MAX_BYTES))),
            allow_remote=os.getenv("PICTURE_ALLOW_REMOTE", "1").lower() not in ("0", "false", "no"),
        )

    @property
    def workers(self) -> int:
        return self.max_workers or default_concurrency()

    def processing_options(self) -> ProcessingOptions:
        return ProcessingOptions(
            output_base=self.output_dir,
            source_base=self.source_dir,
            public_base=self.public_base,
            max_width=self.max_width,
            min_width=min(self.max_width, DEFAULT_MIN_WIDTH),
            max_bytes=self.max_bytes,
        )

    def ensure_directories(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class ImageOptionPresets:
    """Options for images inside a post body and for post covers."""
    inline: ProcessingOptions
    cover: ProcessingOptions


def create_image_options(build_dir: Path | str, input_dir: Path | str) -> ImageOptionPresets:
    shared = dict(
        output_base=Path(build_dir) / ASSETS_DIR,
        source_base=Path(input_dir),
        public_base=DEFAULT_PUBLIC_BASE,
        min_width=320,
        jpeg_quality=DEFAULT_QUALITY,
        webp_quality=DEFAULT_QUALITY,
    )
    return ImageOptionPresets(
        inline=ProcessingOptions(max_width=1080, max_bytes=1536 * 1024, **shared),
        cover=ProcessingOptions(max_width=1920, max_bytes=2048 * 1024, **shared),
    )
