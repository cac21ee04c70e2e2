"""
Data model shared by the converter and the pipeline.

Lifecycle:
    caller -> ImageIdentity (what to process, where it lands)
    ImageIdentity + ProcessingOptions -> conversion -> ProcessingResult
    ProcessingResult.picture -> markup emitted by the site generator
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping

ImageKind = Literal["jpeg", "png"]
SourceKind = Literal["local", "remote", "data_uri"]

DEFAULT_OUTPUT_BASE = Path("dist/assets")
DEFAULT_PUBLIC_BASE = "/assets"
DEFAULT_MAX_WIDTH = 680
DEFAULT_MIN_WIDTH = 480
DEFAULT_MAX_BYTES = 600 * 1024
DEFAULT_RESIZE_STEP = 0.85
DEFAULT_QUALITY = 82
DEFAULT_REMOTE_MAX_BYTES = 20 * 1024 * 1024
DEFAULT_REMOTE_TIMEOUT = 10.0


@dataclass(frozen=True)
class ProcessingOptions:
    """
    Options for a single processing call. Every field has a default and
    the record never changes once built; use replace() to derive a variant.
    """
    output_base: Path = DEFAULT_OUTPUT_BASE
    source_base: Path | None = None
    public_base: str | None = DEFAULT_PUBLIC_BASE

    max_width: int = DEFAULT_MAX_WIDTH
    min_width: int = DEFAULT_MIN_WIDTH
    max_bytes: int = DEFAULT_MAX_BYTES
    resize_step: float = DEFAULT_RESIZE_STEP
    jpeg_quality: int = DEFAULT_QUALITY
    webp_quality: int = DEFAULT_QUALITY

    remote_max_bytes: int = DEFAULT_REMOTE_MAX_BYTES
    remote_timeout: float = DEFAULT_REMOTE_TIMEOUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_base", Path(self.output_base))
        if self.source_base is not None:
            object.__setattr__(self, "source_base", Path(self.source_base))

        if self.min_width < 1:
            raise ValueError(f"min_width must be >= 1, got {self.min_width}")
        if self.max_width < self.min_width:
            raise ValueError(
                f"max_width ({self.max_width}) is smaller than min_width ({self.min_width})"
            )
        if not 0 < self.resize_step < 1:
            raise ValueError(f"resize_step must be in (0, 1), got {self.resize_step}")
        for name in ("jpeg_quality", "webp_quality"):
            value = getattr(self, name)
            if not 1 <= value <= 100:
                raise ValueError(f"{name} must be 1..100, got {value}")
        if self.max_bytes <= 0 or self.remote_max_bytes <= 0:
            raise ValueError("Byte limits must be positive")
        if self.remote_timeout <= 0:
            raise ValueError(f"remote_timeout must be positive, got {self.remote_timeout}")

    def replace(self, **changes: Any) -> ProcessingOptions:
        return dataclasses.replace(self, **changes)

    @property
    def trusted_root(self) -> Path:
        """Directory local sources must live under."""
        return (self.source_base or Path.cwd()).resolve()


# camelCase keys of the generator's configuration table
_OPTION_ALIASES: dict[str, str] = {
    "outputBase": "output_base",
    "sourceBase": "source_base",
    "publicBase": "public_base",
    "maxWidth": "max_width",
    "minWidth": "min_width",
    "maxBytes": "max_bytes",
    "resizeStep": "resize_step",
    "jpegQuality": "jpeg_quality",
    "webpQuality": "webp_quality",
    "remoteMaxBytes": "remote_max_bytes",
}


def parse_processing_options(options: Mapping[str, Any] | None) -> ProcessingOptions:
    """Build ProcessingOptions from a flat mapping, rejecting unknown keys."""
    if not options:
        return ProcessingOptions()

    known = {f.name for f in dataclasses.fields(ProcessingOptions)}
    kwargs: dict[str, Any] = {}
    for key, value in options.items():
        if key == "remoteTimeoutMs":
            kwargs["remote_timeout"] = float(value) / 1000.0
            continue
        name = _OPTION_ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown processing option: {key}")
        kwargs[name] = value
    return ProcessingOptions(**kwargs)


@dataclass(frozen=True)
class ImageIdentity:
    """The canonical key for one logical source image."""
    kind: SourceKind
    raw_reference: str
    relative_path: str | None = None
    resolved_path: Path | None = None

    @property
    def is_external(self) -> bool:
        return self.kind != "local"

    @property
    def cache_key(self) -> str:
        if self.kind == "local":
            return f"{self.resolved_path}|{self.relative_path}"
        return f"external:{self.relative_path or ''}{self.raw_reference}"


@dataclass
class EncodedVariant:
    """One written output file."""
    data: bytes = field(repr=False)
    mime_type: str
    relative_path: str
    public_path: str | None
    file_path: Path

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ProcessingResult:
    """Both variants of a processed image plus how the encoder got there."""
    format: ImageKind
    width: int
    height: int
    modern: EncodedVariant
    fallback: EncodedVariant
    iterations: int = 1
    within_budget: bool = True
    jpeg_quality: int | None = None
    webp_quality: int | None = None

    @property
    def variants(self) -> dict[str, EncodedVariant]:
        return {"modern": self.modern, "fallback": self.fallback}

    @property
    def picture(self) -> dict[str, Any] | None:
        """Descriptor used to emit <picture> markup, None if unreferenceable."""
        if self.modern.public_path is None or self.fallback.public_path is None:
            return None
        return {
            "sources": [{"src": self.modern.public_path, "type": self.modern.mime_type}],
            "img": {
                "src": self.fallback.public_path,
                "type": self.fallback.mime_type,
                "width": self.width,
                "height": self.height,
            },
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "width": self.width,
            "height": self.height,
            "iterations": self.iterations,
            "within_budget": self.within_budget,
            "variants": {
                name: {
                    "type": variant.mime_type,
                    "relative_path": variant.relative_path,
                    "public_path": variant.public_path,
                    "bytes": variant.size,
                }
                for name, variant in self.variants.items()
            },
            "picture": self.picture,
        }
