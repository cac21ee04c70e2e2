"""
Output path planning.

Other build stages construct these paths on their own (post slug, language,
cover or inline index), so the scheme below must stay stable.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from picture_shared.files import (
    FALLBACK_EXTS,
    FALLBACK_MIME_TYPES,
    MODERN_MIME_TYPE,
    PathEscape,
    is_in_dir,
    to_posix,
)
from picture_shared.protocol import ImageKind, ProcessingOptions

POSTS_DIR = "posts"
UNKNOWN_LANG = "unknown"


@dataclass(frozen=True)
class PlannedOutput:
    relative_path: str
    file_path: Path
    public_path: str | None
    mime_type: str


@dataclass(frozen=True)
class OutputPlan:
    relative_dir: str
    modern: PlannedOutput
    fallback: PlannedOutput


def build_public_path(public_base: str | None, relative_path: str) -> str | None:
    if public_base is None:
        return None
    return posixpath.join(public_base, to_posix(relative_path))


def _planned(relative_path: str, mime_type: str, options: ProcessingOptions) -> PlannedOutput:
    output_base = options.output_base.resolve()
    file_path = output_base / relative_path
    if not is_in_dir(output_base, file_path):
        raise PathEscape(f"Output path escapes {output_base}: {relative_path}")
    return PlannedOutput(
        relative_path=relative_path,
        file_path=file_path,
        public_path=build_public_path(options.public_base, relative_path),
        mime_type=mime_type,
    )


def plan_outputs(relative_path: str, kind: ImageKind, options: ProcessingOptions) -> OutputPlan:
    """Sibling .webp and fallback outputs for an image's relative path."""
    parsed = PurePosixPath(to_posix(relative_path).lstrip("/"))
    if not parsed.name or parsed.name in (".", ".."):
        raise ValueError(f"Invalid relative path: {relative_path!r}")

    base = parsed.stem if parsed.suffix.lower() in (".jpg", ".jpeg", ".png", ".webp") else parsed.name
    relative_dir = "" if str(parsed.parent) == "." else str(parsed.parent)

    modern_path = posixpath.join(relative_dir, f"{base}.webp")
    fallback_path = posixpath.join(relative_dir, f"{base}{FALLBACK_EXTS[kind]}")

    return OutputPlan(
        relative_dir=relative_dir,
        modern=_planned(modern_path, MODERN_MIME_TYPE, options),
        fallback=_planned(fallback_path, FALLBACK_MIME_TYPES[kind], options),
    )


def build_post_asset_dir(translation_key: str, lang: str | None = None,
                         default_lang: str | None = None) -> str:
    return posixpath.join(POSTS_DIR, translation_key, lang or default_lang or UNKNOWN_LANG)


def build_post_cover_path(translation_key: str, lang: str | None = None,
                          default_lang: str | None = None) -> str:
    return posixpath.join(build_post_asset_dir(translation_key, lang, default_lang), "cover")


def build_post_image_path(translation_key: str, index: int, lang: str | None = None,
                          default_lang: str | None = None) -> str:
    return posixpath.join(build_post_asset_dir(translation_key, lang, default_lang), f"image_{index}")
