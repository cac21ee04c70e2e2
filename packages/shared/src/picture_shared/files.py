"""
File and path handling utilities shared by the converter and the pipeline.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path, PurePosixPath

from .protocol import ImageKind

logger = logging.getLogger(__name__)

ALLOWED_IMG_EXTS: frozenset[str] = frozenset({".png", ".jpg", ".jpeg"})

FALLBACK_EXTS: dict[str, str] = {"jpeg": ".jpg", "png": ".png"}
FALLBACK_MIME_TYPES: dict[str, str] = {"jpeg": "image/jpeg", "png": "image/png"}
MODERN_MIME_TYPE = "image/webp"

ASSET_FILE_MODE = 0o644


class AssetError(Exception):
    """Base exception for source images that cannot be turned into assets."""
    pass


class UnsupportedFormat(AssetError):
    """Raised when the mime type or extension is not a supported raster format."""
    pass


class PathEscape(AssetError):
    """Raised when a path resolves outside of its trusted root directory."""
    pass


def is_in_dir(base: Path, target: Path) -> bool:
    """Check if target path is in base dir."""
    try:
        target.resolve().relative_to(base.resolve())
        return True
    except ValueError:
        return False


def normalize_mime(value: str | None) -> str | None:
    """Strip parameters from a mime type and lowercase it."""
    if not value:
        return None
    mime = value.split(";")[0].strip().lower()
    return mime or None


def kind_from_ext(ext: str) -> ImageKind | None:
    ext = ext.lower()
    if ext in (".jpg", ".jpeg"):
        return "jpeg"
    if ext == ".png":
        return "png"
    return None


def kind_from_mime(mime: str | None) -> ImageKind | None:
    mime = normalize_mime(mime)
    if mime in ("image/jpeg", "image/jpg"):
        return "jpeg"
    if mime == "image/png":
        return "png"
    return None


def to_posix(value: str | os.PathLike[str]) -> str:
    """Convert a relative path to forward slashes regardless of platform."""
    return str(value).replace(os.sep, "/").replace("\\", "/")


def content_hash(data: bytes, length: int = 16) -> str:
    """Short, stable hex digest used to name assets after their bytes."""
    return hashlib.sha1(data).hexdigest()[:length]


def hashed_relative_path(data: bytes, kind: ImageKind, directory: str) -> str:
    """Relative path for an image identified only by its content."""
    name = f"{content_hash(data)}{FALLBACK_EXTS[kind]}"
    return str(PurePosixPath(directory) / name)


def write_files_atomic(outputs: list[tuple[Path, bytes]]) -> None:
    """
    Move every (path, payload) pair into place only after all of them were
    staged.

    Each call stages into its own temporary siblings, so concurrent writers
    of the same target never consume each other's files; the last replace
    wins. Temporary files never outlive the call. Targets already moved into
    place are kept when a later replace fails.
    """
    staged: list[tuple[Path, Path]] = []
    try:
        for path, payload in outputs:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            staged.append((Path(tmp_name), path))
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.chmod(tmp_name, ASSET_FILE_MODE)
        for tmp_path, path in staged:
            os.replace(tmp_path, path)
    except OSError:
        logger.error("Failed to write %s", ", ".join(str(p) for p, _ in outputs))
        raise
    finally:
        for tmp_path, _ in staged:
            tmp_path.unlink(missing_ok=True)
