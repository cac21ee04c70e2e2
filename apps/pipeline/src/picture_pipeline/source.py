"""
Source resolution: local paths, http(s) URLs and base64 data URIs.

identify() runs on the caller's thread and does no I/O beyond path
resolution, so the cache key is known before any fetch starts.
load_source() produces the raw bytes and the detected kind.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import requests

from picture_shared.fetch import fetch_remote_image
from picture_shared.files import (
    ALLOWED_IMG_EXTS,
    PathEscape,
    UnsupportedFormat,
    hashed_relative_path,
    is_in_dir,
    kind_from_ext,
    kind_from_mime,
    normalize_mime,
    to_posix,
)
from picture_shared.protocol import ImageIdentity, ImageKind, ProcessingOptions

logger = logging.getLogger(__name__)

REMOTE_DIR = "remote"

_REMOTE_RE = re.compile(r"^https?://", re.IGNORECASE)
_DATA_URI_RE = re.compile(r"^data:([^;,]+);base64,(.*)$", re.IGNORECASE | re.DOTALL)


@dataclass
class ResolvedSource:
    identity: ImageIdentity
    data: bytes = field(repr=False)
    kind: ImageKind
    relative_path: str


def is_remote_asset(reference: str) -> bool:
    return bool(_REMOTE_RE.match(reference))


def is_data_asset(reference: str) -> bool:
    return reference.startswith("data:")


def is_external_asset(reference: str) -> bool:
    return is_remote_asset(reference) or is_data_asset(reference)


def _decode_uri_safe(value: str) -> str:
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def resolve_local_path(
    reference: str,
    root: Path,
    relative_to: Path | None = None,
) -> Path:
    """
    Resolve a local reference inside root.

    A leading slash means "from root" unless the path already points inside
    root; anything else is relative to relative_to (the referencing
    document's directory) or root.

    Raises:
        PathEscape: If the reference resolves outside root
    """
    reference = _decode_uri_safe(reference)
    if reference.startswith("/") and not is_in_dir(root, Path(reference)):
        candidate = root / reference.lstrip("/")
    else:
        candidate = (relative_to or root) / reference

    resolved = candidate.resolve()
    if not is_in_dir(root, resolved):
        raise PathEscape(f"Image must live under {root}: {reference}")
    return resolved


def identify(
    reference: str | Path,
    options: ProcessingOptions,
    relative_path: str | None = None,
    relative_to: Path | str | None = None,
) -> ImageIdentity:
    """
    Classify a reference and fix its output path where possible.

    Path objects are taken literally: an absolute Path outside the trusted
    root is rejected rather than re-rooted.
    """
    root = options.trusted_root

    if isinstance(reference, Path):
        resolved = (reference if reference.is_absolute() else root / reference).resolve()
        if not is_in_dir(root, resolved):
            raise PathEscape(f"Image must live under {root}: {reference}")
        reference = str(reference)
    else:
        if not reference or not reference.strip():
            raise UnsupportedFormat("Empty image reference")
        reference = reference.strip()

        if is_data_asset(reference):
            return ImageIdentity(kind="data_uri", raw_reference=reference, relative_path=relative_path)
        if is_remote_asset(reference):
            return ImageIdentity(kind="remote", raw_reference=reference, relative_path=relative_path)

        base_dir = Path(relative_to).resolve() if relative_to is not None else None
        resolved = resolve_local_path(reference, root, base_dir)

    if resolved.suffix.lower() not in ALLOWED_IMG_EXTS:
        raise UnsupportedFormat(f"Unsupported image format {resolved.suffix or '(none)'}: {reference}")

    if relative_path is None:
        relative_path = to_posix(resolved.relative_to(root))

    return ImageIdentity(
        kind="local",
        raw_reference=reference,
        relative_path=relative_path,
        resolved_path=resolved,
    )


def parse_data_uri(reference: str) -> tuple[str, bytes]:
    """
    Split a base64 data URI into (mime, payload).

    Raises:
        UnsupportedFormat: If the URI is malformed
    """
    match = _DATA_URI_RE.match(reference)
    if not match:
        raise UnsupportedFormat("Unsupported data URI image")
    mime = normalize_mime(match.group(1))
    payload = match.group(2).strip()
    if not mime or not payload:
        raise UnsupportedFormat("Unsupported data URI image")
    try:
        data = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise UnsupportedFormat(f"Malformed base64 payload in data URI: {e}") from e
    if not data:
        raise UnsupportedFormat("Empty data URI payload")
    return mime, data


def infer_remote_kind(url: str, content_type: str | None) -> ImageKind | None:
    """Content-Type first, then the URL path's extension."""
    kind = kind_from_mime(content_type)
    if kind:
        return kind
    return kind_from_ext(PurePosixPath(urlparse(url).path).suffix)


def _load_data_uri(identity: ImageIdentity) -> tuple[bytes, ImageKind]:
    mime, data = parse_data_uri(identity.raw_reference)
    kind = kind_from_mime(mime)
    if kind is None:
        raise UnsupportedFormat(f"Unsupported data URI mime type: {mime}")
    return data, kind


def _load_remote(
    identity: ImageIdentity,
    options: ProcessingOptions,
    session: requests.Session | None,
) -> tuple[bytes, ImageKind]:
    url = identity.raw_reference
    remote = fetch_remote_image(
        url,
        max_bytes=options.remote_max_bytes,
        timeout=options.remote_timeout,
        session=session,
    )
    kind = infer_remote_kind(url, remote.content_type)
    if kind is None:
        raise UnsupportedFormat(f"Unsupported remote image type ({remote.content_type}): {url}")
    return remote.data, kind


def load_source(
    identity: ImageIdentity,
    options: ProcessingOptions,
    session: requests.Session | None = None,
) -> ResolvedSource:
    """Read the bytes behind an identity."""
    if identity.kind == "local":
        path = identity.resolved_path
        kind = kind_from_ext(path.suffix)
        if kind is None:
            raise UnsupportedFormat(f"Unsupported image format {path.suffix}: {path}")
        data = path.read_bytes()
        return ResolvedSource(identity, data, kind, identity.relative_path)

    if identity.kind == "data_uri":
        data, kind = _load_data_uri(identity)
    else:
        data, kind = _load_remote(identity, options, session)

    relative_path = identity.relative_path or hashed_relative_path(data, kind, REMOTE_DIR)
    logger.debug("Resolved %s source to %s (%s, %d bytes)", identity.kind, relative_path, kind, len(data))
    return ResolvedSource(identity, data, kind, relative_path)
