"""
Remote image fetching.

A fetch is a single attempt: no retries. The declared Content-Length is
checked before the body is read and the streamed body is checked again,
since the header may be missing or wrong.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from urllib.parse import urlparse

import requests

from .files import AssetError, normalize_mime

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
USER_AGENT = "picture-pipeline/1.0 (+static site build)"


class RemoteError(AssetError):
    """Base exception for remote image sources."""
    pass


class FetchError(RemoteError):
    """Raised on a non-2xx response or a network failure."""
    pass


class FetchTimeout(RemoteError):
    """Raised when the fetch does not finish within the deadline."""
    pass


class RemoteTooLarge(RemoteError):
    """Raised when the declared or actual payload exceeds the size limit."""
    pass


@dataclass
class RemoteImage:
    url: str
    data: bytes = field(repr=False)
    content_type: str | None = None


def get_image_headers(url: str) -> dict[str, str]:
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "image/png,image/jpeg,image/*;q=0.8,*/*;q=0.5",
    }
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        headers["Referer"] = f"{parsed.scheme}://{parsed.netloc}"
    return headers


def _validate_size(size: int | None, max_bytes: int, url: str) -> None:
    if size is not None and size > max_bytes:
        raise RemoteTooLarge(
            f"Remote image too large ({size} bytes, max {max_bytes}): {url}"
        )


def _declared_length(response: requests.Response) -> int | None:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.debug("Ignoring malformed Content-Length %r", raw)
        return None


def fetch_remote_image(
    url: str,
    max_bytes: int,
    timeout: float,
    session: requests.Session | None = None,
) -> RemoteImage:
    """
    Download an image, enforcing a size limit and a total deadline.

    The deadline is checked between chunks. A read that stalls is cut off by
    the per-read timeout, so a fetch overruns the deadline by at most one
    read timeout.

    Raises:
        FetchError: non-2xx status or network failure
        FetchTimeout: deadline exceeded
        RemoteTooLarge: payload over max_bytes
    """
    http = session or requests
    deadline = time.monotonic() + timeout

    logger.debug("Fetching %s", url)
    try:
        response = http.get(
            url,
            headers=get_image_headers(url),
            timeout=timeout,
            stream=True,
            allow_redirects=True,
        )
    except requests.Timeout as e:
        raise FetchTimeout(f"Remote image fetch timed out after {timeout}s: {url}") from e
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch image: {url}: {e}") from e

    with response:
        if not 200 <= response.status_code < 300:
            raise FetchError(f"Failed to fetch image ({response.status_code}): {url}")

        content_type = normalize_mime(response.headers.get("Content-Type"))
        _validate_size(_declared_length(response), max_bytes, url)

        chunks: list[bytes] = []
        received = 0
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if time.monotonic() > deadline:
                    raise FetchTimeout(
                        f"Remote image fetch timed out after {timeout}s: {url}"
                    )
                if not chunk:
                    continue
                received += len(chunk)
                _validate_size(received, max_bytes, url)
                chunks.append(chunk)
        except requests.RequestException as e:
            # stalled reads surface from iter_content as ConnectionError
            if isinstance(e, requests.Timeout) or time.monotonic() >= deadline:
                raise FetchTimeout(
                    f"Remote image fetch timed out after {timeout}s: {url}"
                ) from e
            raise FetchError(f"Failed to read image body: {url}: {e}") from e

    data = b"".join(chunks)
    _validate_size(len(data), max_bytes, url)
    logger.debug("Fetched %s (%d bytes, %s)", url, len(data), content_type)
    return RemoteImage(url=url, data=data, content_type=content_type)
