"""
Image processing service for one build.

Every request goes through the same two layers:
    ResultCache        - one computation per identity key
    ConcurrencyLimiter - bounded number of encodes running at once

Call sites choose how to treat failures. Covers and local inline images are
required and abort the build; external inline images degrade to a plain
<img> pointing at the original reference.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Union

import requests

from picture_converter import ConversionJob, EncodeError
from picture_shared.files import AssetError
from picture_shared.protocol import (
    ImageIdentity,
    ProcessingOptions,
    ProcessingResult,
    parse_processing_options,
)

from .cache import ResultCache
from .limiter import ConcurrencyLimiter
from .source import identify, load_source

logger = logging.getLogger(__name__)


class RemoteImagesDisabled(AssetError):
    """Raised when a remote reference is used while remote images are off."""
    pass


@dataclass
class InlineImage:
    """An image referenced from a post body, ready for rendering."""
    src: str
    picture: dict[str, Any] | None = None
    external: bool = False
    result: ProcessingResult | None = None


OptionsLike = Union[ProcessingOptions, Mapping[str, Any], None]


class ImageService:
    """Processes source references into written asset pairs."""

    def __init__(
        self,
        options: OptionsLike = None,
        max_workers: int | None = None,
        session: requests.Session | None = None,
        allow_remote: bool = True,
    ):
        self.options = self._options(options, ProcessingOptions())
        self.allow_remote = allow_remote
        self.cache = ResultCache()
        self.limiter = ConcurrencyLimiter(max_workers)
        self._session = session

    def _options(self, options: OptionsLike, default: ProcessingOptions | None = None) -> ProcessingOptions:
        """Accept a ProcessingOptions record or a flat configuration mapping."""
        if options is None:
            return default or self.options
        if isinstance(options, ProcessingOptions):
            return options
        return parse_processing_options(options)

    def _convert(self, identity: ImageIdentity, options: ProcessingOptions) -> ProcessingResult:
        source = load_source(identity, options, self._session)
        return ConversionJob(source.data, source.kind, source.relative_path, options).run()

    def submit(
        self,
        reference: str | Path | ImageIdentity,
        options: OptionsLike = None,
        relative_path: str | None = None,
        relative_to: Path | str | None = None,
    ) -> Future:
        """
        Start (or join) processing of a reference or an already built identity.

        Identification errors such as PathEscape are raised here, on the
        caller's thread; everything after that surfaces from the future.
        """
        options = self._options(options)
        if isinstance(reference, ImageIdentity):
            identity = reference
        else:
            identity = identify(reference, options, relative_path, relative_to)
        return self._submit(identity, options)

    def _submit(self, identity: ImageIdentity, options: ProcessingOptions) -> Future:
        if identity.kind == "remote" and not self.allow_remote:
            raise RemoteImagesDisabled(
                f"Remote images are disabled: {_short(identity.raw_reference)}"
            )
        return self.cache.get_or_submit(
            identity.cache_key,
            lambda: self.limiter.submit(self._convert, identity, options),
        )

    def process_image(
        self,
        reference: str | Path | ImageIdentity,
        options: OptionsLike = None,
        relative_path: str | None = None,
        relative_to: Path | str | None = None,
    ) -> ProcessingResult:
        return self.submit(reference, options, relative_path, relative_to).result()

    def process_many(
        self,
        references: Iterable[str | Path | ImageIdentity],
        options: OptionsLike = None,
    ) -> list[ProcessingResult]:
        """Process several references concurrently, keeping input order."""
        futures = [self.submit(reference, options) for reference in references]
        return [future.result() for future in futures]

    def cover_picture(
        self,
        reference: str | Path | ImageIdentity,
        options: OptionsLike = None,
        relative_path: str | None = None,
        relative_to: Path | str | None = None,
    ) -> dict[str, Any] | None:
        """Picture descriptor for a required image. Any failure propagates."""
        return self.process_image(reference, options, relative_path, relative_to).picture

    def inline_picture(
        self,
        reference: str,
        options: OptionsLike = None,
        relative_path: str | None = None,
        relative_to: Path | str | None = None,
    ) -> InlineImage:
        """
        Picture for an image inside a post body.

        Local failures propagate, and so does a remote reference while remote
        images are disabled. External sources that cannot be fetched or
        decoded are returned with external=True and no picture.
        """
        options = self._options(options)
        identity = identify(reference, options, relative_path, relative_to)
        future = self._submit(identity, options)
        error = future.exception()
        if error is None:
            result = future.result()
            return InlineImage(src=reference, picture=result.picture, result=result)

        if identity.is_external and isinstance(error, (AssetError, EncodeError)):
            logger.warning("Using unprocessed external image %s: %s", _short(reference), error)
            return InlineImage(src=reference, external=True)
        raise error

    def close(self, cancel_pending: bool = False) -> None:
        """Stop the pool. cancel_pending drops queued work that has not started."""
        self.limiter.shutdown(cancel_futures=cancel_pending)

    def __enter__(self) -> ImageService:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def _short(reference: str, limit: int = 80) -> str:
    return reference if len(reference) <= limit else f"{reference[:limit]}..."


_default_service: ImageService | None = None
_default_lock = threading.Lock()


def get_default_service() -> ImageService:
    """Process-wide service; its cache lives until the process exits."""
    global _default_service
    with _default_lock:
        if _default_service is None:
            _default_service = ImageService()
        return _default_service


def process_image(
    reference: str | Path | ImageIdentity,
    options: OptionsLike = None,
    relative_path: str | None = None,
) -> ProcessingResult:
    return get_default_service().process_image(reference, options, relative_path)
