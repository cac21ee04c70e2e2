"""
Image conversion orchestration for web delivery.

This module handles the high-level conversion workflow:
1. Probe intrinsic dimensions
2. Converge on the smallest encode pair that fits the byte budget
3. Write both variants next to each other, or neither
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from picture_shared.files import UnsupportedFormat, write_files_atomic
from picture_shared.protocol import (
    EncodedVariant,
    ImageKind,
    ProcessingOptions,
    ProcessingResult,
)

from .encode import EncodedPair, EncodeState, encode_pair, initial_state, next_state
from .paths import PlannedOutput, plan_outputs
from .probe import ImageMetadata, probe_image

logger = logging.getLogger(__name__)

SUPPORTED_KINDS: frozenset[str] = frozenset({"jpeg", "png"})


@dataclass(frozen=True)
class ConvergenceResult:
    """Final state of the search and the buffers it produced."""
    state: EncodeState
    pair: EncodedPair
    iterations: int
    within_budget: bool


def converge(
    data: bytes,
    kind: ImageKind,
    options: ProcessingOptions,
    metadata: ImageMetadata | None = None,
) -> ConvergenceResult:
    """
    Re-encode at smaller widths, then lower qualities, until the larger of
    the two variants fits options.max_bytes.

    With unknown dimensions there is nothing meaningful to iterate on, so a
    single pass is returned. When every lever is exhausted the last pair is
    returned even though it is over budget.
    """
    if metadata is None:
        metadata = probe_image(data)

    state = initial_state(metadata, options)
    iterations = 0

    while True:
        pair = encode_pair(data, kind, state)
        iterations += 1

        within_budget = pair.largest <= options.max_bytes
        if within_budget or not metadata.has_dimensions:
            return ConvergenceResult(state, pair, iterations, within_budget)

        following = next_state(state, kind, options)
        if following is None:
            logger.warning(
                "Could not fit %s image within %d bytes (largest variant %d bytes "
                "at width %d, jpeg q=%d, webp q=%d); keeping best effort",
                kind, options.max_bytes, pair.largest, state.width,
                state.jpeg_quality, state.webp_quality,
            )
            return ConvergenceResult(state, pair, iterations, within_budget)

        logger.debug(
            "Largest variant %d bytes over budget %d, retrying with %s",
            pair.largest, options.max_bytes, following,
        )
        state = following


def _variant(planned: PlannedOutput, data: bytes) -> EncodedVariant:
    return EncodedVariant(
        data=data,
        mime_type=planned.mime_type,
        relative_path=planned.relative_path,
        public_path=planned.public_path,
        file_path=planned.file_path,
    )


class ConversionJob:
    """
    Converts one decoded source into its modern and fallback variants.

    The job is deterministic: the same bytes and options always give the
    same final state and byte-identical files.
    """

    def __init__(
        self,
        data: bytes,
        kind: ImageKind,
        relative_path: str,
        options: ProcessingOptions | None = None,
    ):
        if kind not in SUPPORTED_KINDS:
            raise UnsupportedFormat(f"Unsupported image kind: {kind}")
        if not data:
            raise ValueError("Image data is empty")
        if not relative_path:
            raise ValueError("relative_path is required")

        self.data = data
        self.kind = kind
        self.relative_path = relative_path
        self.options = options or ProcessingOptions()

    def run(self) -> ProcessingResult:
        """Execute the conversion and write both files."""
        plan = plan_outputs(self.relative_path, self.kind, self.options)
        metadata = probe_image(self.data)
        if not metadata.has_dimensions:
            logger.warning("No dimensions for %s, encoding once at max width", self.relative_path)

        outcome = converge(self.data, self.kind, self.options, metadata)
        pair = outcome.pair

        write_files_atomic([
            (plan.modern.file_path, pair.modern),
            (plan.fallback.file_path, pair.fallback),
        ])

        logger.info(
            "Converted %s -> %s (%dx%d, %d iteration(s), modern=%d fallback=%d bytes)",
            self.relative_path, plan.modern.relative_path, pair.width, pair.height,
            outcome.iterations, len(pair.modern), len(pair.fallback),
        )

        return ProcessingResult(
            format=self.kind,
            width=pair.width,
            height=pair.height,
            modern=_variant(plan.modern, pair.modern),
            fallback=_variant(plan.fallback, pair.fallback),
            iterations=outcome.iterations,
            within_budget=outcome.within_budget,
            jpeg_quality=outcome.state.jpeg_quality if self.kind == "jpeg" else None,
            webp_quality=outcome.state.webp_quality if self.kind == "jpeg" else None,
        )
