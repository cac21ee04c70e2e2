"""
Image Conversion Engine.

This package is the core resize/encode logic: probing, output path planning
and the byte-budget convergence loop. It is used by the pipeline app.

This package has no networking dependencies. It's pure image processing.
"""

from .convert import ConvergenceResult, ConversionJob, converge
from .encode import (
    QUALITY_FLOOR,
    QUALITY_STEP,
    EncodedPair,
    EncodeError,
    EncodeState,
    encode_pair,
    initial_state,
    next_state,
)
from .paths import (
    OutputPlan,
    PlannedOutput,
    build_post_asset_dir,
    build_post_cover_path,
    build_post_image_path,
    build_public_path,
    plan_outputs,
)
from .probe import ImageMetadata, probe_image

__all__ = [
    "ImageMetadata",
    "probe_image",
    "OutputPlan",
    "PlannedOutput",
    "plan_outputs",
    "build_public_path",
    "build_post_asset_dir",
    "build_post_cover_path",
    "build_post_image_path",
    "QUALITY_FLOOR",
    "QUALITY_STEP",
    "EncodeError",
    "EncodeState",
    "EncodedPair",
    "encode_pair",
    "initial_state",
    "next_state",
    "ConvergenceResult",
    "converge",
    "ConversionJob",
]
