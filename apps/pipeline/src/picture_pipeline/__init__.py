"""
This app runs inside the static site build. It:
1. Resolves image references (local files, URLs, data URIs)
2. Deduplicates them per identity for the whole build
3. Runs the conversion (using the picture-converter package) in a bounded pool
4. Hands picture descriptors back to the page generator

Usage:
    picture-pipeline --source-base content --output-base dist/assets posts/a/cover.jpg
"""

from .cache import ResultCache
from .config import ImageOptionPresets, PipelineConfig, create_image_options
from .limiter import ConcurrencyLimiter, default_concurrency
from .render import build_img_html, build_picture_html, render_inline_image
from .service import (
    ImageService,
    InlineImage,
    RemoteImagesDisabled,
    get_default_service,
    process_image,
)
from .source import (
    ResolvedSource,
    identify,
    is_data_asset,
    is_external_asset,
    is_remote_asset,
    load_source,
)

__all__ = [
    "PipelineConfig",
    "ImageOptionPresets",
    "create_image_options",
    "ResultCache",
    "ConcurrencyLimiter",
    "default_concurrency",
    "ResolvedSource",
    "identify",
    "load_source",
    "is_remote_asset",
    "is_data_asset",
    "is_external_asset",
    "ImageService",
    "InlineImage",
    "RemoteImagesDisabled",
    "get_default_service",
    "process_image",
    "build_picture_html",
    "build_img_html",
    "render_inline_image",
]
