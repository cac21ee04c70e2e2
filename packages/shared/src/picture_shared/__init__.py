"""
Shared data model, errors and I/O helpers for the picture pipeline.

The package is a dependency of both the converter and the pipeline app:
- Converter uses the option record, result types and file helpers
- Pipeline additionally uses the remote fetch and the error taxonomy
"""

from .protocol import (
    ImageIdentity,
    ImageKind,
    EncodedVariant,
    ProcessingOptions,
    ProcessingResult,
    SourceKind,
    parse_processing_options,
)
from .files import (
    ALLOWED_IMG_EXTS,
    AssetError,
    PathEscape,
    UnsupportedFormat,
    hashed_relative_path,
    is_in_dir,
    kind_from_ext,
    kind_from_mime,
    normalize_mime,
    to_posix,
    write_files_atomic,
)
from .fetch import (
    FetchError,
    FetchTimeout,
    RemoteError,
    RemoteImage,
    RemoteTooLarge,
    fetch_remote_image,
)

__all__ = [
    # Protocol
    "ImageKind",
    "SourceKind",
    "ImageIdentity",
    "EncodedVariant",
    "ProcessingOptions",
    "ProcessingResult",
    "parse_processing_options",
    # Files
    "ALLOWED_IMG_EXTS",
    "AssetError",
    "UnsupportedFormat",
    "PathEscape",
    "is_in_dir",
    "kind_from_ext",
    "kind_from_mime",
    "normalize_mime",
    "to_posix",
    "hashed_relative_path",
    "write_files_atomic",
    # Fetch
    "RemoteError",
    "FetchError",
    "FetchTimeout",
    "RemoteTooLarge",
    "RemoteImage",
    "fetch_remote_image",
]
