"""Core utilities -- re-exports all public symbols for convenience."""

from .errors import (
    TextureError,
    UnknownFormatError,
    InvalidDescriptionError,
    InvalidMipChainError,
    DecodeError,
    ZeroDimensionError,
    TruncatedPayloadError,
    UnsupportedFormatError,
    PayloadNotFoundError,
    PayloadUnreadableError,
)
from .formats import (
    TextureFormat, ChannelLayout, PixelPacking, FormatInfo, FormatCatalog,
    block_counts, packing_dtype,
)
from .records import (
    MipDescriptor, TextureDescription, DecodedPixelBuffer, NativeUpload,
    MipUpload, is_halving_chain,
)
from .store import PayloadStore, DirectoryPayloadStore
from .io import save_rgba8, load_rgba8
from .logging import setup_logging

__all__ = [
    "TextureError", "UnknownFormatError", "InvalidDescriptionError",
    "InvalidMipChainError", "DecodeError", "ZeroDimensionError",
    "TruncatedPayloadError", "UnsupportedFormatError", "PayloadNotFoundError",
    "PayloadUnreadableError",
    "TextureFormat", "ChannelLayout", "PixelPacking", "FormatInfo", "FormatCatalog",
    "block_counts", "packing_dtype",
    "MipDescriptor", "TextureDescription", "DecodedPixelBuffer", "NativeUpload",
    "MipUpload", "is_halving_chain",
    "PayloadStore", "DirectoryPayloadStore",
    "save_rgba8", "load_rgba8",
    "setup_logging",
]
