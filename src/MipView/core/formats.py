"""Static per-format knowledge for the BC1-BC7 block compression family."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

import numpy as np

from .errors import UnknownFormatError

BLOCK_DIM = 4


class TextureFormat(Enum):
    """Enumerate supported block-compressed texture formats."""

    BC1 = "bc1"
    BC2 = "bc2"
    BC3 = "bc3"
    BC4 = "bc4"
    BC5 = "bc5"
    BC6 = "bc6"
    BC7 = "bc7"

    @classmethod
    def parse(cls, value) -> "TextureFormat":
        """Resolve a format name, enum member, or common alias."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownFormatError(f"Unknown texture format: {value!r}")
        key = value.strip().lower()
        key = _FORMAT_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnknownFormatError(f"Unknown texture format: {value!r}") from None


# DDS fourCC / DXGI-style spellings seen in existing description producers.
_FORMAT_ALIASES: Dict[str, str] = {
    "dxt1": "bc1",
    "dxt2": "bc2",
    "dxt3": "bc2",
    "dxt4": "bc3",
    "dxt5": "bc3",
    "ati1": "bc4",
    "bc4u": "bc4",
    "ati2": "bc5",
    "bc5u": "bc5",
    "bc6h": "bc6",
}


class ChannelLayout(Enum):
    """Enumerate channel layouts a format natively carries."""

    LUMINANCE = "luminance"
    LUMINANCE_ALPHA = "luminance_alpha"
    RGB = "rgb"
    RGBA = "rgba"

    @property
    def channel_count(self) -> int:
        return _CHANNEL_COUNTS[self]


_CHANNEL_COUNTS = {
    ChannelLayout.LUMINANCE: 1,
    ChannelLayout.LUMINANCE_ALPHA: 2,
    ChannelLayout.RGB: 3,
    ChannelLayout.RGBA: 4,
}


class PixelPacking(Enum):
    """Enumerate the sample packings a software decode produces."""

    RGB565 = "rgb565"
    RGBA8 = "rgba8"
    R16 = "r16"
    RG16 = "rg16"
    NONE = "none"


@dataclass(frozen=True)
class FormatInfo:
    """Describe block footprint and decoded-buffer policy for one format."""

    texture_format: TextureFormat
    block_bytes: int
    decoded_bytes_per_pixel: int
    native_layout: ChannelLayout
    packing: PixelPacking

    @property
    def software_decodable(self) -> bool:
        return self.packing is not PixelPacking.NONE


class FormatCatalog:
    """Lookup table of per-format block and decode properties.

    ``decoded_bytes_per_pixel`` is a fixed sizing policy shared with existing
    payload producers (BC1/BC4 -> 2, BC3/BC5 -> 4, otherwise the native
    channel count), not derived from block math.
    """

    _TABLE: Dict[TextureFormat, FormatInfo] = {
        TextureFormat.BC1: FormatInfo(
            TextureFormat.BC1, 8, 2, ChannelLayout.RGB, PixelPacking.RGB565
        ),
        TextureFormat.BC2: FormatInfo(
            TextureFormat.BC2, 16, 4, ChannelLayout.RGBA, PixelPacking.NONE
        ),
        TextureFormat.BC3: FormatInfo(
            TextureFormat.BC3, 16, 4, ChannelLayout.RGBA, PixelPacking.RGBA8
        ),
        TextureFormat.BC4: FormatInfo(
            TextureFormat.BC4, 8, 2, ChannelLayout.LUMINANCE, PixelPacking.R16
        ),
        TextureFormat.BC5: FormatInfo(
            TextureFormat.BC5, 16, 4, ChannelLayout.LUMINANCE_ALPHA, PixelPacking.RG16
        ),
        TextureFormat.BC6: FormatInfo(
            TextureFormat.BC6, 16, 3, ChannelLayout.RGB, PixelPacking.NONE
        ),
        TextureFormat.BC7: FormatInfo(
            TextureFormat.BC7, 16, 4, ChannelLayout.RGBA, PixelPacking.NONE
        ),
    }

    @classmethod
    def lookup(cls, texture_format) -> FormatInfo:
        """Return the catalog entry for ``texture_format``."""
        if not isinstance(texture_format, TextureFormat):
            raise UnknownFormatError(f"Not a texture format: {texture_format!r}")
        info = cls._TABLE.get(texture_format)
        if info is None:
            raise UnknownFormatError(f"No catalog entry for {texture_format.name}")
        return info

    @classmethod
    def block_bytes(cls, texture_format) -> int:
        return cls.lookup(texture_format).block_bytes

    @classmethod
    def decoded_bytes_per_pixel(cls, texture_format) -> int:
        return cls.lookup(texture_format).decoded_bytes_per_pixel

    @classmethod
    def native_layout(cls, texture_format) -> ChannelLayout:
        return cls.lookup(texture_format).native_layout

    @classmethod
    def compressed_size(cls, texture_format, width: int, height: int) -> int:
        """Return the minimum payload length covering the block grid."""
        blocks_x, blocks_y = block_counts(width, height)
        return cls.block_bytes(texture_format) * blocks_x * blocks_y

    @classmethod
    def decoded_size(cls, texture_format, width: int, height: int) -> int:
        return cls.decoded_bytes_per_pixel(texture_format) * width * height


def block_counts(width: int, height: int) -> Tuple[int, int]:
    """Return the number of 4x4 blocks along each axis."""
    return (width + BLOCK_DIM - 1) // BLOCK_DIM, (height + BLOCK_DIM - 1) // BLOCK_DIM


_PACKING_DTYPES = {
    PixelPacking.RGB565: (np.dtype("<u2"), 1),
    PixelPacking.RGBA8: (np.dtype(np.uint8), 4),
    PixelPacking.R16: (np.dtype("<u2"), 1),
    PixelPacking.RG16: (np.dtype("<u2"), 2),
}


def packing_dtype(packing: PixelPacking) -> Tuple[np.dtype, int]:
    """Return ``(dtype, samples_per_pixel)`` for a decoded packing."""
    try:
        return _PACKING_DTYPES[packing]
    except KeyError:
        raise ValueError(f"Packing {packing} carries no decoded samples") from None
