"""Texture description dataclasses and document parsing."""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .errors import InvalidDescriptionError, UnknownFormatError
from .formats import ChannelLayout, FormatCatalog, PixelPacking, TextureFormat, packing_dtype

logger = logging.getLogger("mip_viewer.records")


def _positive_int(value, what: str) -> int:
    # bool is an int subclass; a JSON true is not a dimension.
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        else:
            raise InvalidDescriptionError(f"{what} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidDescriptionError(f"{what} must be > 0, got {value}")
    return value


def is_halving_chain(mips) -> bool:
    """Return True when every level is ``max(1, prev // 2)`` of its predecessor."""
    return all(
        cur.width == max(1, prev.width // 2) and cur.height == max(1, prev.height // 2)
        for prev, cur in zip(mips, mips[1:])
    )


@dataclass(frozen=True)
class MipDescriptor:
    """One resolution level of a texture."""

    width: int
    height: int
    payload_size: int

    def __post_init__(self) -> None:
        """Reject non-positive or non-integer fields."""
        object.__setattr__(self, "width", _positive_int(self.width, "Mip width"))
        object.__setattr__(self, "height", _positive_int(self.height, "Mip height"))
        object.__setattr__(
            self, "payload_size", _positive_int(self.payload_size, "Mip payload size")
        )

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height, "payloadSize": self.payload_size}


@dataclass(frozen=True)
class TextureDescription:
    """Format plus ordered mip chain; index in ``mips`` is the mip level."""

    format: TextureFormat
    mips: Tuple[MipDescriptor, ...]

    def __post_init__(self) -> None:
        """Normalize mips to a tuple and require at least one level."""
        if not isinstance(self.format, TextureFormat):
            raise InvalidDescriptionError(f"Invalid texture format: {self.format!r}")
        mips = tuple(self.mips)
        if not mips:
            raise InvalidDescriptionError("Texture description has no mips")
        object.__setattr__(self, "mips", mips)

    @property
    def base_width(self) -> int:
        return self.mips[0].width

    @property
    def base_height(self) -> int:
        return self.mips[0].height

    def is_halving_chain(self) -> bool:
        return is_halving_chain(self.mips)

    @classmethod
    def from_dict(cls, doc) -> "TextureDescription":
        """Build a description from a parsed description document.

        Each mip accepts ``width``/``height`` or ``dimension: [w, h]`` and
        ``payloadSize`` or ``payload_size``. A missing payload size defaults
        to the compressed size of the block grid.
        """
        if not isinstance(doc, dict):
            raise InvalidDescriptionError(
                f"Description must be a mapping, got {type(doc).__name__}"
            )
        try:
            texture_format = TextureFormat.parse(doc.get("format"))
        except UnknownFormatError as exc:
            raise InvalidDescriptionError(str(exc)) from exc

        raw_mips = doc.get("mips")
        if not isinstance(raw_mips, list) or not raw_mips:
            raise InvalidDescriptionError("Description 'mips' must be a non-empty list")

        mips = []
        for level, entry in enumerate(raw_mips):
            if not isinstance(entry, dict):
                raise InvalidDescriptionError(f"Mip {level} must be a mapping")
            if "dimension" in entry:
                dimension = entry["dimension"]
                if not isinstance(dimension, (list, tuple)) or len(dimension) < 2:
                    raise InvalidDescriptionError(
                        f"Mip {level} dimension must be [width, height], got {dimension!r}"
                    )
                width, height = dimension[0], dimension[1]
            else:
                width, height = entry.get("width"), entry.get("height")
            width = _positive_int(width, f"Mip {level} width")
            height = _positive_int(height, f"Mip {level} height")

            payload_size = entry.get("payloadSize", entry.get("payload_size"))
            if payload_size is None:
                payload_size = FormatCatalog.compressed_size(texture_format, width, height)
                logger.debug(
                    "Mip %d has no payload size; using block-grid size %d.",
                    level, payload_size,
                )
            mips.append(MipDescriptor(width, height, payload_size))

        return cls(texture_format, tuple(mips))

    @classmethod
    def from_json(cls, text) -> "TextureDescription":
        """Parse a JSON description document."""
        try:
            doc = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidDescriptionError(f"Failed to parse description JSON: {exc}") from exc
        return cls.from_dict(doc)

    def to_dict(self) -> dict:
        """Return the description as a document mapping."""
        return {"format": self.format.value, "mips": [m.to_dict() for m in self.mips]}


@dataclass(frozen=True)
class DecodedPixelBuffer:
    """Software-decoded pixels for one mip level.

    ``len(data)`` is ``decoded_bytes_per_pixel(format) * width * height``;
    ``packing`` says how those bytes are laid out.
    """

    texture_format: TextureFormat
    width: int
    height: int
    layout: ChannelLayout
    packing: PixelPacking
    data: bytes

    def __len__(self) -> int:
        return len(self.data)

    def to_array(self) -> np.ndarray:
        """Return a read-only ``(height, width, samples)`` view of the pixels."""
        dtype, samples = packing_dtype(self.packing)
        return np.frombuffer(self.data, dtype=dtype).reshape(self.height, self.width, samples)


@dataclass(frozen=True)
class NativeUpload:
    """Marker: upload the original compressed bytes without decoding."""

    texture_format: TextureFormat


DecodeResult = Union[DecodedPixelBuffer, NativeUpload]


@dataclass(frozen=True)
class MipUpload:
    """Outcome of preparing one mip level for the rendering collaborator.

    Exactly one of ``decoded`` / ``native`` is set for an available mip.
    ``compressed`` carries the original bytes for native uploads. An
    unavailable mip has neither and records why in ``error``.
    """

    level: int
    descriptor: MipDescriptor
    decoded: Optional[DecodedPixelBuffer] = None
    native: Optional[NativeUpload] = None
    compressed: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.decoded is not None or self.native is not None
