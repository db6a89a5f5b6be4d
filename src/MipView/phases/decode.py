"""Dispatch compressed mip payloads to their block decoders.

BC1/BC3/BC4/BC5 are decoded in software. BC6/BC7 are reported as
native-upload-only, and BC2 is rejected as unsupported. An unsupported
format never produces a zeroed or partially filled buffer.
"""

import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Optional

from ..config import ViewerConfig
from ..core import bcn
from ..core.errors import TruncatedPayloadError, UnsupportedFormatError, ZeroDimensionError
from ..core.formats import FormatCatalog, TextureFormat, packing_dtype
from ..core.records import DecodedPixelBuffer, DecodeResult, NativeUpload

logger = logging.getLogger("mip_viewer.decode")

_KERNELS = {
    TextureFormat.BC1: bcn.decode_bc1,
    TextureFormat.BC3: bcn.decode_bc3,
    TextureFormat.BC4: bcn.decode_bc4,
    TextureFormat.BC5: bcn.decode_bc5,
}


class DecodeCache:
    """Thread-safe LRU of decode results keyed by payload content."""

    def __init__(self, max_entries: int = 64):
        self.max_entries = max_entries
        self._entries: "OrderedDict[tuple, DecodeResult]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(texture_format: TextureFormat, width: int, height: int, payload) -> tuple:
        digest = hashlib.sha256(payload).hexdigest()
        return texture_format, width, height, digest

    def get(self, key: tuple) -> Optional[DecodeResult]:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return result

    def put(self, key: tuple, result: DecodeResult) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0


class BlockDecoder:
    """Decode block-compressed mip payloads with per-format dispatch."""

    def __init__(self, config: ViewerConfig = None, cache: Optional[DecodeCache] = None):
        """Initialize decoder with runtime configuration and optional cache."""
        self.config = config or ViewerConfig()
        self.cfg = self.config.decode
        if cache is None and self.cfg.cache_entries > 0:
            cache = DecodeCache(self.cfg.cache_entries)
        self.cache = cache

    def decode(
        self,
        texture_format: TextureFormat,
        width: int,
        height: int,
        compressed,
        allow_native_upload: Optional[bool] = None,
    ) -> DecodeResult:
        """Decode one mip, or report that it needs a native compressed upload.

        Raises ``ZeroDimensionError`` for non-positive sizes,
        ``TruncatedPayloadError`` when ``compressed`` does not cover the block
        grid, and ``UnsupportedFormatError`` for BC2 (and for BC6/BC7 when
        native upload is not allowed).
        """
        if allow_native_upload is None:
            allow_native_upload = self.cfg.allow_native_upload
        info = FormatCatalog.lookup(texture_format)

        if width <= 0 or height <= 0:
            raise ZeroDimensionError(
                f"{texture_format.name} mip has non-positive size {width}x{height}"
            )
        if texture_format is TextureFormat.BC2:
            raise UnsupportedFormatError(
                "BC2 has no decode path and no native-upload fallback",
                texture_format=texture_format,
            )

        expected = FormatCatalog.compressed_size(texture_format, width, height)
        actual = len(compressed)
        if actual < expected:
            raise TruncatedPayloadError(
                f"{texture_format.name} {width}x{height} payload needs {expected} bytes, "
                f"got {actual}",
                expected=expected,
                actual=actual,
            )

        # BC2 is already rejected, so the rest are native-upload formats.
        if not info.software_decodable:
            if not allow_native_upload:
                raise UnsupportedFormatError(
                    f"{texture_format.name} has no software decoder",
                    texture_format=texture_format,
                )
            logger.debug(
                "%s %dx%d routed to native compressed upload.",
                texture_format.name, width, height,
            )
            return NativeUpload(texture_format)

        key = None
        if self.cache is not None:
            key = DecodeCache.make_key(
                texture_format, width, height, memoryview(compressed)[:expected]
            )
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Decode cache hit for %s %dx%d", texture_format.name, width, height)
                return cached

        pixels = _KERNELS[texture_format](compressed, width, height)
        dtype, _ = packing_dtype(info.packing)
        data = pixels.astype(dtype, copy=False).tobytes()
        decoded_size = FormatCatalog.decoded_size(texture_format, width, height)
        if len(data) != decoded_size:
            raise RuntimeError(
                f"{texture_format.name} decode produced {len(data)} bytes, "
                f"expected {decoded_size}"
            )

        result = DecodedPixelBuffer(
            texture_format=texture_format,
            width=width,
            height=height,
            layout=info.native_layout,
            packing=info.packing,
            data=data,
        )
        if key is not None:
            self.cache.put(key, result)
        logger.debug(
            "Decoded %s %dx%d (%d -> %d bytes)",
            texture_format.name, width, height, expected, len(data),
        )
        return result
