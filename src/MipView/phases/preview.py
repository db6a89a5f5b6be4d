"""Rendering collaborator interface and a software atlas preview.

A render target receives explicit per-mip uploads, hands back opaque
handles, and draws geometry with those handles. ``PreviewRenderTarget``
rasterizes the quads into an RGBA canvas and writes it with Pillow.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import numpy as np
from PIL import Image

from ..config import ViewerConfig
from ..core.bcn import expand_rgb565
from ..core.io import save_rgba8
from ..core.formats import PixelPacking
from ..core.records import DecodedPixelBuffer, MipUpload
from .geometry import RenderGeometry

logger = logging.getLogger("mip_viewer.preview")


class RenderTarget(ABC):
    """Destination for mip uploads and quad geometry."""

    @abstractmethod
    def begin(self, canvas_width: int, canvas_height: int) -> None:
        """Start a frame for a canvas of the given pixel size."""

    @abstractmethod
    def upload_mip(self, upload: MipUpload) -> Optional[int]:
        """Upload one mip and return its handle, or None when nothing is drawn."""

    @abstractmethod
    def draw(self, geometry: RenderGeometry, handles: Sequence[Optional[int]]) -> None:
        """Draw quad ``i`` of ``geometry`` with ``handles[i]``."""


def to_rgba8(buffer: DecodedPixelBuffer) -> np.ndarray:
    """Convert a decoded buffer to an ``(H, W, 4)`` uint8 display image."""
    samples = buffer.to_array()
    h, w = buffer.height, buffer.width
    out = np.empty((h, w, 4), dtype=np.uint8)
    if buffer.packing is PixelPacking.RGBA8:
        out[...] = samples
    elif buffer.packing is PixelPacking.RGB565:
        out[..., :3] = expand_rgb565(samples[..., 0])
        out[..., 3] = 255
    elif buffer.packing is PixelPacking.R16:
        grey = (samples[..., 0] >> 8).astype(np.uint8)
        out[..., 0] = grey
        out[..., 1] = grey
        out[..., 2] = grey
        out[..., 3] = 255
    elif buffer.packing is PixelPacking.RG16:
        out[..., 0] = (samples[..., 0] >> 8).astype(np.uint8)
        out[..., 1] = (samples[..., 1] >> 8).astype(np.uint8)
        out[..., 2] = 0
        out[..., 3] = 255
    else:
        raise ValueError(f"Cannot display packing {buffer.packing}")
    return out


def checkerboard(width: int, height: int, color, cell: int) -> np.ndarray:
    """Return an ``(H, W, 4)`` checkerboard of ``color`` and opaque black."""
    ys, xs = np.indices((height, width))
    on = ((xs // cell) + (ys // cell)) % 2 == 0
    out = np.zeros((height, width, 4), dtype=np.uint8)
    out[..., 3] = 255
    out[on] = np.asarray(color, dtype=np.uint8)
    return out


class PreviewRenderTarget(RenderTarget):
    """Software render target composing the atlas into an RGBA image."""

    def __init__(self, config: ViewerConfig = None):
        """Initialize an empty target; ``begin`` allocates the canvas."""
        self.config = config or ViewerConfig()
        self.cfg = self.config.preview
        self.canvas: Optional[np.ndarray] = None
        self._textures: Dict[int, np.ndarray] = {}
        self._next_handle = 1

    def begin(self, canvas_width: int, canvas_height: int) -> None:
        self.canvas = np.empty((canvas_height, canvas_width, 4), dtype=np.uint8)
        self.canvas[...] = np.asarray(self.cfg.background, dtype=np.uint8)
        self._textures.clear()
        self._next_handle = 1
        logger.debug("Preview canvas %dx%d", canvas_width, canvas_height)

    def upload_mip(self, upload: MipUpload) -> Optional[int]:
        if upload.decoded is not None:
            image = to_rgba8(upload.decoded)
        elif upload.native is not None or self.cfg.on_unavailable == "placeholder":
            # No software decoder for native-only formats; show where the mip sits.
            image = checkerboard(
                upload.descriptor.width,
                upload.descriptor.height,
                self.cfg.placeholder_color,
                self.cfg.checker_size,
            )
        else:
            logger.debug("Mip %d not drawn (%s)", upload.level, upload.error)
            return None
        handle = self._next_handle
        self._next_handle += 1
        self._textures[handle] = image
        return handle

    def draw(self, geometry: RenderGeometry, handles: Sequence[Optional[int]]) -> None:
        if self.canvas is None:
            raise RuntimeError("draw() called before begin()")
        if len(handles) != geometry.quad_count:
            raise ValueError(
                f"Expected {geometry.quad_count} handles, got {len(handles)}"
            )
        canvas_h, canvas_w = self.canvas.shape[:2]
        for quad, handle in enumerate(handles):
            if handle is None:
                continue
            texture = self._textures[handle]
            corners = geometry.quad_vertices(quad)
            # Rows: top-left, bottom-left, top-right, bottom-right.
            left, top = _to_pixels(corners[0, 0], corners[0, 1], canvas_w, canvas_h)
            right, bottom = _to_pixels(corners[3, 0], corners[3, 1], canvas_w, canvas_h)
            self._blit(texture, left, top, right - left, bottom - top)

    def _blit(self, texture: np.ndarray, x: int, y: int, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            return
        if texture.shape[1] != width or texture.shape[0] != height:
            with Image.fromarray(texture) as img:
                with img.resize((width, height), resample=Image.Resampling.NEAREST) as resized:
                    texture = np.asarray(resized, dtype=np.uint8)
        canvas_h, canvas_w = self.canvas.shape[:2]
        x0, y0 = max(x, 0), max(y, 0)
        x1, y1 = min(x + width, canvas_w), min(y + height, canvas_h)
        if x0 >= x1 or y0 >= y1:
            return
        self.canvas[y0:y1, x0:x1] = texture[y0 - y:y1 - y, x0 - x:x1 - x]

    def image(self) -> np.ndarray:
        if self.canvas is None:
            raise RuntimeError("Nothing rendered yet")
        return self.canvas

    def save(self, path: str) -> None:
        save_rgba8(self.image(), path)
        logger.info("Saved atlas preview to %s", path)


def _to_pixels(x: float, y: float, canvas_w: int, canvas_h: int) -> List[int]:
    """Map normalized ``(x, y)`` to integer pixel coordinates (y down)."""
    px = int(round((float(x) + 1.0) * 0.5 * canvas_w))
    py = int(round((1.0 - float(y)) * 0.5 * canvas_h))
    return [px, py]
