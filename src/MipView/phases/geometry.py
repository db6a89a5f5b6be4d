"""Emit a textured quad per layout rect as vertex and index buffers."""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..core.errors import InvalidMipChainError
from .layout import LayoutRect

logger = logging.getLogger("mip_viewer.geometry")

VERTEX_COMPONENTS = 5  # x, y, z, u, v
VERTICES_PER_QUAD = 4
INDICES_PER_QUAD = 6

# Top-left, bottom-left, top-right / bottom-left, bottom-right, top-right.
_QUAD_INDICES = np.array([0, 1, 2, 1, 3, 2], dtype=np.uint32)


@dataclass(frozen=True)
class RenderGeometry:
    """Interleaved ``(x, y, z, u, v)`` float32 vertices and uint32 indices."""

    vertices: np.ndarray
    indices: np.ndarray

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def index_count(self) -> int:
        return int(self.indices.shape[0])

    @property
    def quad_count(self) -> int:
        return self.vertex_count // VERTICES_PER_QUAD

    @property
    def vertex_stride(self) -> int:
        return VERTEX_COMPONENTS * self.vertices.itemsize

    def quad_vertices(self, quad: int) -> np.ndarray:
        """Return the four ``(x, y, z, u, v)`` rows of one quad."""
        start = quad * VERTICES_PER_QUAD
        return self.vertices[start:start + VERTICES_PER_QUAD]

    def vertex_bytes(self) -> bytes:
        return self.vertices.astype("<f4", copy=False).tobytes()

    def index_bytes(self) -> bytes:
        return self.indices.astype("<u4", copy=False).tobytes()


def emit(rects: Sequence[LayoutRect]) -> RenderGeometry:
    """Build one quad (4 vertices, 6 indices) per rect, in order.

    Triangles are ``{0, 1, 2}`` and ``{1, 3, 2}`` offset by ``4 * i``, both
    counter-clockwise. UV ``v`` grows downward with the decoded pixel rows.
    """
    if not rects:
        raise InvalidMipChainError("Cannot emit geometry for an empty mip chain")

    vertices = np.empty((len(rects) * VERTICES_PER_QUAD, VERTEX_COMPONENTS), dtype=np.float32)
    for i, rect in enumerate(rects):
        left, top, right, bottom = rect.left, rect.top, rect.right, rect.bottom
        vertices[i * VERTICES_PER_QUAD:(i + 1) * VERTICES_PER_QUAD] = (
            (left, top, 0.0, rect.u0, rect.v0),
            (left, bottom, 0.0, rect.u0, rect.v1),
            (right, top, 0.0, rect.u1, rect.v0),
            (right, bottom, 0.0, rect.u1, rect.v1),
        )

    offsets = np.arange(len(rects), dtype=np.uint32) * VERTICES_PER_QUAD
    indices = (offsets[:, None] + _QUAD_INDICES[None, :]).reshape(-1)

    logger.debug("Emitted %d vertices / %d indices", len(vertices), len(indices))
    vertices.flags.writeable = False
    indices.flags.writeable = False
    return RenderGeometry(vertices, indices)
