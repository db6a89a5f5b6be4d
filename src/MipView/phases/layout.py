"""Staircase packing of a mip chain's display quads onto one canvas.

The canvas is ``(2 * w0 - 1) x h0``: when every level is half the size of
the previous one and sits directly to the right of it, the widths sum to
``2 * w0 - 1``. Rects live in a normalized [-1, 1] space whose origin is the
canvas's top-left corner at ``(-1, +1)``; each level is placed flush with the
bottom edge, to the right of its predecessor.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from ..core.errors import InvalidMipChainError
from ..core.records import MipDescriptor, is_halving_chain

logger = logging.getLogger("mip_viewer.layout")


@dataclass(frozen=True)
class LayoutRect:
    """Normalized placement of one mip quad plus its UV range."""

    origin_x: float
    origin_y: float
    extent_x: float
    extent_y: float
    u0: float = 0.0
    v0: float = 0.0
    u1: float = 1.0
    v1: float = 1.0

    @property
    def left(self) -> float:
        return self.origin_x

    @property
    def top(self) -> float:
        return self.origin_y

    @property
    def right(self) -> float:
        return self.origin_x + self.extent_x

    @property
    def bottom(self) -> float:
        return self.origin_y - self.extent_y


@dataclass(frozen=True)
class MipChainLayout:
    """Canvas size in pixels and one rect per mip, in mip order."""

    canvas_width: int
    canvas_height: int
    rects: Tuple[LayoutRect, ...]

    def __len__(self) -> int:
        return len(self.rects)


def canvas_size(mips: Sequence[MipDescriptor], sum_actual_widths: bool = False) -> Tuple[int, int]:
    """Return ``(canvas_width, canvas_height)`` for a non-empty chain."""
    if not mips:
        raise InvalidMipChainError("Cannot lay out an empty mip chain")
    base = mips[0]
    width = 2 * base.width - 1
    if sum_actual_widths:
        width = max(width, sum(m.width for m in mips))
    return width, base.height


def compute_layout(
    mips: Sequence[MipDescriptor],
    sum_actual_widths: bool = False,
    warn_non_halving: bool = True,
) -> MipChainLayout:
    """Compute the staircase layout for ``mips``.

    Raises ``InvalidMipChainError`` when ``mips`` is empty. Chains that are
    not strictly halving are still laid out; quads may then overlap or run
    past the canvas unless ``sum_actual_widths`` is set.
    """
    mips = tuple(mips)
    canvas_w, canvas_h = canvas_size(mips, sum_actual_widths)
    if warn_non_halving and not is_halving_chain(mips):
        logger.warning(
            "Mip chain %s is not a halving chain; staircase layout may overlap "
            "or exceed the %dx%d canvas.",
            [(m.width, m.height) for m in mips], canvas_w, canvas_h,
        )

    rects = []
    x, y = -1.0, 1.0
    for mip in mips:
        extent_x = (mip.width / canvas_w) * 2.0
        extent_y = (mip.height / canvas_h) * 2.0
        rects.append(LayoutRect(x, y, extent_x, extent_y))
        x += extent_x
        y = -1.0 + extent_y / 2.0

    logger.debug("Laid out %d mips on a %dx%d canvas", len(rects), canvas_w, canvas_h)
    return MipChainLayout(canvas_w, canvas_h, tuple(rects))
