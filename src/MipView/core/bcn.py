"""Vectorized BC1/BC3/BC4/BC5 block decompression.

Every routine takes the raw block bytes for a ``blocks_y x blocks_x`` grid
(row-major, left-to-right then top-to-bottom) and returns an image array
cropped to ``height x width``. Texels inside a block are stored row-major.
"""

import logging

import numpy as np

from .formats import BLOCK_DIM, block_counts

logger = logging.getLogger("mip_viewer.bcn")

_TEXELS = BLOCK_DIM * BLOCK_DIM
_COLOR_SHIFTS = (2 * np.arange(_TEXELS)).astype(np.uint32)
_ALPHA_SHIFTS = (3 * np.arange(_TEXELS)).astype(np.uint64)


def _block_grid(data, width: int, height: int, block_bytes: int) -> np.ndarray:
    """Copy the required span into an ``(n_blocks, block_bytes)`` array."""
    blocks_x, blocks_y = block_counts(width, height)
    needed = blocks_x * blocks_y * block_bytes
    raw = np.frombuffer(data, dtype=np.uint8, count=needed).copy()
    return raw.reshape(blocks_x * blocks_y, block_bytes)


def _assemble(texels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Arrange ``(n_blocks, 16, C)`` texels into a cropped ``(H, W, C)`` image."""
    blocks_x, blocks_y = block_counts(width, height)
    channels = texels.shape[-1]
    grid = texels.reshape(blocks_y, blocks_x, BLOCK_DIM, BLOCK_DIM, channels)
    image = grid.transpose(0, 2, 1, 3, 4).reshape(
        blocks_y * BLOCK_DIM, blocks_x * BLOCK_DIM, channels
    )
    return np.ascontiguousarray(image[:height, :width])


def _u16(lo: np.ndarray, hi: np.ndarray) -> np.ndarray:
    return lo.astype(np.int64) | (hi.astype(np.int64) << 8)


def _split_565(color: np.ndarray) -> np.ndarray:
    """Split packed RGB565 values into ``(..., 3)`` 5/6/5-bit channels."""
    return np.stack([(color >> 11) & 0x1F, (color >> 5) & 0x3F, color & 0x1F], axis=-1)


def _expand_565(channels: np.ndarray) -> np.ndarray:
    """Expand 5/6/5-bit channels to 8 bits by bit replication."""
    r, g, b = channels[..., 0], channels[..., 1], channels[..., 2]
    return np.stack([(r << 3) | (r >> 2), (g << 2) | (g >> 4), (b << 3) | (b >> 2)], axis=-1)


def _color_indices(blocks: np.ndarray) -> np.ndarray:
    bits = np.ascontiguousarray(blocks[:, 4:8]).view("<u4")[:, 0]
    return ((bits[:, None] >> _COLOR_SHIFTS) & 0x3).astype(np.intp)


def _color_texels(blocks: np.ndarray, expand: bool, force_four_color: bool) -> np.ndarray:
    """Decode 8-byte colour blocks into ``(n, 16, 3)`` channel values.

    With ``expand`` the palette is built from 8-bit expanded endpoints,
    otherwise it stays in the endpoints' native 5:6:5 precision.
    """
    c0 = _u16(blocks[:, 0], blocks[:, 1])
    c1 = _u16(blocks[:, 2], blocks[:, 3])
    e0 = _split_565(c0)
    e1 = _split_565(c1)
    if expand:
        e0 = _expand_565(e0)
        e1 = _expand_565(e1)

    if force_four_color:
        four = np.ones(c0.shape, dtype=bool)
    else:
        four = c0 > c1
    four = four[:, None]
    p2 = np.where(four, (2 * e0 + e1) // 3, (e0 + e1) // 2)
    p3 = np.where(four, (e0 + 2 * e1) // 3, 0)
    palette = np.stack([e0, e1, p2, p3], axis=1)

    indices = _color_indices(blocks)
    rows = np.arange(len(blocks))[:, None]
    return palette[rows, indices]


def _alpha_texels(blocks: np.ndarray, scale: int) -> np.ndarray:
    """Decode 8-byte BC4-style blocks into ``(n, 16)`` values.

    ``scale`` widens the endpoints before interpolation (1 for 8-bit output,
    257 for 16-bit output). Interpolants use floor division.
    """
    a0 = blocks[:, 0].astype(np.int64)[:, None]
    a1 = blocks[:, 1].astype(np.int64)[:, None]
    top = 255 * scale

    j8 = np.arange(1, 7, dtype=np.int64)
    eight = ((7 - j8) * a0 + j8 * a1) * scale // 7
    j6 = np.arange(1, 5, dtype=np.int64)
    six = ((5 - j6) * a0 + j6 * a1) * scale // 5
    n = len(blocks)
    six = np.concatenate(
        [six, np.zeros((n, 1), dtype=np.int64), np.full((n, 1), top, dtype=np.int64)],
        axis=1,
    )
    interp = np.where(a0 > a1, eight, six)
    palette = np.concatenate([a0 * scale, a1 * scale, interp], axis=1)

    bits = np.zeros(n, dtype=np.uint64)
    for k in range(6):
        bits |= blocks[:, 2 + k].astype(np.uint64) << np.uint64(8 * k)
    indices = ((bits[:, None] >> _ALPHA_SHIFTS) & np.uint64(0x7)).astype(np.intp)
    rows = np.arange(n)[:, None]
    return palette[rows, indices]


def decode_bc1(data, width: int, height: int) -> np.ndarray:
    """Decode BC1 to packed RGB565, shape ``(H, W, 1)`` uint16.

    Palette interpolants are computed on the 5:6:5 endpoint fields and stay
    at that precision, so the two derived colours are quantized back to 565.
    Expanding them to 8 bits afterwards can differ by a step or two from
    decoders that interpolate in 8-bit space.

    Three-colour blocks map their fourth entry to black; the punch-through
    alpha bit is not representable in RGB565.
    """
    blocks = _block_grid(data, width, height, 8)
    texels = _color_texels(blocks, expand=False, force_four_color=False)
    packed = (texels[..., 0] << 11) | (texels[..., 1] << 5) | texels[..., 2]
    return _assemble(packed.astype(np.uint16)[..., None], width, height)


def decode_bc3(data, width: int, height: int) -> np.ndarray:
    """Decode BC3 to RGBA8, shape ``(H, W, 4)`` uint8."""
    blocks = _block_grid(data, width, height, 16)
    alpha = _alpha_texels(blocks[:, :8], scale=1)
    # The colour half of a BC3 block always interpolates four colours.
    rgb = _color_texels(blocks[:, 8:], expand=True, force_four_color=True)
    rgba = np.concatenate([rgb, alpha[..., None]], axis=-1).astype(np.uint8)
    return _assemble(rgba, width, height)


def decode_bc4(data, width: int, height: int) -> np.ndarray:
    """Decode unsigned BC4 to 16-bit luminance, shape ``(H, W, 1)`` uint16."""
    blocks = _block_grid(data, width, height, 8)
    red = _alpha_texels(blocks, scale=257)
    return _assemble(red.astype(np.uint16)[..., None], width, height)


def decode_bc5(data, width: int, height: int) -> np.ndarray:
    """Decode unsigned BC5 to 16-bit red/green, shape ``(H, W, 2)`` uint16."""
    blocks = _block_grid(data, width, height, 16)
    red = _alpha_texels(blocks[:, :8], scale=257)
    green = _alpha_texels(blocks[:, 8:], scale=257)
    rg = np.stack([red, green], axis=-1).astype(np.uint16)
    return _assemble(rg, width, height)


def expand_rgb565(packed: np.ndarray) -> np.ndarray:
    """Expand packed RGB565 samples to ``(..., 3)`` uint8 RGB."""
    channels = _split_565(packed.astype(np.int64))
    return _expand_565(channels).astype(np.uint8)
