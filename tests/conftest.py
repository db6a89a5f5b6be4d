"""Shared test fixtures."""

import shutil
import struct
import tempfile

import pytest

from MipView.config import ViewerConfig
from MipView.core import DirectoryPayloadStore, MipDescriptor, TextureDescription, TextureFormat


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def default_config():
    config = ViewerConfig()
    config.show_progress = False
    return config


@pytest.fixture
def store(tmp_dir):
    return DirectoryPayloadStore(tmp_dir)


def bc1_block(c0, c1, bits=0):
    """Pack one 8-byte colour block."""
    return struct.pack("<HHI", c0, c1, bits)


def alpha_block(a0, a1, indices=()):
    """Pack one 8-byte BC4-style block from up to 16 three-bit indices."""
    bits = 0
    for i, idx in enumerate(indices):
        bits |= (idx & 0x7) << (3 * i)
    return bytes([a0, a1]) + bits.to_bytes(6, "little")


def solid_payload(texture_format, width, height):
    """Return a payload of identical blocks covering a ``width x height`` mip."""
    blocks = ((width + 3) // 4) * ((height + 3) // 4)
    if texture_format is TextureFormat.BC1:
        block = bc1_block(0xF800, 0x001F)
    elif texture_format is TextureFormat.BC4:
        block = alpha_block(200, 10)
    elif texture_format is TextureFormat.BC3:
        block = alpha_block(255, 0) + bc1_block(0x07E0, 0x0000)
    else:
        block = alpha_block(255, 0) + alpha_block(0, 255)
    return block * blocks


def halving_chain(texture_format, width, height):
    """Return ``(description, payloads)`` for a full halving chain."""
    from MipView.core import FormatCatalog

    mips = []
    payloads = []
    w, h = width, height
    while True:
        size = FormatCatalog.compressed_size(texture_format, w, h)
        mips.append(MipDescriptor(w, h, size))
        payloads.append(solid_payload(texture_format, w, h))
        if w == 1 and h == 1:
            break
        w, h = max(1, w // 2), max(1, h // 2)
    return TextureDescription(texture_format, mips), payloads
