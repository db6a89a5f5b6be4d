"""Image output helpers for rendered atlas canvases."""

import logging
import os
import threading
from pathlib import Path

import numpy as np
from PIL import Image

logger = logging.getLogger("mip_viewer.io")


def save_rgba8(arr: np.ndarray, path: str) -> None:
    """Save an ``(H, W, 4)`` uint8 array as an image.

    Uses atomic write (temp file + ``os.replace``) to prevent truncated
    output on crash. The format follows the path's extension.
    """
    if arr.ndim != 3 or arr.shape[2] != 4 or arr.size == 0:
        raise ValueError(f"Expected a non-empty (H, W, 4) array, got shape {arr.shape}")
    if arr.dtype != np.uint8:
        raise ValueError(f"Expected uint8 pixels, got {arr.dtype}")

    ext = Path(path).suffix.lower()
    parent_dir = os.path.dirname(path) or "."
    os.makedirs(parent_dir, exist_ok=True)

    # Keep original extension so Pillow can infer the format.
    tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}{ext}"
    try:
        with Image.fromarray(np.ascontiguousarray(arr)) as img:
            if ext in (".jpg", ".jpeg"):
                with img.convert("RGB") as rgb:
                    rgb.save(tmp_path)
            else:
                img.save(tmp_path)
        os.replace(tmp_path, path)
        logger.debug("Wrote %dx%d image to %s", arr.shape[1], arr.shape[0], path)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                logger.warning("Failed to remove temp file %s", tmp_path)


def load_rgba8(path: str) -> np.ndarray:
    """Load an image file as an ``(H, W, 4)`` uint8 array."""
    with Image.open(path) as img:
        with img.convert("RGBA") as rgba:
            return np.asarray(rgba, dtype=np.uint8).copy()
