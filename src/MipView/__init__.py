"""Provide package metadata for `MipView`.

Decode block-compressed (BC1-BC7) mip chains and lay them out as a
staircase atlas for inspection.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
