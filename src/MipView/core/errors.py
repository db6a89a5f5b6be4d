"""Exception taxonomy for description, layout, decode, and storage failures."""


class TextureError(Exception):
    """Base class for every recoverable texture-viewer failure."""


class UnknownFormatError(TextureError, ValueError):
    """Raised when a format value is outside the known block formats."""


class InvalidDescriptionError(TextureError, ValueError):
    """Raised when a texture description is malformed or has no mips."""


class InvalidMipChainError(TextureError, ValueError):
    """Raised when layout or geometry is requested for an empty mip chain."""


class DecodeError(TextureError):
    """Base class for block decoder failures."""


class ZeroDimensionError(DecodeError, ValueError):
    """Raised when a mip has a non-positive width or height."""


class TruncatedPayloadError(DecodeError):
    """Raised when a compressed payload is shorter than its block grid."""

    def __init__(self, message: str, expected: int = 0, actual: int = 0):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class UnsupportedFormatError(DecodeError):
    """Raised when a format has no software decode path."""

    def __init__(self, message: str, texture_format=None):
        super().__init__(message)
        self.texture_format = texture_format


class PayloadNotFoundError(TextureError, FileNotFoundError):
    """Raised when a store has no entry for a description or mip payload."""


class PayloadUnreadableError(TextureError, OSError):
    """Raised when a store entry exists but cannot be opened or mapped."""
