"""
Error types raised by the branding engine.

Only unrecoverable conditions are raised. A malformed container during
DPI tagging and degenerate geometry are handled where they occur.
"""

from typing import Optional


class BrandingError(Exception):
    """Base class for branding engine failures."""


class InvalidInputImage(BrandingError):
    """An uploaded image was rejected before compositing."""

    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"
    DECODE_FAILED = "decode_failed"

    def __init__(self, message: str, reason: str = DECODE_FAILED, name: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.name = name


class EncodingFailure(BrandingError):
    """The composited surface could not be encoded."""
