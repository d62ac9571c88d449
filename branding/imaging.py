"""
Raster surface helpers on top of Pillow.

Provides decoding of uploaded image bytes (PNG, JPEG, WEBP and SVG),
surface allocation and encoding. Decoding and encoding errors are
translated into the engine's error types.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .errors import EncodingFailure, InvalidInputImage
from .presets import ExportFormat

logger = logging.getLogger(__name__)

ACCEPTED_CONTENT_TYPES = {"image/png", "image/jpeg", "image/webp", "image/svg+xml"}
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


@dataclass
class ImageInput:
    """Raw uploaded image bytes."""
    data: bytes
    content_type: Optional[str] = None
    name: Optional[str] = None


def sniff_content_type(data: bytes) -> Optional[str]:
    """Guess an image MIME type from its leading bytes."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    head = data[:512].lstrip().lower()
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "image/svg+xml"
    return None


def _rasterize_svg(data: bytes) -> Image.Image:
    # cairosvg needs the native cairo library; import it only when an SVG arrives
    import cairosvg

    png_bytes = cairosvg.svg2png(bytestring=data)
    return Image.open(io.BytesIO(png_bytes))


def decode_image(
    upload: ImageInput,
    max_bytes: Optional[int] = DEFAULT_MAX_UPLOAD_BYTES
) -> Image.Image:
    """
    Decode uploaded bytes into an RGBA image.

    Args:
        upload: Raw bytes with optional declared MIME type
        max_bytes: Size ceiling, None for no limit

    Returns:
        Fully loaded RGBA image

    Raises:
        InvalidInputImage: Unsupported type, oversize or undecodable bytes
    """
    label = upload.name or "image"
    if not upload.data:
        raise InvalidInputImage(f"{label} is empty", InvalidInputImage.DECODE_FAILED, upload.name)

    if max_bytes is not None and len(upload.data) > max_bytes:
        raise InvalidInputImage(
            f"{label} is {len(upload.data)} bytes, limit is {max_bytes}",
            InvalidInputImage.TOO_LARGE,
            upload.name,
        )

    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if not content_type or content_type == "application/octet-stream":
        content_type = sniff_content_type(upload.data) or ""
    if content_type == "image/jpg":
        content_type = "image/jpeg"
    if content_type not in ACCEPTED_CONTENT_TYPES:
        raise InvalidInputImage(
            f"{label} has unsupported type {content_type or 'unknown'}",
            InvalidInputImage.UNSUPPORTED_TYPE,
            upload.name,
        )

    try:
        if content_type == "image/svg+xml":
            img = _rasterize_svg(upload.data)
        else:
            img = Image.open(io.BytesIO(upload.data))
        img.load()
        rgba = img.convert("RGBA")
    except ImportError as e:
        raise InvalidInputImage(f"SVG support is not installed: {e}", InvalidInputImage.UNSUPPORTED_TYPE, upload.name) from e
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise InvalidInputImage(f"Failed to decode {label}: {e}", InvalidInputImage.DECODE_FAILED, upload.name) from e

    if rgba is not img:
        img.close()
    logger.debug(f"Decoded {label} ({content_type}) at {rgba.size}")
    return rgba


def create_surface(width: int, height: int) -> Image.Image:
    """Transparent RGBA surface of the given size."""
    return Image.new("RGBA", (width, height), (0, 0, 0, 0))


def encode_surface(surface: Image.Image, export_format: ExportFormat, quality: float = 1.0) -> bytes:
    """
    Encode a surface to PNG or JPEG bytes.

    Args:
        surface: RGBA surface
        export_format: Output format
        quality: JPEG quality in (0, 1], ignored for PNG

    Returns:
        Encoded bytes

    Raises:
        EncodingFailure: If Pillow fails or produces no bytes
    """
    buffer = io.BytesIO()
    try:
        if export_format is ExportFormat.JPEG:
            # JPEG has no alpha; flatten onto white
            image = Image.new("RGB", surface.size, (255, 255, 255))
            image.paste(surface, mask=surface.getchannel("A"))
            jpeg_quality = min(100, max(1, round(quality * 100)))
            image.save(buffer, format="JPEG", quality=jpeg_quality)
        else:
            surface.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodingFailure(f"{export_format.value} encoding failed: {e}") from e

    data = buffer.getvalue()
    if not data:
        raise EncodingFailure(f"{export_format.value} encoding produced no bytes")
    return data
