"""
Print resolution (DPI) tagging for encoded PNG and JPEG bytes.

Works on already-encoded bytes without decoding pixels:
- PNG: inserts or replaces the pHYs chunk (pixels per meter, with CRC)
- JPEG: overwrites the density fields of the JFIF APP0 segment

A buffer that does not look like the expected container is returned
unchanged. The image is still valid without the tag, so this is a
warning rather than an error.
"""

import logging
import math
import numbers
import struct
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .presets import ExportFormat

logger = logging.getLogger(__name__)

# --- PNG ---
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
CHUNK_OVERHEAD = 12  # length + type + crc
IHDR = b"IHDR"
PHYS = b"pHYs"
IEND = b"IEND"
PHYS_UNIT_METER = 1
MAX_PNG_PPM = 0xFFFFFFFF
METERS_PER_INCH = 0.0254
CRC32_POLYNOMIAL = 0xEDB88320

# --- JPEG (JFIF APP0 field offsets from the start of the file) ---
SOI_MARKER = b"\xff\xd8"
APP0_MARKER = b"\xff\xe0"
APP0_OFFSET = 2
JFIF_ID_OFFSET = APP0_OFFSET + 4
JFIF_IDENTIFIER = b"JFIF\x00"
UNITS_OFFSET = APP0_OFFSET + 11
X_DENSITY_OFFSET = APP0_OFFSET + 12
Y_DENSITY_OFFSET = APP0_OFFSET + 14
JFIF_HEADER_END = Y_DENSITY_OFFSET + 2
JFIF_UNIT_DPI = 1
MAX_JPEG_DENSITY = 0xFFFF


@dataclass(frozen=True)
class PngChunk:
    """One chunk of a PNG stream, located by byte offset."""
    offset: int
    type: bytes
    data: bytes
    crc: int

    @property
    def end(self) -> int:
        return self.offset + CHUNK_OVERHEAD + len(self.data)


def crc32(data: bytes) -> int:
    """CRC-32 as used by PNG (reflected, bit at a time)."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            crc = (crc >> 1) ^ (CRC32_POLYNOMIAL & -(crc & 1))
    return crc ^ 0xFFFFFFFF


def iter_png_chunks(data: bytes) -> Iterator[PngChunk]:
    """
    Walk the chunks of a PNG stream, stopping after IEND.

    Stops early, without raising, at a chunk that runs past the end of
    the buffer.
    """
    offset = len(PNG_SIGNATURE)
    while offset + 8 <= len(data):
        length = struct.unpack(">I", data[offset:offset + 4])[0]
        chunk_type = data[offset + 4:offset + 8]
        end = offset + CHUNK_OVERHEAD + length
        if end > len(data):
            logger.debug(f"Truncated {chunk_type!r} chunk at offset {offset}")
            return
        crc = struct.unpack(">I", data[end - 4:end])[0]
        yield PngChunk(offset, chunk_type, data[offset + 8:end - 4], crc)
        if chunk_type == IEND:
            return
        offset = end


def pixels_per_meter(dpi: float) -> int:
    """DPI to pixels per meter, rounding halves up."""
    return math.floor(dpi / METERS_PER_INCH + 0.5)


def build_phys_chunk(dpi: float) -> bytes:
    """Complete pHYs chunk (length, type, payload, CRC) for a square DPI."""
    ppm = pixels_per_meter(dpi)
    payload = struct.pack(">IIB", ppm, ppm, PHYS_UNIT_METER)
    crc = crc32(PHYS + payload)
    return struct.pack(">I", len(payload)) + PHYS + payload + struct.pack(">I", crc)


def _check_dpi(dpi) -> float:
    if isinstance(dpi, bool) or not isinstance(dpi, numbers.Real) or not math.isfinite(dpi) or dpi <= 0:
        raise ValueError(f"dpi must be a positive number, got {dpi!r}")
    return float(dpi)


def set_png_dpi(data: bytes, dpi: float) -> bytes:
    """
    Tag a PNG stream with a physical resolution.

    Any existing pHYs chunk is replaced in place (extra copies are dropped);
    otherwise the new chunk goes right after IHDR.

    Args:
        data: Encoded PNG bytes
        dpi: Dots per inch for both axes

    Returns:
        Tagged PNG bytes, or ``data`` unchanged if it is not a usable PNG
    """
    ppm = pixels_per_meter(_check_dpi(dpi))
    if not 1 <= ppm <= MAX_PNG_PPM:
        raise ValueError(f"dpi {dpi!r} is out of range for a pHYs chunk")
    if not data.startswith(PNG_SIGNATURE):
        logger.warning("PNG signature not found, leaving bytes untagged")
        return data

    ihdr_end = None
    phys_spans: List[Tuple[int, int]] = []
    for chunk in iter_png_chunks(data):
        if chunk.type == IHDR:
            ihdr_end = chunk.end
        elif chunk.type == PHYS:
            phys_spans.append((chunk.offset, chunk.end))

    if ihdr_end is None:
        logger.warning("PNG IHDR chunk not found, leaving bytes untagged")
        return data

    new_chunk = build_phys_chunk(dpi)
    if not phys_spans:
        return data[:ihdr_end] + new_chunk + data[ihdr_end:]

    parts = []
    cursor = 0
    for i, (start, end) in enumerate(phys_spans):
        parts.append(data[cursor:start])
        if i == 0:
            parts.append(new_chunk)
        cursor = end
    parts.append(data[cursor:])
    return b"".join(parts)


def read_png_phys(data: bytes) -> Optional[Tuple[int, int, int]]:
    """Return (x_ppm, y_ppm, unit) of the first valid pHYs chunk, if any."""
    if not data.startswith(PNG_SIGNATURE):
        return None
    for chunk in iter_png_chunks(data):
        if chunk.type == PHYS and len(chunk.data) == 9:
            return struct.unpack(">IIB", chunk.data)
    return None


def _has_jfif_header(data) -> bool:
    return (
        len(data) >= JFIF_HEADER_END
        and data[0:2] == SOI_MARKER
        and data[APP0_OFFSET:APP0_OFFSET + 2] == APP0_MARKER
        and data[JFIF_ID_OFFSET:JFIF_ID_OFFSET + len(JFIF_IDENTIFIER)] == JFIF_IDENTIFIER
    )


def set_jpeg_dpi(data: bytes, dpi: float) -> bytes:
    """
    Tag a JPEG stream with a physical resolution.

    Sets the JFIF unit to dots per inch and writes ``dpi``, rounded to a
    whole number but not converted, into both density fields. The output
    has the same length as the input.

    Args:
        data: Encoded JPEG bytes starting with a JFIF APP0 segment
        dpi: Dots per inch for both axes

    Returns:
        Tagged JPEG bytes, or ``data`` unchanged if no JFIF header is found
    """
    density = math.floor(_check_dpi(dpi) + 0.5)
    if density > MAX_JPEG_DENSITY or density < 1:
        raise ValueError(f"dpi {dpi!r} is out of range for a JFIF density")
    if not _has_jfif_header(data):
        logger.warning("JFIF header not found, leaving bytes untagged")
        return data

    out = bytearray(data)
    out[UNITS_OFFSET] = JFIF_UNIT_DPI
    out[X_DENSITY_OFFSET:X_DENSITY_OFFSET + 2] = struct.pack(">H", density)
    out[Y_DENSITY_OFFSET:Y_DENSITY_OFFSET + 2] = struct.pack(">H", density)
    return bytes(out)


def read_jpeg_density(data: bytes) -> Optional[Tuple[int, int, int]]:
    """Return (unit, x_density, y_density) from the JFIF header, if present."""
    if not _has_jfif_header(data):
        return None
    x_density, y_density = struct.unpack(">HH", data[X_DENSITY_OFFSET:JFIF_HEADER_END])
    return (data[UNITS_OFFSET], x_density, y_density)


def inject_dpi(data: bytes, export_format: ExportFormat, dpi: float) -> bytes:
    """Tag encoded bytes of the given format with ``dpi``."""
    if export_format is ExportFormat.PNG:
        return set_png_dpi(data, dpi)
    return set_jpeg_dpi(data, dpi)


def read_dpi(data: bytes, export_format: ExportFormat) -> Optional[int]:
    """Horizontal DPI recorded in encoded bytes, or None if they carry no tag."""
    if export_format is ExportFormat.PNG:
        phys = read_png_phys(data)
        if phys is None or phys[2] != PHYS_UNIT_METER:
            return None
        return math.floor(phys[0] * METERS_PER_INCH + 0.5)
    density = read_jpeg_density(data)
    if density is None or density[0] != JFIF_UNIT_DPI:
        return None
    return density[1]
