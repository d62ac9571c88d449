"""
Export resolution presets and output sizing.

Supports:
- "Use Original" (base poster's native pixels)
- 4K, Full HD and square social media presets
- Custom "WxH" dimensions
"""

import math
import re
from enum import Enum
from typing import Tuple, Optional
from dataclasses import dataclass


# On-screen preview canvas. Absolute pixel settings (corner radius,
# border width) are expressed at this size.
PREVIEW_WIDTH = 800
PREVIEW_HEIGHT = 450

MIN_OUTPUT_SIZE = 16
# Largest custom side; 10000x10000 RGBA is 400MB of surface
MAX_OUTPUT_SIZE = 10000
DEFAULT_DPI = 300
MAX_LOGOS = 6


class ExportFormat(Enum):
    """Encoded output formats."""
    PNG = "png"
    JPEG = "jpeg"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "ExportFormat":
        normalized = value.strip().lower()
        if normalized == "jpg":
            normalized = "jpeg"
        return cls(normalized)


class ResolutionKind(Enum):
    PRESET = "preset"
    ORIGINAL = "original"


@dataclass(frozen=True)
class ExportResolution:
    """A named output resolution."""
    id: str
    name: str
    width: int = 0
    height: int = 0
    kind: ResolutionKind = ResolutionKind.PRESET

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


ORIGINAL = ExportResolution(id="original", name="Use Original", kind=ResolutionKind.ORIGINAL)

RESOLUTION_PRESETS = {
    "original": ORIGINAL,
    "4k": ExportResolution(id="4k", name="4K (3840x2160)", width=3840, height=2160),
    "full_hd": ExportResolution(id="full_hd", name="Full HD (1920x1080)", width=1920, height=1080),
    "social": ExportResolution(id="social", name="Social Media (1080x1080)", width=1080, height=1080),
}


@dataclass(frozen=True)
class ExportSettings:
    """Format, resolution and JPEG quality for one export."""
    format: ExportFormat = ExportFormat.JPEG
    resolution: ExportResolution = ORIGINAL
    quality: float = 1.0

    def __post_init__(self):
        if not 0 < self.quality <= 1:
            raise ValueError(f"quality must be in (0, 1], got {self.quality}")


def parse_dimension_string(dim_str: str) -> Optional[Tuple[int, int]]:
    """
    Parse dimension string like "1080x1920" or "2160 x 3840".

    Args:
        dim_str: Dimension string in WxH format

    Returns:
        Tuple of (width, height) or None if parsing fails
    """
    match = re.fullmatch(r'(\d+)\s*[x×]\s*(\d+)', dim_str.strip(), re.IGNORECASE)
    if match:
        return (int(match.group(1)), int(match.group(2)))

    return None


def get_resolution(preset: Optional[str] = None) -> ExportResolution:
    """
    Look up an export resolution by preset id or "WxH" string.

    Args:
        preset: Preset id ("original", "4k", "full_hd", "social") or "WxH"

    Returns:
        Matching ExportResolution; "original" when preset is empty

    Raises:
        ValueError: If the preset is neither a known id nor a WxH string,
            or a WxH side exceeds MAX_OUTPUT_SIZE

    Examples:
        >>> get_resolution("full_hd").size
        (1920, 1080)
        >>> get_resolution("2160x3840").size
        (2160, 3840)
    """
    if not preset:
        return ORIGINAL

    preset_lower = preset.strip().lower().replace("-", "_").replace(" ", "_")
    if preset_lower in RESOLUTION_PRESETS:
        return RESOLUTION_PRESETS[preset_lower]

    dims = parse_dimension_string(preset)
    if dims:
        width, height = dims
        if width > MAX_OUTPUT_SIZE or height > MAX_OUTPUT_SIZE:
            raise ValueError(f"Custom resolution {width}x{height} exceeds {MAX_OUTPUT_SIZE}px per side")
        return ExportResolution(
            id=f"{width}x{height}",
            name=f"Custom ({width}x{height})",
            width=width,
            height=height,
        )

    raise ValueError(f"Unknown resolution preset: {preset!r}")


def get_resolution_options() -> list:
    """Get list of available resolution options for user selection."""
    return [
        {
            "id": res.id,
            "name": res.name,
            "kind": res.kind.value,
            "dimensions": None if res.kind is ResolutionKind.ORIGINAL else f"{res.width}x{res.height}",
        }
        for res in RESOLUTION_PRESETS.values()
    ]


def resolve_output_size(
    settings: ExportSettings,
    natural_width: int,
    natural_height: int
) -> Tuple[int, int]:
    """
    Resolve the export pixel size, independent of the preview size.

    Args:
        settings: Export settings carrying the chosen resolution
        natural_width: Base poster's native width
        natural_height: Base poster's native height

    Returns:
        Tuple of (width, height), each at least MIN_OUTPUT_SIZE
    """
    resolution = settings.resolution
    if resolution.kind is ResolutionKind.ORIGINAL:
        width, height = natural_width, natural_height
    else:
        width, height = resolution.width, resolution.height

    return (_clamp_dimension(width), _clamp_dimension(height))


def _clamp_dimension(value) -> int:
    try:
        value = math.floor(value or 0)
    except (TypeError, ValueError, OverflowError):
        value = 0
    return max(MIN_OUTPUT_SIZE, value)


def build_filename(tag: str, width: int, height: int, export_format: ExportFormat) -> str:
    """Suggested download name, e.g. ``poster_ssi_1920x1080.jpeg``."""
    return f"poster_{tag}_{width}x{height}.{export_format.extension}"
