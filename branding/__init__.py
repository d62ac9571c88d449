# Poster Branding Module
# Geometry, compositing and DPI tagging for logo-branded poster exports

from .blending import BlendMode
from .compositor import LogoLayer, PosterCompositor
from .dpi import inject_dpi, set_jpeg_dpi, set_png_dpi
from .errors import BrandingError, EncodingFailure, InvalidInputImage
from .exporter import ExportResult, LogoInput, PosterExporter
from .geometry import (
    DEFAULT_CONTAINER_REGION,
    BackgroundPlate,
    ContainerRegion,
    LogoTransform,
    Rect,
    resolve_logo_rect,
    resolve_slot_rects,
)
from .imaging import ImageInput
from .presets import ExportFormat, ExportSettings, get_resolution, resolve_output_size
from .slots import LogoSlots

__all__ = [
    "BlendMode",
    "LogoLayer",
    "PosterCompositor",
    "inject_dpi",
    "set_jpeg_dpi",
    "set_png_dpi",
    "BrandingError",
    "EncodingFailure",
    "InvalidInputImage",
    "ExportResult",
    "LogoInput",
    "PosterExporter",
    "DEFAULT_CONTAINER_REGION",
    "BackgroundPlate",
    "ContainerRegion",
    "LogoTransform",
    "Rect",
    "resolve_logo_rect",
    "resolve_slot_rects",
    "ImageInput",
    "ExportFormat",
    "ExportSettings",
    "get_resolution",
    "resolve_output_size",
    "LogoSlots",
]
