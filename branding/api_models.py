"""
Branding API models for FastAPI endpoints.

Export options travel as a JSON form field next to the uploaded files.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List

from .blending import BlendMode
from .geometry import BackgroundPlate, LogoTransform
from .presets import DEFAULT_DPI, MAX_LOGOS, ExportFormat, ExportSettings, get_resolution


class LogoTransformOptions(BaseModel):
    """User adjustments for one logo (pixel values at preview scale)."""
    zoom: float = Field(100.0, gt=0, le=1000)
    rotation: float = Field(0.0, ge=-180, le=180)
    opacity: float = Field(100.0, ge=0, le=100)
    radius: float = Field(0.0, ge=0)
    border_width: float = Field(0.0, ge=0)
    border_color: str = Field("#ffffff", pattern=r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
    blend_mode: BlendMode = BlendMode.SOURCE_OVER
    horizontal_offset: float = 0.0
    vertical_offset: float = 0.0

    def to_transform(self) -> LogoTransform:
        return LogoTransform(
            zoom_percent=self.zoom,
            rotation_degrees=self.rotation,
            opacity_percent=self.opacity,
            corner_radius_px=self.radius,
            border_width_px=self.border_width,
            border_color=self.border_color,
            blend_mode=self.blend_mode,
            horizontal_offset_percent=self.horizontal_offset,
            vertical_offset_percent=self.vertical_offset,
        )


class PlateOptions(BaseModel):
    """White background plate behind the logo(s)."""
    enabled: bool = False
    horizontal_padding: float = Field(15.0, ge=0)
    vertical_padding: float = Field(15.0, ge=0)
    radius: float = Field(0.0, ge=0)

    def to_plate(self) -> BackgroundPlate:
        return BackgroundPlate(
            enabled=self.enabled,
            horizontal_padding_percent=self.horizontal_padding,
            vertical_padding_percent=self.vertical_padding,
            corner_radius_px=self.radius,
        )


class ExportOptions(BaseModel):
    """Options shared by every export request."""
    format: str = "jpeg"
    resolution: str = "original"  # original, 4k, full_hd, social or "WxH"
    quality: float = Field(1.0, gt=0, le=1)
    dpi: int = Field(DEFAULT_DPI, ge=1, le=0xFFFF)
    plate: PlateOptions = Field(default_factory=PlateOptions)

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        return ExportFormat.parse(value).value

    @field_validator("resolution")
    @classmethod
    def _known_resolution(cls, value: str) -> str:
        get_resolution(value)
        return value

    def to_settings(self) -> ExportSettings:
        return ExportSettings(
            format=ExportFormat.parse(self.format),
            resolution=get_resolution(self.resolution),
            quality=self.quality,
        )


class SingleLogoExportOptions(ExportOptions):
    """Options for a single-logo export."""
    transform: LogoTransformOptions = Field(default_factory=LogoTransformOptions)


class MultiLogoExportOptions(ExportOptions):
    """Options for a slotted multi-logo export."""
    format: str = "png"
    quality: float = Field(0.92, gt=0, le=1)
    slots: Optional[int] = Field(None, ge=1, le=MAX_LOGOS)  # defaults to the number of logos
    logo_radius: float = Field(12.0, ge=0)
    container_outline: bool = True
    plate: PlateOptions = Field(default_factory=lambda: PlateOptions(radius=20.0))
    transforms: List[LogoTransformOptions] = Field(default_factory=list, max_length=MAX_LOGOS)

    def transform_for(self, index: int) -> LogoTransform:
        """Per-slot transform, falling back to the shared logo radius."""
        if index < len(self.transforms):
            return self.transforms[index].to_transform()
        return LogoTransform(corner_radius_px=self.logo_radius)


class BrandingOptionsResponse(BaseModel):
    """Response with available export options."""
    resolutions: List[dict]
    formats: List[str]
    blend_modes: List[str]
    max_logos: int
    defaults: dict
