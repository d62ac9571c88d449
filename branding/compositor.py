"""
PosterCompositor - layered drawing of logos onto a base poster.

Draw order:
1. Base poster stretched to the output size
2. Optional white background plate (rounded corners)
3. Each logo: resized, corner-clipped, faded, rotated, blended
4. Each logo's border stroke

Absolute pixel settings (corner radii, border widths) are given at
preview size and scaled by output_width / preview_width, so exports at
any resolution look like the preview.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageChops

from .blending import BlendMode, composite_layer
from .geometry import (
    BackgroundPlate,
    ContainerRegion,
    LogoTransform,
    Rect,
    apply_slot_transform,
    plate_rect,
    resolve_logo_rect,
    resolve_slot_rects,
    slot_rects,
)
from .presets import PREVIEW_HEIGHT, PREVIEW_WIDTH
from .shapes import rounded_rect_mask, stroke_rounded_rect

logger = logging.getLogger(__name__)

PLATE_COLOR = (255, 255, 255, 255)
CONTAINER_OUTLINE_RADIUS = 20
CONTAINER_OUTLINE_WIDTH = 2
CONTAINER_OUTLINE_COLOR = (255, 255, 255, 26)


@dataclass
class LogoLayer:
    """A decoded logo and its user adjustments."""
    image: Image.Image
    transform: LogoTransform = field(default_factory=LogoTransform)

    @property
    def natural_size(self) -> Tuple[int, int]:
        return self.image.size


class PosterCompositor:
    """
    Draws base poster, plate and logos into an RGBA surface.

    The surface is drawn in place and must already have the output size.
    """

    def __init__(self, preview_size: Tuple[int, int] = (PREVIEW_WIDTH, PREVIEW_HEIGHT)):
        """
        Initialize compositor.

        Args:
            preview_size: Size at which pixel settings were chosen
        """
        self.preview_size = preview_size

    def pixel_scale(self, output_width: int) -> float:
        """Factor converting preview pixels to output pixels."""
        return output_width / self.preview_size[0]

    def composite(
        self,
        surface: Image.Image,
        base_image: Image.Image,
        region: ContainerRegion,
        logo: Optional[LogoLayer],
        plate: Optional[BackgroundPlate],
        output_width: int,
        output_height: int
    ) -> None:
        """
        Composite a single logo onto the poster.

        Args:
            surface: RGBA surface of size (output_width, output_height)
            base_image: Decoded base poster
            region: Container region for the logo
            logo: Logo to place, or None for the bare poster
            plate: Optional background plate
            output_width: Output width in pixels
            output_height: Output height in pixels
        """
        self._draw_base(surface, base_image, output_width, output_height)
        if logo is None:
            return

        scale = self.pixel_scale(output_width)
        rect = resolve_logo_rect(region, output_width, output_height, *logo.natural_size, logo.transform)

        if plate is not None and plate.enabled:
            self._fill_plate(surface, plate_rect([rect], plate), plate.corner_radius_px * scale)

        self._draw_logo(surface, logo, rect, scale)
        logger.info(f"Composited logo at ({rect.x:.1f}, {rect.y:.1f}) {rect.w:.1f}x{rect.h:.1f} on {output_width}x{output_height}")

    def composite_slots(
        self,
        surface: Image.Image,
        base_image: Image.Image,
        region: ContainerRegion,
        logos: Sequence[Optional[LogoLayer]],
        plate: Optional[BackgroundPlate],
        output_width: int,
        output_height: int,
        container_outline: bool = False
    ) -> None:
        """
        Composite logos side by side, one per equal-width slot.

        Empty entries (None) keep their slot but draw nothing.

        Args:
            surface: RGBA surface of size (output_width, output_height)
            base_image: Decoded base poster
            region: Container region split into slots
            logos: Slot entries in display order
            plate: Optional background plate around all logos
            output_width: Output width in pixels
            output_height: Output height in pixels
            container_outline: Stroke a faint outline around the container
        """
        self._draw_base(surface, base_image, output_width, output_height)
        scale = self.pixel_scale(output_width)

        if container_outline:
            container = region.pixel_rect(output_width, output_height)
            self._stroke_outline(
                surface, container,
                CONTAINER_OUTLINE_RADIUS * scale,
                CONTAINER_OUTLINE_WIDTH * scale,
                CONTAINER_OUTLINE_COLOR,
            )

        if not logos:
            return

        sizes = [layer.natural_size if layer is not None else None for layer in logos]
        fitted = resolve_slot_rects(region, output_width, output_height, sizes)
        slots = slot_rects(region, output_width, output_height, len(logos))

        placed: List[Tuple[LogoLayer, Rect]] = []
        for layer, rect, slot in zip(logos, fitted, slots):
            if layer is None:
                continue
            placed.append((layer, apply_slot_transform(rect, slot, layer.transform)))

        if not placed:
            return

        if plate is not None and plate.enabled:
            bounds = plate_rect([rect for _, rect in placed], plate)
            self._fill_plate(surface, bounds, plate.corner_radius_px * scale)

        for layer, rect in placed:
            self._draw_logo(surface, layer, rect, scale)
        logger.info(f"Composited {len(placed)} of {len(logos)} slot logos on {output_width}x{output_height}")

    def _draw_base(self, surface: Image.Image, base_image: Image.Image, width: int, height: int) -> None:
        if surface.size != (width, height):
            raise ValueError(f"Surface is {surface.size}, expected {(width, height)}")
        if surface.mode != "RGBA":
            raise ValueError(f"Surface mode must be RGBA, got {surface.mode}")

        surface.paste((0, 0, 0, 0), (0, 0, width, height))
        base = base_image.convert("RGBA")
        if base.size != (width, height):
            base = base.resize((width, height), Image.Resampling.LANCZOS)
        surface.alpha_composite(base)

    def _fill_plate(self, surface: Image.Image, rect: Rect, radius: float) -> None:
        left = math.floor(rect.x)
        top = math.floor(rect.y)
        width = max(1, math.ceil(rect.right) - left)
        height = max(1, math.ceil(rect.bottom) - top)

        mask = rounded_rect_mask((width, height), (rect.x - left, rect.y - top, rect.w, rect.h), radius)
        plate = Image.new("RGBA", (width, height), PLATE_COLOR)
        plate.putalpha(mask)
        composite_layer(surface, plate, (left, top))

    def _stroke_outline(self, surface: Image.Image, rect: Rect, radius: float, line_width: float, color) -> None:
        pad = math.ceil(line_width / 2) + 1
        left = math.floor(rect.x) - pad
        top = math.floor(rect.y) - pad
        width = math.ceil(rect.right) + pad - left
        height = math.ceil(rect.bottom) + pad - top

        layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        stroke_rounded_rect(layer, (rect.x - left, rect.y - top, rect.w, rect.h), radius, line_width, color)
        composite_layer(surface, layer, (left, top))

    def _draw_logo(self, surface: Image.Image, layer: LogoLayer, rect: Rect, scale: float) -> None:
        """Draw one logo and its border, rotated about the rect centre."""
        transform = layer.transform
        width = max(1, round(rect.w))
        height = max(1, round(rect.h))
        radius = transform.corner_radius_px * scale
        border = transform.border_width_px * scale
        # Room for the half of the border stroke that falls outside the logo
        pad = math.ceil(border / 2) + 1 if border > 0 else 0

        logo = layer.image.convert("RGBA").resize((width, height), Image.Resampling.LANCZOS)
        alpha = logo.getchannel("A")
        if radius > 0:
            alpha = ImageChops.multiply(alpha, rounded_rect_mask((width, height), (0, 0, width, height), radius))
        if transform.opacity_percent < 100:
            factor = transform.opacity_percent / 100
            alpha = alpha.point(lambda v: round(v * factor))
        logo.putalpha(alpha)

        logo_layer = Image.new("RGBA", (width + 2 * pad, height + 2 * pad), (0, 0, 0, 0))
        logo_layer.paste(logo, (pad, pad))
        self._place_rotated(surface, logo_layer, rect, transform.rotation_degrees, transform.blend_mode)

        if border > 0:
            border_layer = Image.new("RGBA", logo_layer.size, (0, 0, 0, 0))
            stroke_rounded_rect(border_layer, (pad, pad, width, height), radius, border, transform.border_color)
            self._place_rotated(surface, border_layer, rect, transform.rotation_degrees, BlendMode.SOURCE_OVER)

    def _place_rotated(
        self,
        surface: Image.Image,
        layer: Image.Image,
        rect: Rect,
        rotation_degrees: float,
        mode: BlendMode
    ) -> None:
        if rotation_degrees:
            # Canvas rotation is clockwise for positive angles, Pillow's is not
            layer = layer.rotate(-rotation_degrees, resample=Image.Resampling.BICUBIC, expand=True)
        cx, cy = rect.center
        dest = (round(cx - layer.width / 2), round(cy - layer.height / 2))
        composite_layer(surface, layer, dest, mode)
