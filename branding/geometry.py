"""
Geometry resolution for logo placement on a poster.

Handles:
1. Container region (fractions of the canvas) to pixel rect
2. Fit-to-container scaling with user zoom and offsets
3. Equal-width slots for multi-logo layouts
4. Background plate rects around placed logos

All values are floats in canvas pixels. Nothing here touches pixels;
the compositor turns these rects into drawing.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .blending import BlendMode
from .presets import MIN_OUTPUT_SIZE

logger = logging.getLogger(__name__)

# Share of a slot a logo may fill in multi-logo layouts
SLOT_FILL = 0.85


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in pixels."""
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.w / 2, self.y + self.h / 2)

    def expand(self, dx: float, dy: float) -> "Rect":
        """Grow outward by dx on left/right and dy on top/bottom."""
        return Rect(self.x - dx, self.y - dy, self.w + 2 * dx, self.h + 2 * dy)

    @staticmethod
    def union(rects: Sequence["Rect"]) -> "Rect":
        """Smallest rect covering all given rects."""
        if not rects:
            raise ValueError("union of no rects")
        left = min(r.x for r in rects)
        top = min(r.y for r in rects)
        right = max(r.right for r in rects)
        bottom = max(r.bottom for r in rects)
        return Rect(left, top, right - left, bottom - top)


@dataclass(frozen=True)
class ContainerRegion:
    """
    Logo area of the poster as fractions of the canvas.

    ``h_padding`` is trimmed from both the left and right edges.
    """
    top: float
    bottom: float
    h_padding: float

    def __post_init__(self):
        if not 0 <= self.top < self.bottom <= 1:
            raise ValueError(f"Container needs 0 <= top < bottom <= 1, got top={self.top}, bottom={self.bottom}")
        if not 0 <= self.h_padding < 0.5:
            raise ValueError(f"Container needs 0 <= h_padding < 0.5, got {self.h_padding}")

    def pixel_rect(self, canvas_width: float, canvas_height: float) -> Rect:
        """Container rect on a canvas of the given size."""
        return Rect(
            x=canvas_width * self.h_padding,
            y=canvas_height * self.top,
            w=canvas_width * (1 - 2 * self.h_padding),
            h=canvas_height * (self.bottom - self.top),
        )


DEFAULT_CONTAINER_REGION = ContainerRegion(top=0.62, bottom=0.76, h_padding=0.35)


@dataclass(frozen=True)
class LogoTransform:
    """User adjustments for one logo. Pixel values are at preview scale."""
    zoom_percent: float = 100.0
    rotation_degrees: float = 0.0
    opacity_percent: float = 100.0
    corner_radius_px: float = 0.0
    border_width_px: float = 0.0
    border_color: str = "#ffffff"
    blend_mode: BlendMode = BlendMode.SOURCE_OVER
    horizontal_offset_percent: float = 0.0
    vertical_offset_percent: float = 0.0

    def __post_init__(self):
        if self.zoom_percent <= 0:
            raise ValueError(f"zoom_percent must be > 0, got {self.zoom_percent}")
        if not -180 <= self.rotation_degrees <= 180:
            raise ValueError(f"rotation_degrees must be in -180..180, got {self.rotation_degrees}")
        if not 0 <= self.opacity_percent <= 100:
            raise ValueError(f"opacity_percent must be in 0..100, got {self.opacity_percent}")
        if self.corner_radius_px < 0 or self.border_width_px < 0:
            raise ValueError("corner_radius_px and border_width_px must be >= 0")


@dataclass(frozen=True)
class BackgroundPlate:
    """Solid white plate drawn behind the logo(s)."""
    enabled: bool = False
    horizontal_padding_percent: float = 15.0
    vertical_padding_percent: float = 15.0
    corner_radius_px: float = 0.0


def _safe_size(width: float, height: float, what: str, minimum: float = 1.0) -> Tuple[float, float]:
    if width >= minimum and height >= minimum:
        return width, height
    logger.warning(f"Degenerate {what} size {width}x{height}, clamping to {minimum}px")
    return max(minimum, width), max(minimum, height)


def _safe_canvas(width: float, height: float) -> Tuple[float, float]:
    return _safe_size(width, height, "canvas", MIN_OUTPUT_SIZE)


def fit_scale(box_width: float, box_height: float, logo_width: float, logo_height: float) -> float:
    """Largest uniform scale that fits the logo inside the box."""
    logo_width, logo_height = _safe_size(logo_width, logo_height, "logo")
    return min(box_width / logo_width, box_height / logo_height)


def resolve_logo_rect(
    region: ContainerRegion,
    canvas_width: float,
    canvas_height: float,
    logo_width: float,
    logo_height: float,
    transform: LogoTransform = LogoTransform()
) -> Rect:
    """
    Place a single logo inside the container region.

    The logo is fitted to the container, zoomed, centred and then shifted
    by the offsets (fractions of the container size). Offsets are not
    clamped, so the logo may overflow the container. Rotation is applied
    at draw time around the rect centre.

    Args:
        region: Container region
        canvas_width: Canvas width in pixels
        canvas_height: Canvas height in pixels
        logo_width: Logo natural width
        logo_height: Logo natural height
        transform: User adjustments

    Returns:
        Unrotated logo rect in canvas pixels
    """
    canvas_width, canvas_height = _safe_canvas(canvas_width, canvas_height)
    logo_width, logo_height = _safe_size(logo_width, logo_height, "logo")
    container = region.pixel_rect(canvas_width, canvas_height)

    scale = fit_scale(container.w, container.h, logo_width, logo_height)
    scale *= transform.zoom_percent / 100
    w = logo_width * scale
    h = logo_height * scale

    x = container.x + (container.w - w) / 2
    y = container.y + (container.h - h) / 2
    x += (transform.horizontal_offset_percent / 100) * container.w
    y += (transform.vertical_offset_percent / 100) * container.h

    rect = Rect(x, y, w, h)
    logger.debug(f"Logo rect {rect} in container {container}")
    return rect


def slot_rects(region: ContainerRegion, canvas_width: float, canvas_height: float, count: int) -> List[Rect]:
    """
    Split the container into ``count`` equal-width slots, left to right.

    Slot edges are computed from the container edges so the slots cover
    it with no gaps or overlaps.
    """
    if count < 1:
        raise ValueError(f"slot count must be >= 1, got {count}")
    canvas_width, canvas_height = _safe_canvas(canvas_width, canvas_height)
    container = region.pixel_rect(canvas_width, canvas_height)

    edges = [container.x + container.w * i / count for i in range(count)] + [container.right]
    return [
        Rect(edges[i], container.y, edges[i + 1] - edges[i], container.h)
        for i in range(count)
    ]


def resolve_slot_rects(
    region: ContainerRegion,
    canvas_width: float,
    canvas_height: float,
    logo_sizes: Sequence[Optional[Tuple[float, float]]]
) -> List[Optional[Rect]]:
    """
    Place logos side by side, one per slot.

    Every entry occupies a slot, including empty ones (None), so slot
    positions never shift when a logo is removed. Each logo is fitted into
    SLOT_FILL of its slot width and container height and centred in its slot.

    Args:
        region: Container region
        canvas_width: Canvas width in pixels
        canvas_height: Canvas height in pixels
        logo_sizes: Natural (width, height) per slot, None for empty slots

    Returns:
        Logo rect per slot, None where the slot is empty
    """
    slots = slot_rects(region, canvas_width, canvas_height, len(logo_sizes))
    rects: List[Optional[Rect]] = []
    for slot, size in zip(slots, logo_sizes):
        if size is None:
            rects.append(None)
            continue
        logo_width, logo_height = _safe_size(size[0], size[1], "logo")
        scale = fit_scale(slot.w * SLOT_FILL, slot.h * SLOT_FILL, logo_width, logo_height)
        w = logo_width * scale
        h = logo_height * scale
        rects.append(Rect(slot.x + (slot.w - w) / 2, slot.y + (slot.h - h) / 2, w, h))
    return rects


def apply_slot_transform(rect: Rect, slot: Rect, transform: LogoTransform) -> Rect:
    """
    Apply zoom and offsets to a slot-fitted logo rect.

    Zoom scales about the rect centre; offsets are fractions of the slot
    size. The default transform returns ``rect`` unchanged.
    """
    zoom = transform.zoom_percent / 100
    cx, cy = rect.center
    cx += (transform.horizontal_offset_percent / 100) * slot.w
    cy += (transform.vertical_offset_percent / 100) * slot.h
    w = rect.w * zoom
    h = rect.h * zoom
    return Rect(cx - w / 2, cy - h / 2, w, h)


def plate_rect(logo_rects: Sequence[Rect], plate: BackgroundPlate) -> Rect:
    """
    Background plate rect around one or more logo rects.

    Multiple rects are first merged into their bounding rect. The result
    is padded by a percentage of that rect's width and height per side.
    """
    bounds = Rect.union(logo_rects)
    return bounds.expand(
        bounds.w * plate.horizontal_padding_percent / 100,
        bounds.h * plate.vertical_padding_percent / 100,
    )
