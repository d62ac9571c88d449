"""
Rounded-rectangle primitives.

The outline matches the editor's canvas path: straight edges joined by
quadratic Bezier corners whose control point is the rectangle corner.
Used for clipping (logo and plate corners) and stroking (borders and
the container outline).
"""

from typing import List, Tuple

from PIL import Image, ImageDraw

Point = Tuple[float, float]

# Points generated per corner curve
CORNER_SEGMENTS = 12
SUPERSAMPLE = 4


def _quad_curve(p0: Point, p1: Point, p2: Point, segments: int) -> List[Point]:
    points = []
    for i in range(1, segments + 1):
        t = i / segments
        u = 1 - t
        points.append((
            u * u * p0[0] + 2 * u * t * p1[0] + t * t * p2[0],
            u * u * p0[1] + 2 * u * t * p1[1] + t * t * p2[1],
        ))
    return points


def rounded_rect_path(
    x: float,
    y: float,
    width: float,
    height: float,
    radius: float,
    segments: int = CORNER_SEGMENTS
) -> List[Point]:
    """
    Closed outline of a rounded rectangle, clockwise from the top edge.

    The radius is clamped to 0..min(width, height)/2. The first point is
    not repeated at the end.
    """
    radius = max(0.0, min(radius, width / 2, height / 2))
    if radius == 0:
        return [(x, y), (x + width, y), (x + width, y + height), (x, y + height)]

    right = x + width
    bottom = y + height
    path = [(x + radius, y), (right - radius, y)]
    path += _quad_curve((right - radius, y), (right, y), (right, y + radius), segments)
    path.append((right, bottom - radius))
    path += _quad_curve((right, bottom - radius), (right, bottom), (right - radius, bottom), segments)
    path.append((x + radius, bottom))
    path += _quad_curve((x + radius, bottom), (x, bottom), (x, bottom - radius), segments)
    path.append((x, y + radius))
    # Last corner ends back on the start point
    path += _quad_curve((x, y + radius), (x, y), (x + radius, y), segments)[:-1]
    return path


def _scaled(path: List[Point], factor: float) -> List[Point]:
    return [(px * factor, py * factor) for px, py in path]


def rounded_rect_mask(
    size: Tuple[int, int],
    box: Tuple[float, float, float, float],
    radius: float
) -> Image.Image:
    """
    Antialiased clip mask of a rounded rect.

    Args:
        size: Mask size (width, height)
        box: Rect to fill as (x, y, width, height) in mask pixels
        radius: Corner radius in mask pixels

    Returns:
        "L" image, 255 inside the shape
    """
    width, height = size
    big = Image.new("L", (width * SUPERSAMPLE, height * SUPERSAMPLE), 0)
    path = _scaled(rounded_rect_path(*box, radius), SUPERSAMPLE)
    ImageDraw.Draw(big).polygon(path, fill=255)
    return big.resize(size, Image.Resampling.BOX)


def stroke_rounded_rect(
    layer: Image.Image,
    box: Tuple[float, float, float, float],
    radius: float,
    line_width: float,
    color
) -> None:
    """
    Stroke a rounded rect outline onto an RGBA layer in place.

    The stroke is centred on the outline, so half of it falls outside
    ``box``; callers leave room for it.
    """
    if line_width <= 0:
        return
    big = Image.new("RGBA", (layer.width * SUPERSAMPLE, layer.height * SUPERSAMPLE), (0, 0, 0, 0))
    path = _scaled(rounded_rect_path(*box, radius), SUPERSAMPLE)
    stroke = max(1, round(line_width * SUPERSAMPLE))
    ImageDraw.Draw(big).line(path + [path[0], path[1]], fill=color, width=stroke, joint="curve")
    layer.alpha_composite(big.resize(layer.size, Image.Resampling.BOX))
