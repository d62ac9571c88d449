"""
Blend modes for compositing a layer onto an RGBA surface.

Pillow only offers plain alpha compositing, so the canvas composite
operations are evaluated here over numpy arrays using the W3C
Compositing and Blending formulas. All channels are in 0..1.
"""

import logging
from enum import Enum
from typing import Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class BlendMode(Enum):
    """Canvas composite operations available for the logo layer."""
    SOURCE_OVER = "source-over"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"
    DARKEN = "darken"
    LIGHTEN = "lighten"
    COLOR_DODGE = "color-dodge"
    COLOR_BURN = "color-burn"
    HARD_LIGHT = "hard-light"
    SOFT_LIGHT = "soft-light"
    DIFFERENCE = "difference"
    EXCLUSION = "exclusion"
    HUE = "hue"
    SATURATION = "saturation"
    COLOR = "color"
    LUMINOSITY = "luminosity"


# --- separable modes ---

def _multiply(cb, cs):
    return cb * cs


def _screen(cb, cs):
    return cb + cs - cb * cs


def _hard_light(cb, cs):
    return np.where(cs <= 0.5, _multiply(cb, 2 * cs), _screen(cb, 2 * cs - 1))


def _overlay(cb, cs):
    return _hard_light(cs, cb)


def _color_dodge(cb, cs):
    with np.errstate(divide="ignore", invalid="ignore"):
        dodged = np.minimum(1.0, cb / (1.0 - cs))
    return np.where(cb == 0, 0.0, np.where(cs >= 1, 1.0, dodged))


def _color_burn(cb, cs):
    with np.errstate(divide="ignore", invalid="ignore"):
        burned = 1.0 - np.minimum(1.0, (1.0 - cb) / cs)
    return np.where(cb >= 1, 1.0, np.where(cs <= 0, 0.0, burned))


def _soft_light(cb, cs):
    d = np.where(cb <= 0.25, ((16 * cb - 12) * cb + 4) * cb, np.sqrt(cb))
    return np.where(
        cs <= 0.5,
        cb - (1 - 2 * cs) * cb * (1 - cb),
        cb + (2 * cs - 1) * (d - cb),
    )


# --- non-separable modes ---

def _lum(c):
    return (0.3 * c[..., 0] + 0.59 * c[..., 1] + 0.11 * c[..., 2])[..., np.newaxis]


def _clip_color(c):
    lum = _lum(c)
    low = c.min(axis=-1, keepdims=True)
    high = c.max(axis=-1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        c = np.where(low < 0, lum + (c - lum) * lum / (lum - low), c)
        c = np.where(high > 1, lum + (c - lum) * (1 - lum) / (high - lum), c)
    return c


def _set_lum(c, lum):
    return _clip_color(c + (lum - _lum(c)))


def _sat(c):
    return c.max(axis=-1, keepdims=True) - c.min(axis=-1, keepdims=True)


def _set_sat(c, sat):
    low = c.min(axis=-1, keepdims=True)
    span = _sat(c)
    with np.errstate(divide="ignore", invalid="ignore"):
        scaled = (c - low) * sat / span
    return np.where(span > 0, scaled, 0.0)


_SEPARABLE = {
    BlendMode.MULTIPLY: _multiply,
    BlendMode.SCREEN: _screen,
    BlendMode.OVERLAY: _overlay,
    BlendMode.DARKEN: np.minimum,
    BlendMode.LIGHTEN: np.maximum,
    BlendMode.COLOR_DODGE: _color_dodge,
    BlendMode.COLOR_BURN: _color_burn,
    BlendMode.HARD_LIGHT: _hard_light,
    BlendMode.SOFT_LIGHT: _soft_light,
    BlendMode.DIFFERENCE: lambda cb, cs: np.abs(cb - cs),
    BlendMode.EXCLUSION: lambda cb, cs: cb + cs - 2 * cb * cs,
}


def blend_colors(cb: np.ndarray, cs: np.ndarray, mode: BlendMode) -> np.ndarray:
    """
    Evaluate the blend function B(Cb, Cs) for an (..., 3) colour array.

    Args:
        cb: Backdrop colours
        cs: Source colours
        mode: Blend mode

    Returns:
        Blended colours, same shape as the inputs
    """
    if mode is BlendMode.SOURCE_OVER:
        return cs
    if mode in _SEPARABLE:
        return _SEPARABLE[mode](cb, cs)
    if mode is BlendMode.HUE:
        return _set_lum(_set_sat(cs, _sat(cb)), _lum(cb))
    if mode is BlendMode.SATURATION:
        return _set_lum(_set_sat(cb, _sat(cs)), _lum(cb))
    if mode is BlendMode.COLOR:
        return _set_lum(cs, _lum(cb))
    if mode is BlendMode.LUMINOSITY:
        return _set_lum(cb, _lum(cs))
    raise ValueError(f"Unsupported blend mode: {mode}")


def composite_layer(
    surface: Image.Image,
    layer: Image.Image,
    dest: Tuple[int, int],
    mode: BlendMode = BlendMode.SOURCE_OVER
) -> None:
    """
    Composite an RGBA layer onto the surface in place.

    The layer may hang off any edge of the surface; only the overlapping
    part is drawn.

    Args:
        surface: RGBA surface to draw into
        layer: RGBA layer to draw
        dest: Top-left position of the layer on the surface
        mode: Blend mode applied to the layer's colours
    """
    x, y = dest
    left = max(0, x)
    top = max(0, y)
    right = min(surface.width, x + layer.width)
    bottom = min(surface.height, y + layer.height)
    if right <= left or bottom <= top:
        logger.debug(f"Layer at {dest} lies outside the {surface.size} surface")
        return

    source = layer.crop((left - x, top - y, right - x, bottom - y))
    if mode is BlendMode.SOURCE_OVER:
        surface.alpha_composite(source, (left, top))
        return

    box = (left, top, right, bottom)
    backdrop = np.asarray(surface.crop(box), dtype=np.float64) / 255.0
    src = np.asarray(source, dtype=np.float64) / 255.0

    cb, ab = backdrop[..., :3], backdrop[..., 3:4]
    cs, as_ = src[..., :3], src[..., 3:4]

    # Source colour mixed with the blend result where the backdrop is opaque
    mixed = (1 - ab) * cs + ab * np.clip(blend_colors(cb, cs, mode), 0.0, 1.0)
    alpha = as_ + ab * (1 - as_)
    premultiplied = as_ * mixed + (1 - as_) * ab * cb
    color = np.divide(premultiplied, alpha, out=np.zeros_like(premultiplied), where=alpha > 0)

    out = np.concatenate([color, alpha], axis=-1)
    out = np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8)
    surface.paste(Image.fromarray(out), (left, top))
