import pytest
from PIL import Image

from branding.blending import BlendMode
from branding.compositor import LogoLayer, PosterCompositor
from branding.geometry import DEFAULT_CONTAINER_REGION, BackgroundPlate, LogoTransform

WIDTH, HEIGHT = 1600, 900
RED = (200, 30, 30, 255)
BLUE = (20, 40, 220, 255)
GREEN = (0, 255, 0, 255)

# On 1600x900 the container is (560, 558) 480x126 and a 400x200 logo
# lands at (674, 558) 252x126, centred on (800, 621).
LOGO_CENTRE = (800, 621)


def near(pixel, colour, tolerance=2):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, colour))


@pytest.fixture
def base():
    return Image.new("RGB", (320, 180), RED[:3])


@pytest.fixture
def surface():
    return Image.new("RGBA", (WIDTH, HEIGHT), (0, 0, 0, 0))


def logo(colour=BLUE, size=(400, 200), **transform):
    return LogoLayer(Image.new("RGBA", size, colour), LogoTransform(**transform))


def draw(surface, base, layer, plate=None):
    PosterCompositor().composite(surface, base, DEFAULT_CONTAINER_REGION, layer, plate, WIDTH, HEIGHT)
    return surface


def test_bare_poster_stretched_to_output(surface, base):
    draw(surface, base, None)

    assert near(surface.getpixel((0, 0)), RED)
    assert near(surface.getpixel((WIDTH - 1, HEIGHT - 1)), RED)


def test_logo_placed_in_container(surface, base):
    draw(surface, base, logo())

    assert near(surface.getpixel(LOGO_CENTRE), BLUE)
    assert near(surface.getpixel((690, 570)), BLUE)
    assert near(surface.getpixel((660, 621)), RED)
    assert near(surface.getpixel((800, 540)), RED)


def test_rotation_is_clockwise_about_centre(surface, base):
    draw(surface, base, logo(rotation_degrees=90))

    assert near(surface.getpixel(LOGO_CENTRE), BLUE)
    # A quarter turn stands the logo upright
    assert near(surface.getpixel((800, 520)), BLUE)
    assert near(surface.getpixel((690, 621)), RED)


def test_clockwise_direction(surface):
    # Left half red, right half blue: after a clockwise quarter turn the
    # blue half ends up at the bottom.
    image = Image.new("RGBA", (400, 200), RED)
    image.paste(BLUE, (200, 0, 400, 200))
    black = Image.new("RGB", (320, 180), (0, 0, 0))
    draw(surface, black, LogoLayer(image, LogoTransform(rotation_degrees=90)))

    assert near(surface.getpixel((800, 700)), BLUE)
    assert near(surface.getpixel((800, 540)), RED)


def test_corner_radius_clips_logo(surface, base):
    draw(surface, base, logo(corner_radius_px=40))

    assert near(surface.getpixel((675, 559)), RED)
    assert near(surface.getpixel(LOGO_CENTRE), BLUE)


def test_square_corners_without_radius(surface, base):
    draw(surface, base, logo())
    assert near(surface.getpixel((675, 559)), BLUE)


def test_border_scaled_from_preview_pixels(surface, base):
    # 4px at preview width 800 is 8px at 1600, centred on the logo edge
    draw(surface, base, logo(border_width_px=4, border_color="#00ff00"))

    assert near(surface.getpixel((674, 621)), GREEN)
    assert near(surface.getpixel((671, 621)), GREEN)
    assert near(surface.getpixel(LOGO_CENTRE), BLUE)
    assert near(surface.getpixel((664, 621)), RED)


def test_border_not_blended(surface, base):
    draw(surface, base, logo(border_width_px=4, border_color="#00ff00", blend_mode=BlendMode.MULTIPLY))

    assert near(surface.getpixel((671, 621)), GREEN)


def test_opacity(surface, base):
    draw(surface, base, logo(opacity_percent=0))
    assert near(surface.getpixel(LOGO_CENTRE), RED)

    draw(surface, base, logo(opacity_percent=50))
    pixel = surface.getpixel(LOGO_CENTRE)
    assert not near(pixel, RED) and not near(pixel, BLUE)
    assert near(pixel, (110, 35, 125, 255), tolerance=3)


def test_blend_mode_applies_to_logo(surface, base):
    draw(surface, base, logo(colour=(255, 255, 255, 255), blend_mode=BlendMode.MULTIPLY))

    assert near(surface.getpixel(LOGO_CENTRE), RED)


def test_background_plate_behind_logo(surface, base):
    draw(surface, base, logo(), BackgroundPlate(enabled=True))

    # Plate extends 15% of the logo width (37.8px) past each side
    assert near(surface.getpixel((660, 621)), (255, 255, 255, 255))
    assert near(surface.getpixel((630, 621)), RED)
    assert near(surface.getpixel(LOGO_CENTRE), BLUE)


def test_disabled_plate_not_drawn(surface, base):
    draw(surface, base, logo(), BackgroundPlate(enabled=False))
    assert near(surface.getpixel((660, 621)), RED)


def test_logo_pushed_off_canvas(surface, base):
    draw(surface, base, logo(horizontal_offset_percent=400))

    assert near(surface.getpixel(LOGO_CENTRE), RED)
    assert near(surface.getpixel((WIDTH - 1, 621)), RED)


def test_surface_must_match_output_size(base):
    with pytest.raises(ValueError):
        draw(Image.new("RGBA", (100, 100)), base, logo())
    with pytest.raises(ValueError):
        draw(Image.new("RGB", (WIDTH, HEIGHT)), base, logo())


def test_pixel_scale():
    assert PosterCompositor().pixel_scale(1600) == 2
    assert PosterCompositor(preview_size=(400, 225)).pixel_scale(1600) == 4


# Slot layout: three 160px slots centred on x = 640, 800 and 960


def test_slots_side_by_side(surface, base):
    colours = [BLUE, GREEN, (250, 250, 0, 255)]
    layers = [logo(colour) for colour in colours]

    PosterCompositor().composite_slots(surface, base, DEFAULT_CONTAINER_REGION, layers, None, WIDTH, HEIGHT)

    for x, colour in zip([640, 800, 960], colours):
        assert near(surface.getpixel((x, 621)), colour)
    assert near(surface.getpixel((720, 621)), RED)


def test_empty_slot_keeps_layout(surface, base):
    layers = [logo(BLUE), None, logo(GREEN)]

    PosterCompositor().composite_slots(surface, base, DEFAULT_CONTAINER_REGION, layers, None, WIDTH, HEIGHT)

    assert near(surface.getpixel((640, 621)), BLUE)
    assert near(surface.getpixel((800, 621)), RED)
    assert near(surface.getpixel((960, 621)), GREEN)


def test_slot_transform_zoom(surface, base):
    layers = [logo(BLUE, zoom_percent=50)]

    PosterCompositor().composite_slots(surface, base, DEFAULT_CONTAINER_REGION, layers, None, WIDTH, HEIGHT)

    # Fitted to 214.2x107.1, then halved about the container centre
    assert near(surface.getpixel((800, 621)), BLUE)
    assert near(surface.getpixel((720, 621)), RED)


def test_slot_plate_spans_all_logos(surface, base):
    layers = [logo(BLUE), None, logo(GREEN)]

    PosterCompositor().composite_slots(
        surface, base, DEFAULT_CONTAINER_REGION, layers, BackgroundPlate(enabled=True), WIDTH, HEIGHT,
    )

    assert near(surface.getpixel((800, 621)), (255, 255, 255, 255))


def test_container_outline(surface, base):
    compositor = PosterCompositor()

    compositor.composite_slots(surface, base, DEFAULT_CONTAINER_REGION, [], None, WIDTH, HEIGHT, container_outline=True)
    outlined = surface.getpixel((560, 621))

    compositor.composite_slots(surface, base, DEFAULT_CONTAINER_REGION, [], None, WIDTH, HEIGHT, container_outline=False)

    assert not near(outlined, RED)
    assert outlined[0] > RED[0]
    assert near(surface.getpixel((560, 621)), RED)
