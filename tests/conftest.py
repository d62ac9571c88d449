import io

import pytest
from PIL import Image


def encode(image: Image.Image, fmt: str, **save_kwargs) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


def solid(size, color, mode="RGBA") -> Image.Image:
    return Image.new(mode, size, color)


@pytest.fixture
def png_bytes():
    return encode(solid((64, 32), (10, 120, 200, 255)), "PNG")


@pytest.fixture
def png_with_dpi_bytes():
    return encode(solid((64, 32), (10, 120, 200, 255)), "PNG", dpi=(72, 72))


@pytest.fixture
def jpeg_bytes():
    return encode(solid((64, 32), (200, 40, 40), mode="RGB"), "JPEG", quality=90)


@pytest.fixture
def base_poster_bytes():
    return encode(solid((320, 180), (200, 30, 30), mode="RGB"), "JPEG", quality=95)


@pytest.fixture
def logo_bytes():
    return encode(solid((40, 20), (20, 40, 220, 255)), "PNG")
