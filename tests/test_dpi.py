import io
import math
import struct
import zlib

import numpy as np
import pytest
from PIL import Image

from branding.dpi import (
    IHDR,
    PHYS,
    PNG_SIGNATURE,
    build_phys_chunk,
    crc32,
    inject_dpi,
    iter_png_chunks,
    pixels_per_meter,
    read_jpeg_density,
    read_dpi,
    read_png_phys,
    set_jpeg_dpi,
    set_png_dpi,
)
from branding.presets import ExportFormat


def chunk_types(data):
    return [chunk.type for chunk in iter_png_chunks(data)]


def test_crc32_matches_zlib():
    for sample in [b"", b"IEND", b"pHYs\x00\x00\x0b\x13\x00\x00\x0b\x13\x01", bytes(range(256))]:
        assert crc32(sample) == zlib.crc32(sample)


@pytest.mark.parametrize("dpi", [72, 150, 300, 600])
def test_png_dpi_round_trip(png_bytes, dpi):
    tagged = set_png_dpi(png_bytes, dpi)

    ppm = math.floor(dpi / 0.0254 + 0.5)
    assert read_png_phys(tagged) == (ppm, ppm, 1)

    phys = next(chunk for chunk in iter_png_chunks(tagged) if chunk.type == PHYS)
    assert len(phys.data) == 9
    assert phys.crc == zlib.crc32(PHYS + phys.data)


def test_pixels_per_meter_known_values():
    assert pixels_per_meter(72) == 2835
    assert pixels_per_meter(300) == 11811


def test_png_phys_inserted_after_ihdr(png_bytes):
    assert PHYS not in chunk_types(png_bytes)

    tagged = set_png_dpi(png_bytes, 300)

    types = chunk_types(tagged)
    assert types[:2] == [IHDR, PHYS]
    assert len(tagged) == len(png_bytes) + 21


def test_png_existing_phys_replaced(png_with_dpi_bytes):
    assert read_png_phys(png_with_dpi_bytes) == (2835, 2835, 1)

    tagged = set_png_dpi(png_with_dpi_bytes, 300)

    assert chunk_types(tagged).count(PHYS) == 1
    assert read_png_phys(tagged) == (11811, 11811, 1)
    assert len(tagged) == len(png_with_dpi_bytes)


def test_png_duplicate_phys_collapsed(png_bytes):
    once = set_png_dpi(png_bytes, 72)
    ihdr_end = next(chunk.end for chunk in iter_png_chunks(once) if chunk.type == IHDR)
    twice = once[:ihdr_end] + build_phys_chunk(96) + once[ihdr_end:]
    assert chunk_types(twice).count(PHYS) == 2

    tagged = set_png_dpi(twice, 300)

    assert chunk_types(tagged).count(PHYS) == 1
    assert read_png_phys(tagged) == (11811, 11811, 1)


def test_png_tagging_is_idempotent(png_bytes):
    once = set_png_dpi(png_bytes, 300)
    assert set_png_dpi(once, 300) == once


def test_png_tagged_bytes_still_decode(png_bytes):
    tagged = set_png_dpi(png_bytes, 300)

    with Image.open(io.BytesIO(tagged)) as img:
        img.load()
        assert img.size == (64, 32)
        assert img.info["dpi"] == pytest.approx((300, 300), abs=0.01)


def test_png_pixel_data_untouched(png_bytes):
    tagged = set_png_dpi(png_bytes, 300)

    def idat(data):
        return b"".join(c.data for c in iter_png_chunks(data) if c.type == b"IDAT")

    assert idat(tagged) == idat(png_bytes)


def test_non_png_left_unchanged(jpeg_bytes):
    assert set_png_dpi(jpeg_bytes, 300) == jpeg_bytes
    assert set_png_dpi(b"", 300) == b""


def test_png_without_ihdr_left_unchanged():
    assert set_png_dpi(PNG_SIGNATURE, 300) == PNG_SIGNATURE
    truncated = PNG_SIGNATURE + struct.pack(">I", 13) + IHDR + b"\x00\x00"
    assert set_png_dpi(truncated, 300) == truncated


@pytest.mark.parametrize("dpi", [72, 300, 600])
def test_jpeg_dpi_round_trip(jpeg_bytes, dpi):
    tagged = set_jpeg_dpi(jpeg_bytes, dpi)

    assert read_jpeg_density(tagged) == (1, dpi, dpi)
    assert len(tagged) == len(jpeg_bytes)


def test_jpeg_only_density_fields_change(jpeg_bytes):
    tagged = set_jpeg_dpi(jpeg_bytes, 300)

    changed = [i for i, (a, b) in enumerate(zip(jpeg_bytes, tagged)) if a != b]
    assert changed
    assert all(13 <= i <= 17 for i in changed)


def test_jpeg_tagged_bytes_still_decode(jpeg_bytes):
    tagged = set_jpeg_dpi(jpeg_bytes, 300)

    with Image.open(io.BytesIO(tagged)) as img:
        img.load()
        assert img.info["dpi"] == (300, 300)


def test_jpeg_tagging_is_idempotent(jpeg_bytes):
    once = set_jpeg_dpi(jpeg_bytes, 300)
    assert set_jpeg_dpi(once, 300) == once


def test_jpeg_without_jfif_left_unchanged(jpeg_bytes, png_bytes):
    no_jfif = jpeg_bytes[:6] + b"Exif\x00" + jpeg_bytes[11:]
    assert set_jpeg_dpi(no_jfif, 300) == no_jfif
    assert set_jpeg_dpi(png_bytes, 300) == png_bytes
    assert set_jpeg_dpi(b"\xff\xd8", 300) == b"\xff\xd8"


def test_invalid_dpi_rejected(png_bytes, jpeg_bytes):
    with pytest.raises(ValueError):
        set_png_dpi(png_bytes, 0)
    with pytest.raises(ValueError):
        set_jpeg_dpi(jpeg_bytes, 70000)
    for bad in [-72, float("nan"), float("inf"), "300", True]:
        with pytest.raises(ValueError):
            set_png_dpi(png_bytes, bad)
        with pytest.raises(ValueError):
            set_jpeg_dpi(jpeg_bytes, bad)


def test_inject_dpi_dispatches_on_format(png_bytes, jpeg_bytes):
    assert read_png_phys(inject_dpi(png_bytes, ExportFormat.PNG, 150)) == (5906, 5906, 1)
    assert read_jpeg_density(inject_dpi(jpeg_bytes, ExportFormat.JPEG, 150)) == (1, 150, 150)


@pytest.mark.parametrize("dpi", [300.0, np.int64(300), np.float32(300)])
def test_non_int_numbers_accepted(png_bytes, jpeg_bytes, dpi):
    assert read_png_phys(set_png_dpi(png_bytes, dpi)) == (11811, 11811, 1)
    assert read_jpeg_density(set_jpeg_dpi(jpeg_bytes, dpi)) == (1, 300, 300)


def test_fractional_dpi_rounded_for_jpeg(jpeg_bytes):
    assert read_jpeg_density(set_jpeg_dpi(jpeg_bytes, 299.5)) == (1, 300, 300)
    assert read_jpeg_density(set_jpeg_dpi(jpeg_bytes, 72.4)) == (1, 72, 72)


def test_fractional_dpi_kept_for_png_ppm(png_bytes):
    # 72.5 / 0.0254 = 2854.33
    assert read_png_phys(set_png_dpi(png_bytes, 72.5)) == (2854, 2854, 1)


def test_read_dpi(png_bytes, jpeg_bytes):
    assert read_dpi(png_bytes, ExportFormat.PNG) is None
    assert read_dpi(set_png_dpi(png_bytes, 300), ExportFormat.PNG) == 300
    assert read_dpi(set_png_dpi(png_bytes, 72), ExportFormat.PNG) == 72
    assert read_dpi(jpeg_bytes, ExportFormat.JPEG) is None
    assert read_dpi(set_jpeg_dpi(jpeg_bytes, 600), ExportFormat.JPEG) == 600
