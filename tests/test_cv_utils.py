import base64
import io

import pytest
from PIL import Image

from survey_mapper.cv_utils import (
    PLACEHOLDER_SIZE, bytes_to_data_uri, file_to_data_uri, hex_to_rgb, load_base_image,
    mask_overlay, optional_image, region_area_pct, region_mask, split_data_uri,
)
from survey_mapper.geometry import Point


def _png_bytes(size=(4, 3), color=(255, 0, 0)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def test_split_data_uri():
    assert split_data_uri("data:image/png;base64,QUJD") == ("image/png", "QUJD")
    mime, b64 = split_data_uri("data:,hello%20world")
    assert mime == "text/plain"
    assert base64.b64decode(b64) == b"hello world"
    with pytest.raises(ValueError):
        split_data_uri("https://example.com/a.png")


def test_load_base_image_from_data_uri_and_file(tmp_path):
    raw = _png_bytes()
    assert load_base_image(bytes_to_data_uri(raw, "image/png")).size == (4, 3)
    p = tmp_path / "a.png"
    p.write_bytes(raw)
    assert load_base_image(str(p)).size == (4, 3)
    assert file_to_data_uri(str(p)).startswith("data:image/png;base64,")


def test_remote_or_broken_images_use_placeholder():
    assert load_base_image("https://picsum.photos/seed/1/1200/800").size == PLACEHOLDER_SIZE
    assert load_base_image("data:image/png;base64,AAAA").size == PLACEHOLDER_SIZE
    assert optional_image("data:image/png;base64,AAAA") is None


def test_region_mask_and_area():
    square = [Point(0, 0), Point(50, 0), Point(50, 50), Point(0, 50)]
    mask = region_mask(square, (100, 80))
    assert mask.shape == (80, 100)
    assert mask[10, 10] == 255
    assert mask[70, 90] == 0
    assert region_area_pct(square) == pytest.approx(25.0)


def test_degenerate_regions_are_empty():
    line = [Point(0, 0), Point(50, 50)]
    assert not region_mask(line, (10, 10)).any()
    assert region_area_pct(line) == 0.0


def test_mask_overlay_alpha():
    mask = region_mask([Point(0, 0), Point(100, 0), Point(100, 100), Point(0, 100)], (5, 5))
    ov = mask_overlay(mask, hex_to_rgb("#10B981"))
    assert ov.mode == "RGBA"
    assert ov.getpixel((2, 2)) == (16, 185, 129, 90)
