import numpy as np
import pytest

from cropscan.analysis import quality
from fakes import jpeg_bytes


def checkerboard(width, height, low=0, high=255):
    # 1px vertical stripes sampled at stride 2 would alias, so use 4px blocks
    yy, xx = np.mgrid[0:height, 0:width]
    board = np.where(((yy // 4) + (xx // 4)) % 2 == 0, low, high).astype(np.uint8)
    return np.stack([board, board, board], axis=2)


def uniform(width, height, value):
    return np.full((height, width, 3), value, dtype=np.uint8)


@pytest.mark.parametrize("w,h", [(639, 480), (640, 479), (320, 240), (100, 2000)])
def test_small_images_fail_resolution(w, h):
    r = quality.analyze(checkerboard(w, h), w, h)
    assert r.is_resolution_ok is False
    assert r.is_acceptable is False


def test_uniform_gray_has_zero_focus():
    r = quality.analyze(uniform(640, 480, 128), 640, 480)
    assert r.focus_score == 0.0
    assert r.is_focused is False
    assert r.is_resolution_ok is True
    assert r.brightness == pytest.approx(128 / 255)
    assert r.is_bright_enough is True
    assert r.is_acceptable is False


def test_sharp_well_lit_image_is_acceptable():
    r = quality.analyze(checkerboard(1920, 1080), 1920, 1080)
    assert r.focus_score == pytest.approx(0.5)
    assert r.brightness == pytest.approx(0.5)
    assert r.is_acceptable is True
    assert r.error_message is None


def test_dark_and_overexposed_images():
    dark = quality.analyze(uniform(800, 600, 20), 800, 600)
    bright = quality.analyze(uniform(800, 600, 250), 800, 600)
    assert dark.is_bright_enough is False
    assert bright.is_bright_enough is False


def test_brightness_bounds_are_inclusive():
    assert quality.brightness_ok(0.3)
    assert quality.brightness_ok(0.85)
    assert not quality.brightness_ok(0.2999)
    assert not quality.brightness_ok(0.8501)


def test_only_every_second_pixel_is_sampled():
    # odd rows/columns are white, sampled grid only sees black
    img = uniform(640, 480, 255)
    img[::2, ::2] = 0
    r = quality.analyze(img, 640, 480)
    assert r.brightness == 0.0
    assert r.focus_score == 0.0


def test_rgba_input_ignores_alpha():
    rgb = checkerboard(640, 480)
    alpha = np.full((480, 640, 1), 7, dtype=np.uint8)
    r = quality.analyze(np.concatenate([rgb, alpha], axis=2), 640, 480)
    assert r.focus_score == pytest.approx(0.5)


def test_bad_pixel_buffer_returns_error_result():
    r = quality.analyze([1, 2, 3], 640, 480)
    assert r.error_message and "Failed to analyze image quality" in r.error_message
    assert not (r.is_acceptable or r.is_resolution_ok or r.is_focused or r.is_bright_enough)


def test_analyze_bytes_decodes_jpeg():
    r = quality.analyze_bytes(jpeg_bytes(800, 600))
    assert r.is_resolution_ok is True
    assert r.error_message is None


def test_analyze_bytes_never_raises_on_garbage():
    r = quality.analyze_bytes(b"not an image")
    assert r.is_acceptable is False
    assert r.error_message
