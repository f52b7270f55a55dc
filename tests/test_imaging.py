import os

import cv2
import numpy as np
import pytest

from cropscan.analysis import imaging
from fakes import jpeg_bytes


def test_compress_caps_long_side():
    out = imaging.compress(jpeg_bytes(1920, 1080), max_dim=1024)
    img = imaging.decode_bgr(out)
    assert img.shape[:2] == (576, 1024)


def test_compress_leaves_small_images_at_size():
    img = imaging.decode_bgr(imaging.compress(jpeg_bytes(800, 600), max_dim=1024))
    assert img.shape[:2] == (600, 800)


def test_compress_steps_quality_down_to_fit_budget():
    src = jpeg_bytes(1024, 768)
    generous = imaging.compress(src, quality=95)
    tight = imaging.compress(src, quality=95, max_bytes=len(generous) // 2)
    assert len(tight) < len(generous)


def test_compress_rejects_garbage():
    with pytest.raises(ValueError):
        imaging.compress(b"not an image")


def test_decode_rgb_swaps_channels():
    bgr = np.zeros((8, 8, 3), dtype=np.uint8)
    bgr[..., 0] = 255  # blue
    ok, buf = cv2.imencode(".png", bgr)
    assert ok
    rgb = imaging.decode_rgb(bytes(buf))
    assert rgb[0, 0, 2] == 255 and rgb[0, 0, 0] == 0


def test_temp_jpeg_is_removed_on_error():
    with pytest.raises(RuntimeError):
        with imaging.temp_jpeg(b"abc") as path:
            assert os.path.exists(path)
            with open(path, "rb") as f:
                assert f.read() == b"abc"
            raise RuntimeError("upload blew up")
    assert not os.path.exists(path)


def test_read_image(tmp_path):
    p = tmp_path / "x.jpg"
    p.write_bytes(b"123")
    assert imaging.read_image(str(p)) == b"123"
    with pytest.raises(OSError):
        imaging.read_image(str(tmp_path / "missing.jpg"))
