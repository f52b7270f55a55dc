"""
Image decode / compress helpers (OpenCV).

compress() shrinks a photo to fit the upload budget: long side capped at
max_dim, then JPEG quality stepped down until the payload fits max_bytes
(or quality hits the floor).
"""
import os
import tempfile
from contextlib import contextmanager

import cv2
import numpy as np

TEMP_PREFIX = "cropscan_img_"
MIN_JPEG_QUALITY = 40
QUALITY_STEP = 10


def decode_bgr(image_bytes: bytes):
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("could not decode image")
    return img


def decode_rgb(image_bytes: bytes):
    return cv2.cvtColor(decode_bgr(image_bytes), cv2.COLOR_BGR2RGB)


def _fit(img, max_dim: int):
    h, w = img.shape[:2]
    long_side = max(h, w)
    if long_side <= max_dim:
        return img
    scale = max_dim / long_side
    size = (max(1, int(w * scale)), max(1, int(h * scale)))
    return cv2.resize(img, size, interpolation=cv2.INTER_AREA)


def compress(image_bytes: bytes, max_dim: int = 1024, quality: int = 85,
             max_bytes: int = 5 * 1024 * 1024) -> bytes:
    img = _fit(decode_bgr(image_bytes), max_dim)
    q = quality
    while True:
        ok, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, q])
        if not ok:
            raise ValueError("JPEG encoding failed")
        data = bytes(buf)
        if len(data) <= max_bytes or q <= MIN_JPEG_QUALITY:
            return data
        q = max(MIN_JPEG_QUALITY, q - QUALITY_STEP)


@contextmanager
def temp_jpeg(data: bytes):
    """Write data to a temp .jpg and always remove it on exit (errors and cancellation included)."""
    fd, path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".jpg")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        if os.path.exists(path):
            os.remove(path)


def read_image(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()
