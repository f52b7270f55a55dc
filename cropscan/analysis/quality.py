"""
Pixel-level image quality gate.

Decides whether a captured photo is worth sending for identification:

  1. Resolution: at least 640x480
  2. Focus: standard deviation of sampled gray levels, normalised to [0, 1]
  3. Brightness: mean sampled luminance, must sit inside [0.3, 0.85]

Every 2nd pixel on both axes is sampled. The result is advisory; the caller
may submit anyway. Never raises.
"""
import numpy as np

from cropscan.orchestrator.contracts import ImageQualityResult
from cropscan.analysis import imaging

MIN_WIDTH = 640
MIN_HEIGHT = 480
MIN_FOCUS_SCORE = 0.5
MIN_BRIGHTNESS = 0.3
MAX_BRIGHTNESS = 0.85
SAMPLE_STRIDE = 2


def resolution_ok(width: int, height: int) -> bool:
    return width >= MIN_WIDTH and height >= MIN_HEIGHT


def focus_ok(focus_score: float) -> bool:
    return focus_score >= MIN_FOCUS_SCORE


def brightness_ok(brightness: float) -> bool:
    return MIN_BRIGHTNESS <= brightness <= MAX_BRIGHTNESS


def _sampled_gray(pixels, width: int, height: int) -> np.ndarray:
    arr = np.asarray(pixels, dtype=np.float64).reshape(height, width, -1)
    if arr.shape[2] < 3:
        raise ValueError(f"expected at least 3 channels, got {arr.shape[2]}")
    rgb = arr[::SAMPLE_STRIDE, ::SAMPLE_STRIDE, :3]
    if rgb.size == 0:
        raise ValueError("image has no pixels")
    return rgb.sum(axis=2) / 3.0


def analyze(pixels, width: int, height: int) -> ImageQualityResult:
    """Score decoded RGB(A) pixels laid out row-major as (height, width, channels)."""
    try:
        gray = _sampled_gray(pixels, width, height)
        mean = float(gray.mean())
        variance = float(((gray - mean) ** 2).mean())
        focus_score = float(np.sqrt(variance) / 255.0)
        brightness = mean / 255.0
    except Exception as e:
        return failed(f"Failed to analyze image quality: {e}")

    res_ok = resolution_ok(width, height)
    focused = focus_ok(focus_score)
    bright = brightness_ok(brightness)
    return ImageQualityResult(
        is_acceptable=res_ok and focused and bright,
        is_resolution_ok=res_ok,
        is_focused=focused,
        is_bright_enough=bright,
        focus_score=focus_score,
        brightness=brightness,
    )


def analyze_bytes(image_bytes: bytes) -> ImageQualityResult:
    """Decode an encoded photo (JPEG/PNG) and score it."""
    try:
        rgb = imaging.decode_rgb(image_bytes)
    except Exception as e:
        return failed(f"Failed to analyze image quality: {e}")
    height, width = rgb.shape[:2]
    return analyze(rgb, width, height)


def failed(message: str) -> ImageQualityResult:
    return ImageQualityResult(
        is_acceptable=False,
        is_resolution_ok=False,
        is_focused=False,
        is_bright_enough=False,
        focus_score=0.0,
        brightness=0.0,
        error_message=message,
    )
