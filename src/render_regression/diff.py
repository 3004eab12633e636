"""Perceptual and PSNR difference metrics for pairs of frames."""

import math
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

from .models import FrameComparison

# ITU-R BT.601 luma weights for R, G, B
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

# Reported instead of +inf when two frames are pixel-identical (MSE == 0)
PSNR_IDENTICAL = 99.0

MAX_PIXEL_VALUE = 255.0


def _rgb(frame: np.ndarray) -> np.ndarray:
    """Color channels of an RGB(A) frame as contiguous float64, alpha dropped."""
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise ValueError(f"Expected an (H, W, 3|4) frame, got shape {frame.shape}")
    return np.ascontiguousarray(frame[..., :3], dtype=np.float64)


def _size(frame: np.ndarray) -> tuple[int, int]:
    return frame.shape[1], frame.shape[0]


def difference_map(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Per-pixel perceptual difference of two equally sized frames.

    Each value is ``0.299*|dR| + 0.587*|dG| + 0.114*|dB|`` with channels
    normalized to [0, 1], so the map lies in [0, 1].

    Returns:
        Array of shape ``(height, width)``
    """
    if _size(a) != _size(b):
        raise ValueError(f"Frame sizes differ: {_size(a)} vs {_size(b)}")
    delta = np.abs(_rgb(a) - _rgb(b)) / MAX_PIXEL_VALUE
    return delta @ LUMA_WEIGHTS


def psnr_from_mse(mse: float) -> float:
    """PSNR in dB for 8-bit channels, with a fixed ceiling for identical frames."""
    if mse <= 0:
        return PSNR_IDENTICAL
    return 10 * math.log10(MAX_PIXEL_VALUE**2 / mse)


def compare_frames(a: np.ndarray, b: np.ndarray, threshold: float) -> FrameComparison:
    """
    Compare two frames with a luma-weighted perceptual metric and PSNR.

    Frames of different size are not inspected at all; they are reported as
    maximally different so callers can treat them like any other failure.

    Args:
        a: Reference frame, ``(height, width, 4)`` uint8 (alpha is ignored)
        b: Test frame
        threshold: Per-pixel perceptual difference above which a pixel counts
            as different

    Returns:
        FrameComparison; ``identical`` is ``max_difference < threshold``
    """
    if _size(a) != _size(b):
        width, height = _size(a)
        return FrameComparison(
            identical=False,
            max_difference=1.0,
            average_difference=1.0,
            different_pixels=width * height,
            psnr=0.0,
        )

    # Arrays are C-contiguous (row-major), so every reduction below visits
    # pixels in the same order on every run
    delta = np.abs(_rgb(a) - _rgb(b))
    perceptual = (delta / MAX_PIXEL_VALUE) @ LUMA_WEIGHTS

    max_difference = float(perceptual.max())
    average_difference = float(perceptual.mean())
    different_pixels = int(np.count_nonzero(perceptual > threshold))

    # Unweighted MSE over 0-255 values, used for PSNR only
    mse = float(np.mean(np.sum(delta * delta, axis=2) / 3.0))

    return FrameComparison(
        identical=max_difference < threshold,
        max_difference=max_difference,
        average_difference=average_difference,
        different_pixels=different_pixels,
        psnr=psnr_from_mse(mse),
    )


def save_difference_image(
    a: np.ndarray, b: np.ndarray, path: Union[str, Path]
) -> Path:
    """Write the perceptual difference map as an 8-bit grayscale PNG (white = max)."""
    path = Path(path)
    scaled = np.clip(np.rint(difference_map(a, b) * MAX_PIXEL_VALUE), 0, 255)
    Image.fromarray(scaled.astype(np.uint8)).save(path)
    return path
