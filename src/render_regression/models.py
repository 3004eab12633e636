"""Data models and enums for visual regression comparison."""

from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class SkinningMode(str, Enum):
    """Skinning algorithms the renderer can be switched between."""

    LINEAR_BLEND = "lbs"  # Linear Blend Skinning, the default path
    DUAL_QUATERNION = "dqs"  # Dual Quaternion Skinning, volume preserving


@dataclass
class VideoInfo:
    """Basic video metadata."""

    path: Path
    fps: float
    duration: float
    frame_count: Optional[int]  # Estimate from nominal rate x duration; None if unknown
    width: int
    height: int


@dataclass(frozen=True)
class FrameComparison:
    """Difference metrics for one pair of frames."""

    identical: bool
    max_difference: float  # Perceptual, 0..1
    average_difference: float  # Perceptual, 0..1
    different_pixels: int
    psnr: float  # dB


@dataclass(frozen=True)
class ComparisonResult:
    """Aggregate of frame comparisons over a whole sequence."""

    frame_count: int
    matching_frames: int
    different_frames: int
    max_difference: float
    average_difference: float
    max_diff_frame: int
    psnr: float  # Mean of per-frame PSNR
    passed: bool

    @property
    def matching_ratio(self) -> float:
        return self.matching_frames / self.frame_count if self.frame_count else 0.0

    @property
    def different_ratio(self) -> float:
        return self.different_frames / self.frame_count if self.frame_count else 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Verdict:
    """Outcome of applying a pass policy to a comparison result."""

    passed: bool
    summary: str
