"""Settings passed explicitly into comparisons, policies and renders."""

from dataclasses import dataclass, replace
from typing import Optional

from .exceptions import InvalidArgumentsError
from .models import SkinningMode

# Defaults for the regression check (must not differ)
DEFAULT_THRESHOLD = 0.02

# Defaults for the differential check (must differ)
DEFAULT_DIFFERENTIAL_THRESHOLD = 0.05
DEFAULT_MIN_EXPECTED_DIFFERENCE = 0.01

# Environment variable holding the renderer command template
RENDERER_ENV_VAR = "RENDER_REGRESSION_RENDERER"


def _check_threshold(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidArgumentsError(f"{name} must be between 0 and 1, got {value}")


@dataclass(frozen=True)
class CompareSettings:
    """Parameters for comparing a test artifact against a reference."""

    threshold: float = DEFAULT_THRESHOLD
    max_frames: Optional[int] = None

    def validate(self) -> "CompareSettings":
        _check_threshold("threshold", self.threshold)
        if self.max_frames is not None and self.max_frames < 1:
            raise InvalidArgumentsError(
                f"max_frames must be at least 1, got {self.max_frames}"
            )
        return self


@dataclass(frozen=True)
class DifferentialSettings:
    """Parameters for the baseline-vs-variant render check."""

    threshold: float = DEFAULT_DIFFERENTIAL_THRESHOLD
    min_expected_difference: float = DEFAULT_MIN_EXPECTED_DIFFERENCE
    baseline: SkinningMode = SkinningMode.LINEAR_BLEND
    variant: SkinningMode = SkinningMode.DUAL_QUATERNION

    def validate(self) -> "DifferentialSettings":
        _check_threshold("threshold", self.threshold)
        _check_threshold("min_expected_difference", self.min_expected_difference)
        return self


@dataclass(frozen=True)
class RenderConfig:
    """Everything the renderer needs besides the model and animation."""

    width: int = 640
    height: int = 360
    fps: int = 30
    duration: float = 2.0
    skinning: SkinningMode = SkinningMode.LINEAR_BLEND

    @property
    def total_frames(self) -> int:
        return int(self.duration * self.fps)

    def with_skinning(self, skinning: SkinningMode) -> "RenderConfig":
        return replace(self, skinning=skinning)

    def validate(self) -> "RenderConfig":
        for name in ("width", "height", "fps"):
            value = getattr(self, name)
            if value <= 0:
                raise InvalidArgumentsError(f"{name} must be positive, got {value}")
        if self.duration <= 0:
            raise InvalidArgumentsError(
                f"duration must be positive, got {self.duration}"
            )
        if self.total_frames < 1:
            raise InvalidArgumentsError(
                f"duration {self.duration}s at {self.fps} fps renders no frames"
            )
        return self
