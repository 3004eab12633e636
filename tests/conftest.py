"""Pytest configuration and fixtures for render regression tests."""

from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence

import numpy as np
import pytest

from render_regression import RenderConfig, SkinningMode, write_video

RED = (255, 0, 0)
GREEN = (0, 255, 0)
GRAY = (128, 128, 128)
SQUARE = (220, 180, 140)


def solid_frame(color: Sequence[int], width: int = 64, height: int = 64) -> np.ndarray:
    """Opaque RGBA frame filled with one color."""
    frame = np.empty((height, width, 4), dtype=np.uint8)
    frame[..., :3] = color
    frame[..., 3] = 255
    return frame


def square_frame(
    index: int, width: int = 64, height: int = 48, offset: int = 0
) -> np.ndarray:
    """Gray frame with a square that moves right by two pixels per frame."""
    frame = solid_frame(GRAY, width, height)
    x = (index * 2 + offset) % (width - 12)
    frame[16:28, x : x + 12, :3] = SQUARE
    return frame


class FakeFrameSource:
    """In-memory frame source; records how many frames were handed out."""

    def __init__(
        self,
        frames: Sequence[np.ndarray],
        frame_count: Optional[int] = None,
        dimensions: Optional[tuple[int, int]] = None,
    ):
        self._frames = list(frames)
        self.frame_count = len(self._frames) if frame_count is None else frame_count
        if dimensions is None:
            height, width = self._frames[0].shape[:2]
            dimensions = (width, height)
        self.dimensions = dimensions
        self.decoded = 0

    def frames(self, max_frames: Optional[int] = None) -> Iterator[np.ndarray]:
        for frame in self._frames[:max_frames]:
            self.decoded += 1
            yield frame


class SyntheticRenderer:
    """
    Stand-in renderer writing lossless videos of a moving square.

    With dual quaternion skinning the square is drawn a few pixels further
    right; ``ignore_skinning`` reproduces a renderer that silently falls back
    to linear blend skinning.
    """

    def __init__(self, ignore_skinning: bool = False, fail_on_call: Optional[int] = None):
        self.ignore_skinning = ignore_skinning
        self.fail_on_call = fail_on_call
        self.calls: list[tuple[RenderConfig, Path]] = []

    def render(self, model: Path, animation: Path, config: RenderConfig, output: Path) -> Path:
        self.calls.append((config, output))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("render device lost")

        offset = 0
        if config.skinning == SkinningMode.DUAL_QUATERNION and not self.ignore_skinning:
            offset = 4
        frames = (
            square_frame(i, config.width, config.height, offset)
            for i in range(config.total_frames)
        )
        write_video(output, frames, fps=config.fps)
        return output


@pytest.fixture
def make_video(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a lossless video into tmp_path."""

    def _make(name: str, frames: Sequence[np.ndarray], fps: int = 10) -> Path:
        path = tmp_path / name
        write_video(path, frames, fps=fps)
        return path

    return _make


@pytest.fixture
def reference_video(make_video: Callable[..., Path]) -> Path:
    """10 frames, 64x48 @ 10 fps, square moving right."""
    return make_video("reference.mov", [square_frame(i) for i in range(10)])


@pytest.fixture
def shifted_video(make_video: Callable[..., Path]) -> Path:
    """Same as reference_video with the square shifted by 4 pixels."""
    return make_video("shifted.mov", [square_frame(i, offset=4) for i in range(10)])


@pytest.fixture
def scene_files(tmp_path: Path) -> tuple[Path, Path]:
    """Placeholder model and animation files for the renderer."""
    model = tmp_path / "avatar.vrm"
    animation = tmp_path / "walk.vrma"
    model.write_bytes(b"model")
    animation.write_bytes(b"animation")
    return model, animation
