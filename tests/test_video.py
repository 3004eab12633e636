"""Tests for frame sources backed by real video files and frame directories."""

import shutil
from fractions import Fraction
from pathlib import Path
from types import SimpleNamespace
from typing import Callable

import numpy as np
import pytest
from PIL import Image

from conftest import square_frame
from render_regression import (
    CompareSettings,
    DimensionsMismatchError,
    FramesMismatchError,
    ImageSequenceSource,
    UnreadableVideoError,
    VideoFrameSource,
    VideoNotFoundError,
    compare_videos,
    extract_frames,
    get_video_info,
    open_frame_source,
    write_video,
)
from render_regression.video import _read_info


class TestVideoInfo:
    """Tests for get_video_info function."""

    def test_get_video_info(self, reference_video: Path) -> None:
        info = get_video_info(reference_video)

        assert info.path == reference_video
        assert info.width == 64
        assert info.height == 48
        assert info.fps == pytest.approx(10.0)
        assert 0.9 <= info.duration <= 1.1
        assert 9 <= info.frame_count <= 11

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(VideoNotFoundError):
            get_video_info(tmp_path / "missing.mov")

    def test_not_a_video(self, tmp_path: Path) -> None:
        path = tmp_path / "garbage.mov"
        path.write_bytes(b"this is not a video container" * 10)

        with pytest.raises(UnreadableVideoError):
            get_video_info(path)

    def test_raw_stream_has_unknown_frame_count(self, tmp_path: Path) -> None:
        path = tmp_path / "clip.mjpeg"
        write_video(path, [square_frame(i) for i in range(5)], codec="mjpeg", pix_fmt="yuvj420p")

        info = get_video_info(path)

        assert info.frame_count is None
        assert (info.width, info.height) == (64, 48)

    def test_estimate_is_rounded(self, tmp_path: Path) -> None:
        # 60 frames @ 30 fps whose reported duration falls a little short
        stream = SimpleNamespace(
            average_rate=Fraction(30), base_rate=None, duration=1999,
            time_base=Fraction(1, 1000), frames=0, width=64, height=48,
        )
        container = SimpleNamespace(duration=None)

        info = _read_info(tmp_path / "clip.nut", container, stream)

        assert info.frame_count == 60


class TestVideoFrameSource:
    """Tests for VideoFrameSource."""

    def test_decodes_exact_pixels(self, reference_video: Path) -> None:
        with VideoFrameSource(reference_video) as source:
            frames = list(source.frames())

        assert len(frames) == 10
        for index, frame in enumerate(frames):
            assert frame.shape == (48, 64, 4)
            assert frame.dtype == np.uint8
            assert np.array_equal(frame[..., :3], square_frame(index)[..., :3])

    def test_dimensions(self, reference_video: Path) -> None:
        with VideoFrameSource(reference_video) as source:
            assert source.dimensions == (64, 48)
            assert (source.width, source.height) == (64, 48)

    def test_max_frames(self, reference_video: Path) -> None:
        with VideoFrameSource(reference_video) as source:
            frames = list(source.frames(max_frames=4))

        assert len(frames) == 4

    def test_frames_are_lazy(self, reference_video: Path) -> None:
        with VideoFrameSource(reference_video) as source:
            frames = source.frames()
            first = next(frames)

            assert np.array_equal(first[..., :3], square_frame(0)[..., :3])

    def test_not_restartable(self, reference_video: Path) -> None:
        with VideoFrameSource(reference_video) as source:
            list(source.frames())

            with pytest.raises(RuntimeError):
                list(source.frames())

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(VideoNotFoundError):
            VideoFrameSource(tmp_path / "missing.mov")

    def test_extract_frames(self, reference_video: Path) -> None:
        assert len(list(extract_frames(reference_video, max_frames=3))) == 3


class TestImageSequenceSource:
    """Tests for directories of frame images."""

    @pytest.fixture
    def frame_dir(self, tmp_path: Path) -> Path:
        directory = tmp_path / "frames"
        directory.mkdir()
        for index in range(5):
            Image.fromarray(square_frame(index)).save(directory / f"frame_{index:05d}.png")
        (directory / "notes.txt").write_text("ignored")
        return directory

    def test_reads_frames_in_order(self, frame_dir: Path) -> None:
        with ImageSequenceSource(frame_dir) as source:
            assert source.frame_count == 5
            assert source.dimensions == (64, 48)
            frames = list(source.frames())

        assert len(frames) == 5
        for index, frame in enumerate(frames):
            assert np.array_equal(frame, square_frame(index))

    def test_max_frames(self, frame_dir: Path) -> None:
        source = ImageSequenceSource(frame_dir)

        assert len(list(source.frames(2))) == 2

    def test_open_frame_source_picks_directory(self, frame_dir: Path) -> None:
        assert isinstance(open_frame_source(frame_dir), ImageSequenceSource)

    def test_empty_directory(self, tmp_path: Path) -> None:
        with pytest.raises(UnreadableVideoError):
            ImageSequenceSource(tmp_path)

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(VideoNotFoundError):
            ImageSequenceSource(tmp_path / "nope")

    def test_matches_video_of_same_frames(
        self, frame_dir: Path, make_video: Callable[..., Path]
    ) -> None:
        video = make_video("five.mov", [square_frame(i) for i in range(5)])

        result = compare_videos(frame_dir, video, quiet=True)

        assert result.passed
        assert result.different_frames == 0


class TestWriteVideo:
    """Tests for write_video."""

    def test_returns_frame_count(self, tmp_path: Path) -> None:
        count = write_video(tmp_path / "out.mov", [square_frame(i) for i in range(3)], fps=25)

        assert count == 3

    def test_rejects_empty_stream(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            write_video(tmp_path / "out.mov", [])

    def test_rejects_mixed_sizes(self, tmp_path: Path) -> None:
        frames = [square_frame(0), square_frame(1, width=32)]

        with pytest.raises(ValueError):
            write_video(tmp_path / "out.mov", frames)

    def test_matroska_with_lossless_codec(self, tmp_path: Path) -> None:
        path = tmp_path / "out.mkv"
        write_video(path, [square_frame(i) for i in range(3)], codec="ffv1", pix_fmt="gbrp")

        frames = list(extract_frames(path))

        assert len(frames) == 3
        for index, frame in enumerate(frames):
            assert np.array_equal(frame[..., :3], square_frame(index)[..., :3])


class TestCompareVideos:
    """End-to-end comparisons of video files."""

    def test_byte_identical_copy_passes(self, reference_video: Path, tmp_path: Path) -> None:
        copy = tmp_path / "copy.mov"
        shutil.copyfile(reference_video, copy)

        result = compare_videos(reference_video, copy, quiet=True)

        assert result.passed
        assert result.different_frames == 0
        assert result.max_difference == 0.0
        assert result.psnr == 99.0

    def test_shifted_video_fails(self, reference_video: Path, shifted_video: Path) -> None:
        result = compare_videos(reference_video, shifted_video, quiet=True)

        assert not result.passed
        assert result.different_frames == result.frame_count
        assert result.max_diff_frame == 0

    def test_max_frames(self, reference_video: Path, shifted_video: Path) -> None:
        result = compare_videos(
            reference_video, shifted_video, CompareSettings(max_frames=3), quiet=True
        )

        assert result.frame_count == 3

    def test_dimension_mismatch(
        self, reference_video: Path, make_video: Callable[..., Path]
    ) -> None:
        small = make_video("small.mov", [square_frame(i, width=32) for i in range(10)])

        with pytest.raises(DimensionsMismatchError):
            compare_videos(reference_video, small, quiet=True)

    def test_missing_test_video(self, reference_video: Path, tmp_path: Path) -> None:
        with pytest.raises(VideoNotFoundError):
            compare_videos(reference_video, tmp_path / "missing.mov", quiet=True)

    def test_raw_stream_copy_passes(self, tmp_path: Path) -> None:
        reference = tmp_path / "reference.mjpeg"
        write_video(
            reference, [square_frame(i) for i in range(20)], codec="mjpeg", pix_fmt="yuvj420p"
        )
        copy = tmp_path / "copy.mjpeg"
        shutil.copyfile(reference, copy)

        result = compare_videos(reference, copy, quiet=True)

        assert result.passed
        assert result.frame_count == 20
        assert result.max_difference == 0.0

    def test_truncated_artifact(self, tmp_path: Path) -> None:
        reference = tmp_path / "reference.nut"
        write_video(reference, [square_frame(i) for i in range(100)], fps=10)
        truncated = tmp_path / "truncated.nut"
        data = reference.read_bytes()
        truncated.write_bytes(data[: len(data) * 2 // 5])

        with pytest.raises(FramesMismatchError) as exc_info:
            compare_videos(reference, truncated, quiet=True)

        assert exc_info.value.test_count < exc_info.value.reference_count
