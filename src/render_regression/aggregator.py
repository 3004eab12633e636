"""Frame-by-frame comparison of two frame sources into one aggregate result."""

import logging
from itertools import zip_longest
from pathlib import Path
from typing import Iterator, Optional, Union

import numpy as np
from tqdm import tqdm

from .config import CompareSettings
from .diff import compare_frames, save_difference_image
from .exceptions import DimensionsMismatchError, FramesMismatchError, OutputError
from .models import ComparisonResult
from .policy import RegressionPolicy
from .video import FrameSource, open_frame_source


def resolve_frame_count(
    reference_count: Optional[int],
    test_count: Optional[int],
    max_frames: Optional[int] = None,
) -> Optional[int]:
    """
    Number of frames to request from each source: the shorter one, optionally capped.

    Unknown counts (None) do not limit anything. When nothing is known the
    result is None and both sources are read until they end.
    """
    limits = [n for n in (reference_count, test_count, max_frames) if n is not None]
    return min(limits) if limits else None


def _remaining(frames: Iterator[np.ndarray]) -> int:
    return sum(1 for _ in frames)


def compare_sources(
    reference: FrameSource,
    test: FrameSource,
    threshold: float,
    max_frames: Optional[int] = None,
    desc: str = "Comparing frames",
    quiet: bool = False,
    diff_dir: Optional[Path] = None,
) -> ComparisonResult:
    """
    Compare two frame sources position by position.

    Frame N of the reference is always compared with frame N of the test;
    timestamps are not used. Frames are streamed and dropped after use.

    Args:
        reference: Source of reference frames
        test: Source of test frames
        threshold: Per-pixel perceptual difference tolerated before a frame
            counts as different
        max_frames: Compare at most this many frames
        desc: Description for progress bar
        quiet: If True, suppress the progress bar
        diff_dir: If set, write a difference image for every frame that is
            not identical (does not affect the result)

    Returns:
        ComparisonResult over all compared frames

    Raises:
        DimensionsMismatchError: Sources declare different frame sizes
        FramesMismatchError: Sources decoded a different number of frames,
            or no frames at all
        OutputError: A difference image could not be written
    """
    if reference.dimensions != test.dimensions:
        raise DimensionsMismatchError(reference.dimensions, test.dimensions)

    width, height = reference.dimensions
    compare_count = resolve_frame_count(reference.frame_count, test.frame_count, max_frames)

    logging.debug(f"Resolution: {width}x{height}")
    logging.debug(f"Reference frames (estimated): {reference.frame_count}")
    logging.debug(f"Test frames (estimated): {test.frame_count}")
    logging.debug(f"Comparing: {compare_count} frames")

    if diff_dir is not None:
        try:
            diff_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(diff_dir, str(e)) from e

    policy = RegressionPolicy(threshold)
    matching_frames = 0
    different_frames = 0
    max_difference = 0.0
    max_diff_frame = 0
    total_difference = 0.0
    total_psnr = 0.0
    compared = 0

    reference_frames = reference.frames(compare_count)
    test_frames = test.frames(compare_count)

    with tqdm(total=compare_count, desc=desc, disable=quiet) as progress:
        for index, (ref_frame, test_frame) in enumerate(
            zip_longest(reference_frames, test_frames)
        ):
            if ref_frame is None or test_frame is None:
                raise FramesMismatchError(
                    index + (ref_frame is not None) + _remaining(reference_frames),
                    index + (test_frame is not None) + _remaining(test_frames),
                )

            comparison = compare_frames(ref_frame, test_frame, threshold)

            if comparison.identical:
                matching_frames += 1
            else:
                different_frames += 1
                if diff_dir is not None:
                    diff_path = diff_dir / f"frame_{index:05d}.png"
                    try:
                        save_difference_image(ref_frame, test_frame, diff_path)
                    except OSError as e:
                        raise OutputError(diff_path, str(e)) from e

            # Strict comparison: the first frame with the worst difference wins
            if comparison.max_difference > max_difference:
                max_difference = comparison.max_difference
                max_diff_frame = index

            total_difference += comparison.average_difference
            total_psnr += comparison.psnr
            compared += 1
            progress.update(1)

    if compared == 0:
        raise FramesMismatchError(0, 0)
    if compare_count is not None and compared < compare_count:
        logging.warning(
            f"Both sources ended after {compared} of {compare_count} expected frames"
        )

    return ComparisonResult(
        frame_count=compared,
        matching_frames=matching_frames,
        different_frames=different_frames,
        max_difference=max_difference,
        average_difference=total_difference / compared,
        max_diff_frame=max_diff_frame,
        psnr=total_psnr / compared,
        passed=policy.accepts(max_difference),
    )


def compare_videos(
    reference_path: Union[str, Path],
    test_path: Union[str, Path],
    settings: Optional[CompareSettings] = None,
    quiet: bool = False,
    diff_dir: Optional[Path] = None,
) -> ComparisonResult:
    """
    Compare a test artifact against a reference artifact.

    Either path may be a video file or a directory of frame images.
    """
    settings = (settings or CompareSettings()).validate()

    logging.info(f"Loading reference video: {reference_path}")
    with open_frame_source(reference_path) as reference:
        logging.info(f"Loading test video: {test_path}")
        with open_frame_source(test_path) as test:
            return compare_sources(
                reference,
                test,
                threshold=settings.threshold,
                max_frames=settings.max_frames,
                quiet=quiet,
                diff_dir=diff_dir,
            )
