"""
Render Regression - Detect visual regressions in rendered avatar videos.

This library compares a test render against a reference render frame by frame
using a luma-weighted perceptual difference and PSNR, and can check that an
alternate skinning algorithm really changes the rendered output.

Example usage:
    from pathlib import Path
    from render_regression import CompareSettings, compare_videos

    result = compare_videos(
        Path("reference.mov"),
        Path("test.mov"),
        CompareSettings(threshold=0.02),
    )
    print(f"Max difference: {result.max_difference:.4f}, passed: {result.passed}")
"""

from importlib.metadata import version

from .aggregator import compare_sources, compare_videos, resolve_frame_count
from .config import CompareSettings, DifferentialSettings, RenderConfig
from .diff import compare_frames, difference_map, save_difference_image
from .exceptions import (
    DimensionsMismatchError,
    FramesMismatchError,
    InvalidArgumentsError,
    OutputError,
    RenderError,
    UnreadableVideoError,
    VideoNotFoundError,
    VisualRegressionError,
)
from .models import ComparisonResult, FrameComparison, SkinningMode, Verdict, VideoInfo
from .policy import DifferentialPolicy, RegressionPolicy
from .render import CommandRenderer, Renderer, generate_reference
from .report import format_differential_report, format_report
from .video import (
    FrameSource,
    ImageSequenceSource,
    VideoFrameSource,
    extract_frames,
    get_video_info,
    open_frame_source,
    write_video,
)
from .workflow import DifferentialRenderWorkflow, DifferentialResult

__version__ = version("render-regression")

__all__ = [
    # Comparison
    "compare_videos",
    "compare_sources",
    "resolve_frame_count",
    "compare_frames",
    "difference_map",
    "save_difference_image",
    # Policies
    "RegressionPolicy",
    "DifferentialPolicy",
    # Differential renders
    "DifferentialRenderWorkflow",
    "DifferentialResult",
    "Renderer",
    "CommandRenderer",
    "generate_reference",
    # Models and settings
    "ComparisonResult",
    "FrameComparison",
    "SkinningMode",
    "Verdict",
    "VideoInfo",
    "CompareSettings",
    "DifferentialSettings",
    "RenderConfig",
    # Frame sources
    "FrameSource",
    "VideoFrameSource",
    "ImageSequenceSource",
    "open_frame_source",
    "extract_frames",
    "get_video_info",
    "write_video",
    # Reports
    "format_report",
    "format_differential_report",
    # Errors
    "VisualRegressionError",
    "VideoNotFoundError",
    "UnreadableVideoError",
    "DimensionsMismatchError",
    "FramesMismatchError",
    "InvalidArgumentsError",
    "OutputError",
    "RenderError",
    # Version
    "__version__",
]
