"""Command-line interface for render regression checks."""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import NoReturn, Optional

import av

from . import __version__
from .aggregator import compare_videos
from .config import (
    DEFAULT_DIFFERENTIAL_THRESHOLD,
    DEFAULT_MIN_EXPECTED_DIFFERENCE,
    DEFAULT_THRESHOLD,
    CompareSettings,
    DifferentialSettings,
    RenderConfig,
)
from .exceptions import InvalidArgumentsError, VisualRegressionError
from .models import SkinningMode
from .render import CommandRenderer, Renderer, generate_reference
from .report import (
    EXIT_FAILED,
    exit_code,
    format_differential_report,
    format_report,
)
from .workflow import DifferentialRenderWorkflow


class ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors as InvalidArgumentsError instead of exiting with 2."""

    def error(self, message: str) -> NoReturn:
        raise InvalidArgumentsError(f"{self.prog}: {message}")


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Do not show progress bars"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )


def _add_render_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-w", "--width", type=int, default=640, help="Render width (default: 640)"
    )
    parser.add_argument(
        "-H", "--height", type=int, default=360, help="Render height (default: 360)"
    )
    parser.add_argument(
        "-d",
        "--duration",
        type=float,
        default=2.0,
        help="Render duration in seconds (default: 2.0)",
    )
    parser.add_argument(
        "-f", "--fps", type=int, default=30, help="Frames per second (default: 30)"
    )
    parser.add_argument(
        "--renderer",
        help="Renderer command template, e.g. "
        "'vrm-render {model} {animation} {output} --skinning {skinning}' "
        "(default: $RENDER_REGRESSION_RENDERER)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = ArgumentParser(
        prog="render-regression",
        description="""\
Visual regression testing for rendered avatar videos.

Frames are compared position by position using a luma-weighted perceptual
difference (0.299 R + 0.587 G + 0.114 B) and PSNR.

Exit codes:
  0   Success / no regressions detected
  1   Regressions detected or error
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="command")

    compare = subparsers.add_parser(
        "compare",
        help="Compare two video files for visual differences",
        description="Compare a test video against a reference video.",
    )
    compare.add_argument("reference", type=Path, help="Reference video or frame directory")
    compare.add_argument("test", type=Path, help="Test video or frame directory")
    compare.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help=f"Per-pixel difference threshold, 0-1 (default: {DEFAULT_THRESHOLD})",
    )
    compare.add_argument(
        "--max-frames", type=int, help="Compare at most N frames (default: all)"
    )
    compare.add_argument(
        "--diff-dir",
        type=Path,
        help="Write a difference image for every frame that differs",
    )
    compare.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )
    _add_common_options(compare)
    compare.set_defaults(func=run_compare)

    lbs_dqs = subparsers.add_parser(
        "compare-lbs-dqs",
        help="Render with LBS and DQS and check that the outputs differ",
        description="Render the same animation with linear blend and dual "
        "quaternion skinning and verify that DQS produces different output.",
    )
    lbs_dqs.add_argument("model", type=Path, help="Model file")
    lbs_dqs.add_argument("animation", type=Path, help="Animation file")
    _add_render_options(lbs_dqs)
    lbs_dqs.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=DEFAULT_DIFFERENTIAL_THRESHOLD,
        help=f"Per-pixel difference threshold, 0-1 "
        f"(default: {DEFAULT_DIFFERENTIAL_THRESHOLD})",
    )
    lbs_dqs.add_argument(
        "--min-difference",
        type=float,
        default=DEFAULT_MIN_EXPECTED_DIFFERENCE,
        help=f"Max difference the outputs must exceed "
        f"(default: {DEFAULT_MIN_EXPECTED_DIFFERENCE})",
    )
    lbs_dqs.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )
    _add_common_options(lbs_dqs)
    lbs_dqs.set_defaults(func=run_compare_lbs_dqs)

    generate = subparsers.add_parser(
        "generate",
        help="Generate a reference video for later comparison",
        description="Render a reference video to compare future renders against.",
    )
    generate.add_argument("model", type=Path, help="Model file")
    generate.add_argument("animation", type=Path, help="Animation file")
    generate.add_argument("output", type=Path, help="Output video")
    _add_render_options(generate)
    generate.add_argument(
        "--skinning",
        type=SkinningMode,
        choices=list(SkinningMode),
        default=SkinningMode.LINEAR_BLEND,
        metavar="{lbs,dqs}",
        help="Skinning algorithm (default: lbs)",
    )
    _add_common_options(generate)
    generate.set_defaults(func=run_generate)

    return parser


def _render_config(args: argparse.Namespace, skinning: SkinningMode) -> RenderConfig:
    return RenderConfig(
        width=args.width,
        height=args.height,
        fps=args.fps,
        duration=args.duration,
        skinning=skinning,
    ).validate()


def _renderer(args: argparse.Namespace) -> Renderer:
    if args.renderer:
        return CommandRenderer(args.renderer)
    return CommandRenderer.from_env()


def _print_json(output: dict) -> None:
    print(json.dumps({"date": datetime.now().isoformat(), **output}, indent=2))


def run_compare(args: argparse.Namespace) -> bool:
    settings = CompareSettings(threshold=args.threshold, max_frames=args.max_frames)

    start_time = datetime.now()
    result = compare_videos(
        args.reference,
        args.test,
        settings,
        quiet=args.quiet,
        diff_dir=args.diff_dir,
    )
    compute_time = (datetime.now() - start_time).total_seconds()
    logging.debug(f"Comparison finished in {compute_time:.2f} seconds")

    if args.json:
        _print_json(
            {
                "reference": str(args.reference),
                "test": str(args.test),
                **result.to_dict(),
                "settings": {
                    "threshold": settings.threshold,
                    "max_frames": settings.max_frames,
                    "compute_time": compute_time,
                },
            }
        )
    else:
        print(format_report(result))

    return result.passed


def run_compare_lbs_dqs(args: argparse.Namespace) -> bool:
    config = _render_config(args, SkinningMode.LINEAR_BLEND)
    settings = DifferentialSettings(
        threshold=args.threshold,
        min_expected_difference=args.min_difference,
    )
    workflow = DifferentialRenderWorkflow(_renderer(args), settings, quiet=args.quiet)
    result = workflow.run(args.model, args.animation, config)

    if args.json:
        _print_json(
            {
                "model": str(args.model),
                "animation": str(args.animation),
                "baseline": result.baseline.value,
                "variant": result.variant.value,
                **result.comparison.to_dict(),
                "differs": result.passed,
                "settings": {
                    "threshold": settings.threshold,
                    "min_expected_difference": settings.min_expected_difference,
                    "width": config.width,
                    "height": config.height,
                    "fps": config.fps,
                    "duration": config.duration,
                },
            }
        )
    else:
        print(format_differential_report(result))

    if not result.passed:
        logging.warning("DQS output is nearly identical to LBS; DQS may not be applied")
    return result.passed


def run_generate(args: argparse.Namespace) -> bool:
    config = _render_config(args, args.skinning)
    artifact = generate_reference(
        _renderer(args), args.model, args.animation, args.output, config
    )
    print(f"Reference video generated: {artifact}")
    return True


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except InvalidArgumentsError as e:
        parser.print_usage(sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILED)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        passed = args.func(args)
    except (VisualRegressionError, OSError, av.error.FFmpegError) as e:
        logging.error(f"Error: {e}")
        logging.debug("Details:", exc_info=True)
        sys.exit(EXIT_FAILED)

    sys.exit(exit_code(passed))


if __name__ == "__main__":
    main()
