"""Render the same scene under two skinning modes and require the outputs to differ."""

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .aggregator import compare_videos
from .config import CompareSettings, DifferentialSettings, RenderConfig
from .models import ComparisonResult, SkinningMode, Verdict
from .policy import DifferentialPolicy
from .render import Renderer, render_artifact

PathLike = Union[str, Path]

TEMP_DIR_PREFIX = "render_regression_"


@dataclass(frozen=True)
class DifferentialResult:
    """Comparison of baseline vs. variant renders and the inverted verdict."""

    comparison: ComparisonResult
    verdict: Verdict
    baseline: SkinningMode
    variant: SkinningMode

    @property
    def passed(self) -> bool:
        return self.verdict.passed


class DifferentialRenderWorkflow:
    """
    Check that switching one render setting actually changes the output.

    Both passes use the same model, animation, resolution, frame rate and
    duration; only the skinning mode changes. Renders run one after the other
    into a temporary directory that is removed however the run ends.
    """

    def __init__(
        self,
        renderer: Renderer,
        settings: Optional[DifferentialSettings] = None,
        quiet: bool = False,
    ):
        self.renderer = renderer
        self.settings = (settings or DifferentialSettings()).validate()
        self.policy = DifferentialPolicy(self.settings.min_expected_difference)
        self.quiet = quiet

    def run(
        self,
        model: PathLike,
        animation: PathLike,
        config: Optional[RenderConfig] = None,
    ) -> DifferentialResult:
        config = (config or RenderConfig()).validate()
        baseline, variant = self.settings.baseline, self.settings.variant

        logging.info(f"Generating {baseline.name} vs {variant.name} comparison")
        logging.info(f"Model: {model}")
        logging.info(f"Animation: {animation}")
        logging.info(f"Duration: {config.duration}s @ {config.fps} fps")

        with tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX) as tmp:
            tmp_dir = Path(tmp)
            baseline_path = render_artifact(
                self.renderer,
                model,
                animation,
                config.with_skinning(baseline),
                tmp_dir / f"baseline_{baseline.value}.mov",
            )
            variant_path = render_artifact(
                self.renderer,
                model,
                animation,
                config.with_skinning(variant),
                tmp_dir / f"variant_{variant.value}.mov",
            )

            logging.info("Comparing outputs")
            comparison = compare_videos(
                baseline_path,
                variant_path,
                CompareSettings(threshold=self.settings.threshold),
                quiet=self.quiet,
            )

        verdict = self.policy.evaluate(comparison)
        return DifferentialResult(
            comparison=comparison,
            verdict=verdict,
            baseline=baseline,
            variant=variant,
        )
