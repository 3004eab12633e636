"""Pass/fail rules applied to an aggregate comparison result."""

from dataclasses import dataclass

from .config import DEFAULT_MIN_EXPECTED_DIFFERENCE, DEFAULT_THRESHOLD
from .models import ComparisonResult, Verdict


@dataclass(frozen=True)
class RegressionPolicy:
    """Test output must stay within ``threshold`` of the reference."""

    threshold: float = DEFAULT_THRESHOLD

    def accepts(self, max_difference: float) -> bool:
        return max_difference <= self.threshold

    def evaluate(self, result: ComparisonResult) -> Verdict:
        if self.accepts(result.max_difference):
            return Verdict(
                passed=True,
                summary=f"No regressions detected (max difference "
                f"{result.max_difference:.4f} <= {self.threshold:.4f})",
            )
        return Verdict(
            passed=False,
            summary=f"Regression detected: max difference {result.max_difference:.4f} "
            f"exceeds {self.threshold:.4f} (worst frame #{result.max_diff_frame}, "
            f"{result.different_frames}/{result.frame_count} frames differ)",
        )


@dataclass(frozen=True)
class DifferentialPolicy:
    """
    Variant output must differ observably from the baseline.

    Passing proves the variant code path actually ran; near-identical output
    means it silently fell back to the baseline.
    """

    min_expected_difference: float = DEFAULT_MIN_EXPECTED_DIFFERENCE

    def evaluate(self, result: ComparisonResult) -> Verdict:
        if result.max_difference > self.min_expected_difference and result.different_frames > 0:
            return Verdict(
                passed=True,
                summary=f"Variant output differs from baseline (max difference "
                f"{result.max_difference:.4f}, different frames "
                f"{result.different_frames}/{result.frame_count})",
            )
        return Verdict(
            passed=False,
            summary=f"Variant output is nearly identical to baseline (max difference "
            f"{result.max_difference:.4f} <= {self.min_expected_difference:.4f} or no "
            f"different frames); the variant may not be applied",
        )
