"""Human-readable reports and exit codes."""

from .models import ComparisonResult, Verdict
from .workflow import DifferentialResult

EXIT_PASSED = 0
EXIT_FAILED = 1

RULE = "=" * 53


def exit_code(passed: bool) -> int:
    return EXIT_PASSED if passed else EXIT_FAILED


def _percent(ratio: float) -> str:
    return f"{ratio * 100:.1f}%"


def format_report(result: ComparisonResult) -> str:
    """Summary block for one comparison."""
    lines = [
        "Visual Regression Results",
        RULE,
        f"Frames compared:    {result.frame_count}",
        f"Matching frames:    {result.matching_frames} ({_percent(result.matching_ratio)})",
        f"Different frames:   {result.different_frames} ({_percent(result.different_ratio)})",
        "",
        "Difference Metrics:",
        f"  Max difference:   {result.max_difference:.4f}",
        f"  Average diff:     {result.average_difference:.4f}",
        f"  Worst frame:      #{result.max_diff_frame}",
        f"  PSNR:             {result.psnr:.2f} dB",
        "",
        f"Result: {'PASSED' if result.passed else 'FAILED'}",
        RULE,
    ]
    return "\n".join(lines)


def format_verdict(verdict: Verdict) -> str:
    return f"{'PASSED' if verdict.passed else 'FAILED'}: {verdict.summary}"


def format_differential_report(result: DifferentialResult) -> str:
    """
    Summary block for a baseline-vs-variant run.

    The ``Result`` line of the comparison block refers to the regression
    threshold; the final line is the inverted verdict that decides the run.
    """
    return "\n".join(
        [
            f"{result.baseline.name} vs {result.variant.name}",
            format_report(result.comparison),
            "",
            format_verdict(result.verdict),
        ]
    )
