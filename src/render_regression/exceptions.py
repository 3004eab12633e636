"""Exceptions raised by the comparison pipeline."""

from pathlib import Path
from typing import Union


class VisualRegressionError(Exception):
    """Base class for all errors that abort a comparison."""


class VideoNotFoundError(VisualRegressionError, FileNotFoundError):
    """The artifact path does not exist."""

    def __init__(self, path: Union[str, Path], kind: str = "Video"):
        self.path = Path(path)
        super().__init__(f"{kind} not found: {self.path}")


class UnreadableVideoError(VisualRegressionError):
    """The artifact could not be opened or has no decodable video track."""

    def __init__(self, path: Union[str, Path], reason: str = ""):
        self.path = Path(path)
        message = f"Unable to read video: {self.path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class DimensionsMismatchError(VisualRegressionError):
    """Reference and test artifacts have different frame dimensions."""

    def __init__(self, reference: tuple[int, int], test: tuple[int, int]):
        self.reference = reference
        self.test = test
        super().__init__(
            f"Dimensions mismatch: reference is {reference[0]}x{reference[1]}, "
            f"test is {test[0]}x{test[1]}"
        )


class FramesMismatchError(VisualRegressionError):
    """The two sources decoded a different number of frames."""

    def __init__(self, reference_count: int, test_count: int):
        self.reference_count = reference_count
        self.test_count = test_count
        if reference_count == test_count == 0:
            message = "No frames could be decoded for comparison"
        else:
            message = (
                f"Frame count mismatch: reference decoded {reference_count} frames, "
                f"test decoded {test_count}"
            )
        super().__init__(message)


class InvalidArgumentsError(VisualRegressionError):
    """Command line or configuration values are invalid."""


class RenderError(VisualRegressionError):
    """The external renderer failed or did not produce an artifact."""


class OutputError(VisualRegressionError):
    """A file or directory requested as output could not be written."""

    def __init__(self, path: Union[str, Path], reason: str = ""):
        self.path = Path(path)
        message = f"Unable to write output: {self.path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
