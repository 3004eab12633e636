"""Adapters around the external renderer that produces video artifacts."""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence, Union

from .config import RENDERER_ENV_VAR, RenderConfig
from .exceptions import (
    InvalidArgumentsError,
    OutputError,
    RenderError,
    VideoNotFoundError,
    VisualRegressionError,
)

PathLike = Union[str, Path]

# Lines of renderer stderr kept in RenderError messages
STDERR_TAIL_LINES = 20


class Renderer(Protocol):
    """Renders an animated model to a video artifact at ``output``."""

    def render(
        self, model: Path, animation: Path, config: RenderConfig, output: Path
    ) -> Path: ...


class CommandRenderer:
    """
    Runs an external render program for each artifact.

    The command template is split like a shell command line; each argument may
    contain the placeholders ``{model}``, ``{animation}``, ``{output}``,
    ``{width}``, ``{height}``, ``{fps}``, ``{duration}``, ``{frames}`` and
    ``{skinning}``.
    """

    def __init__(self, template: Union[str, Sequence[str]], timeout: Optional[float] = None):
        self.template = shlex.split(template) if isinstance(template, str) else list(template)
        if not self.template:
            raise InvalidArgumentsError("Renderer command is empty")
        self.timeout = timeout

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CommandRenderer":
        environ = os.environ if environ is None else environ
        template = environ.get(RENDERER_ENV_VAR)
        if not template:
            raise InvalidArgumentsError(
                f"No renderer configured: pass --renderer or set {RENDERER_ENV_VAR}"
            )
        return cls(template)

    def build_command(
        self, model: Path, animation: Path, config: RenderConfig, output: Path
    ) -> list[str]:
        values = {
            "model": str(model),
            "animation": str(animation),
            "output": str(output),
            "width": config.width,
            "height": config.height,
            "fps": config.fps,
            "duration": config.duration,
            "frames": config.total_frames,
            "skinning": config.skinning.value,
        }
        try:
            return [arg.format(**values) for arg in self.template]
        except (KeyError, IndexError, ValueError) as e:
            raise InvalidArgumentsError(f"Invalid renderer command template: {e}") from e

    def render(
        self, model: Path, animation: Path, config: RenderConfig, output: Path
    ) -> Path:
        command = self.build_command(model, animation, config, output)
        logging.debug(f"Running renderer: {shlex.join(command)}")

        try:
            completed = subprocess.run(
                command, capture_output=True, text=True, timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RenderError(f"Could not run renderer {command[0]}: {e}") from e

        if completed.returncode != 0:
            tail = "\n".join(completed.stderr.strip().splitlines()[-STDERR_TAIL_LINES:])
            raise RenderError(
                f"Renderer exited with status {completed.returncode}"
                + (f":\n{tail}" if tail else "")
            )
        if not output.exists():
            raise RenderError(f"Renderer did not produce {output}")
        return output


def render_artifact(
    renderer: Renderer,
    model: PathLike,
    animation: PathLike,
    config: RenderConfig,
    output: PathLike,
) -> Path:
    """Render once after checking inputs, returning the artifact path."""
    model, animation, output = Path(model), Path(animation), Path(output)
    for kind, path in (("Model", model), ("Animation", animation)):
        if not path.exists():
            raise VideoNotFoundError(path, kind)
    config.validate()

    logging.info(
        f"Rendering {model.name} / {animation.name} with {config.skinning.name} skinning "
        f"({config.width}x{config.height}, {config.duration}s @ {config.fps} fps)"
    )
    try:
        artifact = renderer.render(model, animation, config, output)
    except VisualRegressionError:
        raise
    except Exception as e:
        raise RenderError(f"Renderer failed: {e}") from e
    if not Path(artifact).exists():
        raise RenderError(f"Renderer did not produce {artifact}")
    return Path(artifact)


def generate_reference(
    renderer: Renderer,
    model: PathLike,
    animation: PathLike,
    output: PathLike,
    config: Optional[RenderConfig] = None,
) -> Path:
    """Render a baseline artifact to keep for later regression comparisons."""
    output = Path(output)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(output.parent, str(e)) from e
    artifact = render_artifact(renderer, model, animation, config or RenderConfig(), output)
    logging.info(f"Reference video generated: {artifact}")
    return artifact
