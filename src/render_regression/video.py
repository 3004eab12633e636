"""Frame sources for video artifacts and frame sequences, plus encoding."""

import itertools
import logging
from fractions import Fraction
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol, Union

import av
import numpy as np
from PIL import Image

from .exceptions import UnreadableVideoError, VideoNotFoundError
from .models import VideoInfo

PathLike = Union[str, Path]

# File extensions picked up from a frame sequence directory
IMAGE_SUFFIXES = (".png", ".bmp", ".tif", ".tiff", ".jpg", ".jpeg")


class FrameSource(Protocol):
    """
    Forward-only producer of RGBA frames.

    ``frame_count`` is only an estimate, or None when the container does not
    say; consumers must count what ``frames()`` actually yields.
    """

    @property
    def frame_count(self) -> Optional[int]: ...

    @property
    def dimensions(self) -> tuple[int, int]: ...

    def frames(self, max_frames: Optional[int] = None) -> Iterator[np.ndarray]: ...


def _open_container(path: Path) -> "av.container.InputContainer":
    if not path.exists():
        raise VideoNotFoundError(path)
    try:
        container = av.open(str(path))
    except (av.error.FFmpegError, OSError) as e:
        raise UnreadableVideoError(path, str(e)) from e

    if not container.streams.video:
        container.close()
        raise UnreadableVideoError(path, "no video track")
    return container


def _read_info(path: Path, container, stream) -> VideoInfo:
    fps = Fraction(stream.average_rate or stream.base_rate or 25)
    if stream.duration is not None and stream.time_base is not None:
        duration = stream.duration * Fraction(stream.time_base)
    elif container.duration:
        duration = Fraction(container.duration, av.time_base)
    else:
        duration = Fraction(0)

    # Nominal rate x duration, rounded since the last frame often ends a tick
    # short of the full duration. Raw elementary streams carry neither a
    # duration nor a frame count.
    if duration:
        frame_count = round(fps * duration)
    else:
        frame_count = stream.frames or None

    return VideoInfo(
        path=path,
        fps=float(fps),
        duration=float(duration),
        frame_count=frame_count,
        width=stream.width,
        height=stream.height,
    )


def get_video_info(path: PathLike) -> VideoInfo:
    """Extract video metadata using PyAV."""
    path = Path(path)
    container = _open_container(path)
    with container:
        return _read_info(path, container, container.streams.video[0])


class VideoFrameSource:
    """
    One decode session over a video artifact.

    The container is opened eagerly so that missing or unreadable files fail
    on construction. Frames are decoded lazily and not retained.
    """

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self._container = _open_container(self.path)
        stream = self._container.streams.video[0]
        stream.thread_type = "AUTO"
        self.info = _read_info(self.path, self._container, stream)
        self._consumed = False

    @property
    def frame_count(self) -> Optional[int]:
        return self.info.frame_count

    @property
    def width(self) -> int:
        return self.info.width

    @property
    def height(self) -> int:
        return self.info.height

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.info.width, self.info.height

    def frames(self, max_frames: Optional[int] = None) -> Iterator[np.ndarray]:
        """
        Decode frames in order as ``(height, width, 4)`` uint8 RGBA arrays.

        Args:
            max_frames: Stop after this many frames (default: until the stream ends)

        Yields:
            One array per decoded frame. A stream that ends early or fails to
            decode part way simply yields fewer frames.
        """
        if self._consumed:
            raise RuntimeError(f"Frames of {self.path} have already been read")
        self._consumed = True

        decoder = self._container.decode(video=0)
        produced = 0
        while max_frames is None or produced < max_frames:
            try:
                frame = next(decoder)
            except StopIteration:
                break
            except av.error.FFmpegError as e:
                logging.warning(
                    f"Decoding {self.path} stopped after {produced} frames: {e}"
                )
                break
            yield frame.to_ndarray(format="rgba")
            produced += 1

    def close(self) -> None:
        self._container.close()

    def __enter__(self) -> "VideoFrameSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ImageSequenceSource:
    """
    A raw frame stream stored as one image per frame in a directory.

    Files are ordered by name, so they should be zero-padded
    (``frame_00000.png``, ``frame_00001.png``, ...).
    """

    def __init__(self, directory: PathLike):
        self.path = Path(directory)
        if not self.path.exists():
            raise VideoNotFoundError(self.path)
        if not self.path.is_dir():
            raise UnreadableVideoError(self.path, "not a directory")

        self._files = sorted(
            p for p in self.path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES
        )
        if not self._files:
            raise UnreadableVideoError(self.path, "no image frames")

        try:
            with Image.open(self._files[0]) as image:
                self.width, self.height = image.size
        except OSError as e:
            raise UnreadableVideoError(self._files[0], str(e)) from e
        self._consumed = False

    @property
    def frame_count(self) -> int:
        return len(self._files)

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    def frames(self, max_frames: Optional[int] = None) -> Iterator[np.ndarray]:
        """Load frames in name order as RGBA arrays; stops at the first unreadable file."""
        if self._consumed:
            raise RuntimeError(f"Frames of {self.path} have already been read")
        self._consumed = True

        files = self._files if max_frames is None else self._files[:max_frames]
        for index, file in enumerate(files):
            try:
                with Image.open(file) as image:
                    array = np.array(image.convert("RGBA"), dtype=np.uint8)
            except OSError as e:
                logging.warning(f"Reading {self.path} stopped after {index} frames: {e}")
                return
            yield array

    def close(self) -> None:
        pass

    def __enter__(self) -> "ImageSequenceSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_frame_source(path: PathLike) -> Union[VideoFrameSource, ImageSequenceSource]:
    """Open a video file, or a directory of frame images, as a frame source."""
    path = Path(path)
    if path.is_dir():
        return ImageSequenceSource(path)
    return VideoFrameSource(path)


def extract_frames(path: PathLike, max_frames: Optional[int] = None) -> Iterator[np.ndarray]:
    """
    Decode frames from a video file or frame directory.

    Args:
        path: Video file or directory of frame images
        max_frames: Maximum number of frames to extract

    Yields:
        RGBA frames as ``(height, width, 4)`` uint8 arrays
    """
    with open_frame_source(path) as source:
        yield from source.frames(max_frames)


def write_video(
    path: PathLike,
    frames: Iterable[np.ndarray],
    fps: Union[int, float, Fraction] = 30,
    codec: str = "png",
    pix_fmt: str = "rgb24",
) -> int:
    """
    Encode a raw frame stream into a video artifact.

    The default PNG codec is lossless, so decoding gives back the exact
    pixels that went in (alpha is dropped).

    Args:
        path: Output file; the container is picked from the suffix (.mov, .nut).
            Matroska (.mkv) does not accept PNG; pass a codec it does carry,
            e.g. ``codec="ffv1", pix_fmt="gbrp"``
        frames: RGB or RGBA uint8 arrays, all of the same size
        fps: Frame rate
        codec: Encoder name as known to FFmpeg
        pix_fmt: Pixel format of the encoded stream

    Returns:
        Number of frames written
    """
    iterator = iter(frames)
    first = next(iterator, None)
    if first is None:
        raise ValueError("Cannot write a video without frames")

    height, width = first.shape[:2]
    rate = Fraction(fps).limit_denominator(1001)
    count = 0

    with av.open(str(path), mode="w") as container:
        stream = container.add_stream(codec, rate=rate)
        stream.width = width
        stream.height = height
        stream.pix_fmt = pix_fmt

        for array in itertools.chain([first], iterator):
            if array.shape[:2] != (height, width):
                raise ValueError(
                    f"Frame {count} is {array.shape[1]}x{array.shape[0]}, "
                    f"expected {width}x{height}"
                )
            frame = av.VideoFrame.from_ndarray(
                np.ascontiguousarray(array[..., :3], dtype=np.uint8), format="rgb24"
            )
            frame.pts = count
            for packet in stream.encode(frame):
                container.mux(packet)
            count += 1

        for packet in stream.encode():
            container.mux(packet)

    logging.debug(f"Wrote {count} frames ({width}x{height} @ {float(rate):g} fps) to {path}")
    return count

