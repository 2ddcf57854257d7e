"""Frame decoding from video files."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generator, Union

import cv2
import numpy as np

from video_reg.core.errors import (
    DecodeError,
    DurationUnavailableError,
    NoDecodableTrackError,
    StreamConsumedError,
    StreamOpenError,
)
from video_reg.core.results import format_time
from video_reg.utils.logging_config import get_logger

SUPPORTED_FORMATS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"}


@dataclass(frozen=True)
class VideoHandle:
    """Reference to a local video file."""

    path: Path

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "VideoHandle":
        """
        Create a handle for a user-selected file.

        Args:
            path: Path to the video file

        Returns:
            VideoHandle for the resolved path

        Raises:
            StreamOpenError: If the file is missing or not a supported container
        """
        path = Path(path).expanduser()

        if not path.is_file():
            raise StreamOpenError(f"Video file not found: {path}")

        if path.suffix.lower() not in SUPPORTED_FORMATS:
            raise StreamOpenError(f"Unsupported format: {path.suffix or path.name}")

        return cls(path=path.resolve())

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class Frame:
    """A decoded frame and its presentation time."""

    index: int
    timestamp_seconds: float
    image: np.ndarray

    @property
    def timestamp_str(self) -> str:
        return format_time(self.timestamp_seconds)


@dataclass
class VideoInfo:
    """Properties reported by the decoder for one video."""

    path: str
    width: int
    height: int
    fps: float
    frame_count: int
    duration_seconds: float

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
            "duration_seconds": self.duration_seconds,
        }


VideoLike = Union[VideoHandle, Path, str]


class VideoStream:
    """
    An open video that yields sampled frames once.

    Use as a context manager so the decoder is released on every exit path.
    """

    def __init__(self, handle: VideoHandle, capture: Any):
        self.handle = handle
        self._capture = capture
        self._consumed = False
        self._closed = False
        self.logger = get_logger(__name__)

    @property
    def fps(self) -> float:
        return float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)

    @property
    def frame_count(self) -> int:
        return int(self._capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)

    def total_duration_seconds(self) -> float:
        """
        Get the duration of the video.

        Returns:
            Duration in seconds

        Raises:
            DurationUnavailableError: If fps or frame count is unknown
        """
        fps = self.fps
        frame_count = self.frame_count

        if fps <= 0 or frame_count <= 0:
            raise DurationUnavailableError(
                f"Could not determine duration of {self.handle.name} "
                f"(fps={fps}, frames={frame_count})"
            )

        return frame_count / fps

    def info(self) -> VideoInfo:
        fps = self.fps
        frame_count = self.frame_count
        return VideoInfo(
            path=str(self.handle.path),
            width=int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH) or 0),
            height=int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0),
            fps=fps,
            frame_count=frame_count,
            duration_seconds=frame_count / fps if fps > 0 else 0.0,
        )

    def frames(self, stride: int) -> Generator[Frame, None, None]:
        """
        Iterate over every ``stride``-th decodable frame.

        Frames are counted from 1, so the yielded frames are #stride,
        #2*stride, ... in decode order. The stream can be iterated only once.

        Args:
            stride: Sampling interval in decodable frames

        Returns:
            Generator of Frame objects

        Raises:
            ValueError: If stride is not a positive integer
            StreamConsumedError: If the stream was already iterated or closed
        """
        if isinstance(stride, bool) or not isinstance(stride, int) or stride < 1:
            raise ValueError(f"stride must be a positive integer, got {stride!r}")

        if self._closed:
            raise StreamConsumedError(f"Stream for {self.handle.name} is closed")

        if self._consumed:
            raise StreamConsumedError(
                f"Stream for {self.handle.name} was already iterated; reopen it"
            )

        self._consumed = True
        return self._iter_frames(stride)

    def _iter_frames(self, stride: int) -> Generator[Frame, None, None]:
        index = 0
        last_timestamp = 0.0

        while not self._closed:
            try:
                grabbed = self._capture.grab()
            except cv2.error as e:
                raise DecodeError(f"Decoder failed after frame {index}: {e}") from e

            if not grabbed:
                break

            index += 1

            # Skipped frames are grabbed but never decoded into an image
            if index % stride != 0:
                continue

            timestamp = max(self._timestamp(index), last_timestamp)
            last_timestamp = timestamp

            try:
                ok, image = self._capture.retrieve()
            except cv2.error as e:
                raise DecodeError(f"Decoder failed on frame {index}: {e}") from e

            if not ok or image is None:
                self.logger.warning(
                    f"Skipping frame {index} of {self.handle.name}: could not decode image"
                )
                continue

            yield Frame(index=index, timestamp_seconds=timestamp, image=image)

        self.logger.debug(f"Decoded {index} frames from {self.handle.name}")

    def _timestamp(self, index: int) -> float:
        position_ms = self._capture.get(cv2.CAP_PROP_POS_MSEC) or 0.0
        if position_ms > 0:
            return position_ms / 1000.0

        fps = self.fps
        if fps > 0:
            return (index - 1) / fps

        return 0.0

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._capture.release()

    def __enter__(self) -> "VideoStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FrameSource:
    """
    Open videos for frame sampling.

    Wraps an OpenCV-compatible capture factory so the decoder can be swapped.
    """

    def __init__(self, capture_factory: Callable[[str], Any] = cv2.VideoCapture):
        """
        Initialize frame source.

        Args:
            capture_factory: Callable returning a cv2.VideoCapture-like object
        """
        self.capture_factory = capture_factory
        self.logger = get_logger(__name__)

    def open(self, video: VideoLike) -> VideoStream:
        """
        Open a video for decoding.

        Args:
            video: VideoHandle or path to the video file

        Returns:
            An open VideoStream

        Raises:
            StreamOpenError: If the video cannot be opened
            NoDecodableTrackError: If the video has no visual track
            DecodeError: If the decoder raises while opening
        """
        handle = video if isinstance(video, VideoHandle) else VideoHandle.from_path(video)

        try:
            capture = self.capture_factory(str(handle.path))
        except cv2.error as e:
            raise DecodeError(f"Decoder failed to open {handle.name}: {e}") from e

        if not capture.isOpened():
            capture.release()
            raise StreamOpenError(f"Could not open video: {handle.path}")

        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)

        if width <= 0 or height <= 0:
            capture.release()
            raise NoDecodableTrackError(f"No video track found in {handle.name}")

        self.logger.debug(f"Opened {handle.name}: {width}x{height}")

        return VideoStream(handle, capture)

    def probe(self, video: VideoLike) -> VideoInfo:
        """Read the properties of a video without decoding frames."""
        with self.open(video) as stream:
            return stream.info()
