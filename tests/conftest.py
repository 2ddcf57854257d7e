"""Pytest configuration and fixtures."""

import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import cv2
import numpy as np
import pytest

from video_reg.core.frame_source import FrameSource, VideoHandle
from video_reg.core.text_extractor import TextExtractor
from video_reg.engines.base import BaseOCREngine, TextRegion


class FakeCapture:
    """
    Stand-in for cv2.VideoCapture with scripted frames.

    Frame images are filled with ``index % 256`` so a fake engine can tell
    which frame it was given.
    """

    def __init__(
        self,
        frame_count: int = 150,
        fps: float = 30.0,
        width: int = 64,
        height: int = 48,
        opened: bool = True,
        reported_frame_count: Optional[int] = None,
        report_position: bool = True,
        timestamps_ms: Optional[Dict[int, float]] = None,
        fail_retrieve_at: tuple = (),
        raise_on_grab_at: Optional[int] = None,
    ):
        self.frame_count = frame_count
        self.fps = fps
        self.width = width
        self.height = height
        self.opened = opened
        self.reported_frame_count = (
            frame_count if reported_frame_count is None else reported_frame_count
        )
        self.report_position = report_position
        self.timestamps_ms = timestamps_ms or {}
        self.fail_retrieve_at = fail_retrieve_at
        self.raise_on_grab_at = raise_on_grab_at

        self.position = 0
        self.retrieve_calls = 0
        self.released = False

    def isOpened(self) -> bool:
        return self.opened

    def get(self, prop: int) -> float:
        if prop == cv2.CAP_PROP_FPS:
            return self.fps
        if prop == cv2.CAP_PROP_FRAME_COUNT:
            return float(self.reported_frame_count)
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.width)
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.height)
        if prop == cv2.CAP_PROP_POS_MSEC:
            if self.position in self.timestamps_ms:
                return self.timestamps_ms[self.position]
            if self.report_position and self.fps > 0:
                # Frame N (1-based) starts at (N - 1) / fps, as OpenCV reports it
                return (self.position - 1) / self.fps * 1000.0
            return 0.0
        return 0.0

    def grab(self) -> bool:
        if self.raise_on_grab_at is not None and self.position + 1 == self.raise_on_grab_at:
            raise cv2.error("corrupt packet")
        if self.position >= self.frame_count:
            return False
        self.position += 1
        return True

    def retrieve(self):
        self.retrieve_calls += 1
        if self.position in self.fail_retrieve_at:
            return False, None
        image = np.full((self.height, self.width, 3), self.position % 256, dtype=np.uint8)
        return True, image

    def release(self) -> None:
        self.released = True


ScriptValue = Union[str, List[str], Exception, Callable[[int], str]]


class ScriptedEngine(BaseOCREngine):
    """OCR engine returning scripted text per frame index."""

    script: Dict[int, ScriptValue] = {}
    default: ScriptValue = ""
    init_error: Optional[Exception] = None
    calls: List[int] = []
    instances: List["ScriptedEngine"] = []

    def _initialize(self) -> None:
        if self.init_error is not None:
            raise self.init_error
        type(self).instances.append(self)

    def _process_frame(self, frame: np.ndarray) -> List[TextRegion]:
        index = int(frame[0, 0, 0])
        type(self).calls.append(index)

        value = self.script.get(index, self.default)
        if callable(value) and not isinstance(value, Exception):
            value = value(index)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, str):
            value = [value] if value else []

        return [
            TextRegion(text=text, confidence=0.9, bbox=(0, i * 20, 100, 20))
            for i, text in enumerate(value)
        ]

    @property
    def name(self) -> str:
        return "scripted"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_video():
    """A handle whose path is never touched by the fake decoder."""
    return VideoHandle(Path("fake.mp4"))


@pytest.fixture
def make_frame_source():
    """Build a FrameSource backed by FakeCapture instances."""

    def factory(**capture_kwargs) -> FrameSource:
        captures: List[FakeCapture] = []

        def capture_factory(path: str) -> FakeCapture:
            capture = FakeCapture(**capture_kwargs)
            captures.append(capture)
            return capture

        source = FrameSource(capture_factory=capture_factory)
        source.captures = captures
        return source

    return factory


@pytest.fixture
def scripted_engine(monkeypatch):
    """Register a fresh ScriptedEngine subclass under the name 'scripted'."""
    engine_class = type(
        "ScriptedEngine",
        (ScriptedEngine,),
        {"script": {}, "default": "", "init_error": None, "calls": [], "instances": []},
    )
    monkeypatch.setitem(TextExtractor._engines, "scripted", engine_class)
    return engine_class


@pytest.fixture
def sample_video(temp_dir):
    """Create a 2 second, 30 fps sample video with changing captions."""
    video_path = temp_dir / "sample.mp4"

    width, height = 640, 480
    fps = 30
    total_frames = fps * 2

    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    writer = cv2.VideoWriter(str(video_path), fourcc, fps, (width, height))

    for i in range(total_frames):
        frame = np.ones((height, width, 3), dtype=np.uint8) * 255
        caption = "HELLO" if i < fps else "WORLD"
        cv2.putText(
            frame,
            caption,
            (50, 240),
            cv2.FONT_HERSHEY_SIMPLEX,
            2.0,
            (0, 0, 0),
            3,
        )
        writer.write(frame)

    writer.release()

    return video_path
