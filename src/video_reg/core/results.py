"""Value types produced by an extraction run."""

from dataclasses import dataclass, field
from typing import List, Optional

from video_reg.core.errors import ExtractionError


def format_time(seconds: float) -> str:
    """Format seconds as ``m:ss`` (minutes are not wrapped into hours)."""
    total = int(max(0.0, seconds))
    return f"{total // 60}:{total % 60:02d}"


@dataclass(frozen=True)
class RecognitionResult:
    """A distinct recognized text and the time it first appeared."""

    text: str
    timestamp_seconds: float

    @property
    def timestamp_str(self) -> str:
        return format_time(self.timestamp_seconds)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "timestamp_seconds": round(self.timestamp_seconds, 3),
            "timestamp": self.timestamp_str,
        }


@dataclass(frozen=True)
class FrameFailure:
    """A sampled frame whose recognition failed and was treated as empty."""

    frame_index: int
    timestamp_seconds: float
    message: str

    def to_dict(self) -> dict:
        return {
            "frame_index": self.frame_index,
            "timestamp_seconds": round(self.timestamp_seconds, 3),
            "message": self.message,
        }


@dataclass
class ExtractionOutcome:
    """
    Terminal value of one extraction run.

    Exactly one of two shapes: ``error`` is None and ``results`` holds the
    deduplicated texts, or ``error`` holds the failure that ended the run.
    A cancelled run keeps the partial results collected before cancellation.
    """

    results: List[RecognitionResult] = field(default_factory=list)
    error: Optional[ExtractionError] = None
    frame_failures: List[FrameFailure] = field(default_factory=list)
    frames_processed: int = 0
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> List[RecognitionResult]:
        """Return the results, or raise the error that ended the run."""
        if self.error is not None:
            raise self.error
        return self.results
