"""Drive frame sampling and text recognition for one video at a time."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Callable, List, Optional, Sequence

from video_reg.core.deduplicator import FirstOccurrenceDeduplicator
from video_reg.core.delivery import Deliver, direct_delivery
from video_reg.core.errors import (
    DurationUnavailableError,
    ExtractionCancelledError,
    ExtractionError,
    ExtractionInProgressError,
    RecognitionError,
)
from video_reg.core.frame_source import FrameSource, VideoLike
from video_reg.core.results import ExtractionOutcome, FrameFailure
from video_reg.core.text_extractor import TextExtractor
from video_reg.engines.languages import DEFAULT_LANGUAGE_HINTS
from video_reg.utils.logging_config import get_logger

DEFAULT_STRIDE = 15

ProgressCallback = Callable[[float], None]
CompletionCallback = Callable[[ExtractionOutcome], None]


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationToken:
    """Cooperative cancellation flag, checked once per sampled frame."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ExtractionOrchestrator:
    """
    Sample frames from a video, recognize their text and collect the
    first occurrence of every distinct text with its timestamp.

    One run at a time per instance. ``run()`` works on the caller's thread;
    ``extract()`` hands the same loop to a single background worker and
    reports through callbacks passed to the ``deliver`` strategy.

    Per-frame recognition failures are treated as "no text" for that frame
    and listed in ``ExtractionOutcome.frame_failures``. Failures to open,
    time or decode the stream end the run.
    """

    def __init__(
        self,
        frame_source: Optional[FrameSource] = None,
        text_extractor: Optional[TextExtractor] = None,
        deliver: Deliver = direct_delivery,
    ):
        self.frame_source = frame_source or FrameSource()
        self.text_extractor = text_extractor or TextExtractor()
        self.deliver = deliver
        self.logger = get_logger(__name__)

        self._state = RunState.IDLE
        self._state_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def state(self) -> RunState:
        with self._state_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    def run(
        self,
        video: VideoLike,
        stride: int = DEFAULT_STRIDE,
        language_hints: Sequence[str] = DEFAULT_LANGUAGE_HINTS,
        allow_language_correction: bool = False,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExtractionOutcome:
        """
        Extract text from a video on the current thread.

        Args:
            video: VideoHandle or path to the video file
            stride: Recognize every stride-th decodable frame
            language_hints: Ordered locale tags for the recognizer
            allow_language_correction: Let the recognizer apply language correction
            progress: Called with non-decreasing values in [0, 1]
            cancel_token: Checked once per sampled frame

        Returns:
            ExtractionOutcome with results or the error that ended the run

        Raises:
            ValueError: If stride is not a positive integer
            ExtractionInProgressError: If a run is already active
        """
        self._begin(stride)
        return self._execute(
            video, stride, language_hints, allow_language_correction, progress, cancel_token
        )

    def extract(
        self,
        video: VideoLike,
        stride: int = DEFAULT_STRIDE,
        language_hints: Sequence[str] = DEFAULT_LANGUAGE_HINTS,
        progress: Optional[ProgressCallback] = None,
        completion: Optional[CompletionCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        allow_language_correction: bool = False,
    ) -> "Future[ExtractionOutcome]":
        """
        Start extraction on the background worker.

        Progress and completion callbacks are passed to the deliver strategy
        from the worker thread; marshaling them onto a UI thread is the
        caller's job (see QueueDelivery).

        Returns:
            Future resolved with the ExtractionOutcome after completion ran

        Raises:
            ValueError: If stride is not a positive integer
            ExtractionInProgressError: If a run is already active
        """
        self._begin(stride)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="video-reg-extract"
            )

        def job() -> ExtractionOutcome:
            outcome = self._execute(
                video, stride, language_hints, allow_language_correction, progress, cancel_token
            )
            if completion is not None:
                self.deliver(completion, outcome)
            return outcome

        try:
            return self._executor.submit(job)
        except RuntimeError:
            with self._state_lock:
                self._state = RunState.IDLE
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background worker."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def _begin(self, stride: int) -> None:
        if isinstance(stride, bool) or not isinstance(stride, int) or stride < 1:
            raise ValueError(f"stride must be a positive integer, got {stride!r}")

        with self._state_lock:
            if self._state is RunState.RUNNING:
                raise ExtractionInProgressError("An extraction is already running")
            self._state = RunState.RUNNING

    def _finish(self, outcome: ExtractionOutcome) -> ExtractionOutcome:
        if outcome.ok:
            state = RunState.COMPLETED
        elif isinstance(outcome.error, ExtractionCancelledError):
            state = RunState.CANCELLED
        else:
            state = RunState.FAILED

        with self._state_lock:
            self._state = state

        return outcome

    def _execute(
        self,
        video: VideoLike,
        stride: int,
        language_hints: Sequence[str],
        allow_language_correction: bool,
        progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
    ) -> ExtractionOutcome:
        dedup = FirstOccurrenceDeduplicator()
        failures: List[FrameFailure] = []
        frames_processed = 0
        duration = 0.0
        last_progress = 0.0

        def report(value: float) -> None:
            if progress is not None:
                self.deliver(progress, value)

        try:
            with self.frame_source.open(video) as stream:
                duration = stream.total_duration_seconds()
                if duration <= 0:
                    raise DurationUnavailableError(
                        f"Video duration is zero: {stream.handle.name}"
                    )

                self.logger.info(
                    f"Extracting text from {stream.handle.name}: duration={duration:.2f}s, "
                    f"stride={stride}, languages={list(language_hints)}"
                )

                self.text_extractor.get_engine(language_hints, allow_language_correction)

                for frame in stream.frames(stride):
                    if cancel_token is not None and cancel_token.cancelled:
                        raise ExtractionCancelledError(
                            f"Extraction cancelled at frame {frame.index}"
                        )

                    try:
                        text = self.text_extractor.recognize(
                            frame.image, language_hints, allow_language_correction
                        )
                    except RecognitionError as e:
                        self.logger.warning(
                            f"Recognition failed on frame {frame.index} "
                            f"({frame.timestamp_str}): {e}"
                        )
                        failures.append(
                            FrameFailure(frame.index, frame.timestamp_seconds, str(e))
                        )
                        text = ""

                    frames_processed += 1
                    added = dedup.add(text, frame.timestamp_seconds)
                    if added is not None:
                        self.logger.debug(f"[{added.timestamp_str}] {added.text}")

                    value = min(max(frame.timestamp_seconds / duration, 0.0), 1.0)
                    last_progress = max(last_progress, value)
                    report(last_progress)

            if last_progress < 1.0:
                report(1.0)

            self.logger.info(
                f"Extraction complete: {len(dedup)} distinct texts from "
                f"{frames_processed} frames ({len(failures)} recognition failures)"
            )
            outcome = ExtractionOutcome(
                results=dedup.results,
                frame_failures=failures,
                frames_processed=frames_processed,
                duration_seconds=duration,
            )

        except ExtractionError as e:
            cancelled = isinstance(e, ExtractionCancelledError)
            if cancelled:
                self.logger.info(str(e))
            else:
                self.logger.error(f"Extraction failed: {e}")
            outcome = ExtractionOutcome(
                results=dedup.results if cancelled else [],
                error=e,
                frame_failures=failures,
                frames_processed=frames_processed,
                duration_seconds=duration,
            )

        except Exception as e:
            self.logger.exception("Unexpected error during extraction")
            error = ExtractionError(f"Unexpected error: {e}")
            error.__cause__ = e
            outcome = ExtractionOutcome(
                error=error,
                frame_failures=failures,
                frames_processed=frames_processed,
                duration_seconds=duration,
            )

        except BaseException:
            # KeyboardInterrupt and friends still have to release the run slot
            with self._state_lock:
                self._state = RunState.FAILED
            raise

        return self._finish(outcome)
