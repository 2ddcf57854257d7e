"""Tests for the extraction orchestrator."""

import threading

import pytest

from video_reg.core.delivery import QueueDelivery
from video_reg.core.errors import (
    DecodeError,
    DurationUnavailableError,
    ExtractionCancelledError,
    ExtractionError,
    ExtractionInProgressError,
    RecognizerUnavailableError,
    StreamOpenError,
)
from video_reg.core.frame_source import FrameSource
from video_reg.core.orchestrator import (
    CancellationToken,
    ExtractionOrchestrator,
    RunState,
)
from video_reg.core.text_extractor import TextExtractor


@pytest.fixture
def make_orchestrator(make_frame_source, scripted_engine):
    created = []

    def factory(deliver=None, engine="scripted", **capture_kwargs):
        source = make_frame_source(**capture_kwargs)
        kwargs = {} if deliver is None else {"deliver": deliver}
        orchestrator = ExtractionOrchestrator(source, TextExtractor(engine=engine), **kwargs)
        created.append(orchestrator)
        return orchestrator

    yield factory

    for orchestrator in created:
        orchestrator.shutdown()


class TestExtractionRun:
    """Tests for the synchronous run loop."""

    def test_keeps_first_occurrence_with_its_timestamp(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        scripted_engine.script = {15: "HELLO", 30: "", 45: "HELLO", 60: "WORLD"}
        orchestrator = make_orchestrator(frame_count=150, fps=30.0)

        outcome = orchestrator.run(fake_video, stride=15)

        assert outcome.ok
        assert [r.text for r in outcome.results] == ["HELLO", "WORLD"]
        assert [r.timestamp_seconds for r in outcome.results] == pytest.approx([14 / 30, 59 / 30])
        assert scripted_engine.calls == list(range(15, 151, 15))
        assert outcome.frames_processed == 10
        assert outcome.duration_seconds == pytest.approx(5.0)
        assert orchestrator.state is RunState.COMPLETED

    @pytest.mark.parametrize("frame_count,stride", [(150, 15), (100, 7), (31, 1), (5, 6)])
    def test_recognition_attempts_follow_stride(
        self, make_orchestrator, scripted_engine, fake_video, frame_count, stride
    ):
        orchestrator = make_orchestrator(frame_count=frame_count)

        orchestrator.run(fake_video, stride=stride)

        assert len(scripted_engine.calls) == frame_count // stride

    def test_results_are_unique_and_ordered_by_time(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        scripted_engine.script = {i: f"caption {i // 30}" for i in range(1, 121)}
        orchestrator = make_orchestrator(frame_count=120)

        results = orchestrator.run(fake_video, stride=5).unwrap()

        texts = [r.text for r in results]
        timestamps = [r.timestamp_seconds for r in results]
        assert len(texts) == len(set(texts))
        assert timestamps == sorted(timestamps)
        assert results[1].text == "caption 1"
        assert results[1].timestamp_seconds == pytest.approx(29 / 30)

    def test_progress_is_monotonic_and_ends_at_one(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        progress = []
        orchestrator = make_orchestrator(frame_count=100)

        orchestrator.run(fake_video, stride=7, progress=progress.append)

        assert progress == sorted(progress)
        assert all(0.0 <= value <= 1.0 for value in progress)
        assert progress[-1] == 1.0
        assert len(progress) == 100 // 7 + 1

    def test_progress_clamped_when_timestamps_exceed_duration(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        progress = []
        # The container claims 30 frames but 60 decode
        orchestrator = make_orchestrator(frame_count=60, reported_frame_count=30)

        outcome = orchestrator.run(fake_video, stride=15, progress=progress.append)

        assert outcome.ok
        assert progress == pytest.approx([14 / 30, 29 / 30, 1.0, 1.0])

    @pytest.mark.parametrize("kwargs", [{"fps": 0.0}, {"reported_frame_count": 0}])
    def test_zero_duration_fails_without_progress(
        self, make_orchestrator, scripted_engine, fake_video, kwargs
    ):
        progress = []
        orchestrator = make_orchestrator(**kwargs)

        outcome = orchestrator.run(fake_video, stride=15, progress=progress.append)

        assert not outcome.ok
        assert isinstance(outcome.error, DurationUnavailableError)
        assert outcome.results == []
        assert progress == []
        assert scripted_engine.calls == []
        assert orchestrator.state is RunState.FAILED

        with pytest.raises(DurationUnavailableError):
            outcome.unwrap()

    def test_recognition_failure_skips_frame(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        scripted_engine.script = {15: "A", 30: RuntimeError("boom"), 45: "B"}
        orchestrator = make_orchestrator(frame_count=45)

        outcome = orchestrator.run(fake_video, stride=15)

        assert outcome.ok
        assert [r.text for r in outcome.results] == ["A", "B"]
        assert len(outcome.frame_failures) == 1
        failure = outcome.frame_failures[0]
        assert failure.frame_index == 30
        assert failure.timestamp_seconds == pytest.approx(29 / 30)
        assert "boom" in failure.message

    def test_stream_open_failure(self, make_orchestrator, scripted_engine, fake_video):
        orchestrator = make_orchestrator(opened=False)

        outcome = orchestrator.run(fake_video, stride=15)

        assert isinstance(outcome.error, StreamOpenError)
        assert orchestrator.state is RunState.FAILED

    def test_recognizer_unavailable_is_fatal(self, make_orchestrator, fake_video):
        orchestrator = make_orchestrator(engine="nonexistent")

        outcome = orchestrator.run(fake_video, stride=15)

        assert isinstance(outcome.error, RecognizerUnavailableError)
        assert outcome.frames_processed == 0
        assert orchestrator.frame_source.captures[0].released

    def test_decode_error_aborts_and_releases_stream(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        scripted_engine.default = "TEXT"
        orchestrator = make_orchestrator(frame_count=90, raise_on_grab_at=40)

        outcome = orchestrator.run(fake_video, stride=15)

        assert isinstance(outcome.error, DecodeError)
        assert outcome.results == []
        assert outcome.frames_processed == 2
        assert orchestrator.frame_source.captures[0].released

    def test_stream_released_after_success(self, make_orchestrator, fake_video):
        orchestrator = make_orchestrator(frame_count=30)

        orchestrator.run(fake_video, stride=15)

        assert orchestrator.frame_source.captures[0].released

    def test_unexpected_error_becomes_extraction_error(self, scripted_engine, fake_video):
        def exploding_factory(path):
            raise MemoryError("out of memory")

        orchestrator = ExtractionOrchestrator(
            FrameSource(capture_factory=exploding_factory),
            TextExtractor(engine="scripted"),
        )

        outcome = orchestrator.run(fake_video, stride=15)

        assert type(outcome.error) is ExtractionError
        assert isinstance(outcome.error.__cause__, MemoryError)
        assert orchestrator.state is RunState.FAILED

    def test_interrupt_does_not_leave_orchestrator_running(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        def interrupt(index):
            raise KeyboardInterrupt

        scripted_engine.script = {15: interrupt}
        orchestrator = make_orchestrator(frame_count=30)

        with pytest.raises(KeyboardInterrupt):
            orchestrator.run(fake_video, stride=15)

        assert orchestrator.state is RunState.FAILED
        assert orchestrator.frame_source.captures[0].released

        scripted_engine.script = {15: "AFTER"}
        outcome = orchestrator.run(fake_video, stride=15)
        assert [r.text for r in outcome.results] == ["AFTER"]

    @pytest.mark.parametrize("stride", [0, -1, 2.5, None])
    def test_invalid_stride_is_rejected(self, make_orchestrator, fake_video, stride):
        orchestrator = make_orchestrator()

        with pytest.raises(ValueError):
            orchestrator.run(fake_video, stride=stride)

        assert orchestrator.state is RunState.IDLE

    def test_language_hints_reach_the_engine(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        orchestrator = make_orchestrator(frame_count=15)

        orchestrator.run(fake_video, stride=15, language_hints=["ja", "en"])

        engine = scripted_engine.instances[0]
        assert engine.languages == ["ja", "en"]
        assert engine.allow_language_correction is False

    def test_orchestrator_can_run_again_after_finishing(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        orchestrator = make_orchestrator(frame_count=30)

        assert orchestrator.run(fake_video, stride=15).ok
        assert orchestrator.run(fake_video, stride=15).ok
        assert len(orchestrator.frame_source.captures) == 2


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_before_start(self, make_orchestrator, scripted_engine, fake_video):
        token = CancellationToken()
        token.cancel()
        orchestrator = make_orchestrator()

        outcome = orchestrator.run(fake_video, stride=15, cancel_token=token)

        assert isinstance(outcome.error, ExtractionCancelledError)
        assert scripted_engine.calls == []
        assert orchestrator.state is RunState.CANCELLED
        assert orchestrator.frame_source.captures[0].released

    def test_cancel_mid_run_keeps_partial_results(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        scripted_engine.script = {15: "FIRST", 30: "SECOND"}
        token = CancellationToken()
        orchestrator = make_orchestrator(frame_count=150)

        outcome = orchestrator.run(
            fake_video,
            stride=15,
            progress=lambda value: token.cancel(),
            cancel_token=token,
        )

        assert isinstance(outcome.error, ExtractionCancelledError)
        assert [r.text for r in outcome.results] == ["FIRST"]
        assert scripted_engine.calls == [15]
        assert orchestrator.state is RunState.CANCELLED


class TestBackgroundExtraction:
    """Tests for extract() on the background worker."""

    def test_completion_receives_outcome(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        scripted_engine.script = {15: "HELLO"}
        completed = []
        orchestrator = make_orchestrator(frame_count=30)

        future = orchestrator.extract(fake_video, stride=15, completion=completed.append)
        outcome = future.result(timeout=10)

        assert completed == [outcome]
        assert [r.text for r in outcome.results] == ["HELLO"]
        assert outcome.results[0].timestamp_seconds == pytest.approx(14 / 30)
        assert orchestrator.state is RunState.COMPLETED

    def test_failure_is_delivered_to_completion(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        completed = []
        orchestrator = make_orchestrator(fps=0.0)

        future = orchestrator.extract(fake_video, stride=15, completion=completed.append)
        future.result(timeout=10)

        assert len(completed) == 1
        assert isinstance(completed[0].error, DurationUnavailableError)

    def test_concurrent_start_is_rejected(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        started = threading.Event()
        release = threading.Event()

        def blocking(index):
            started.set()
            release.wait(timeout=10)
            return "SLOW"

        scripted_engine.script = {15: blocking}
        orchestrator = make_orchestrator(frame_count=15)

        future = orchestrator.extract(fake_video, stride=15)
        assert started.wait(timeout=10)
        assert orchestrator.state is RunState.RUNNING

        with pytest.raises(ExtractionInProgressError):
            orchestrator.extract(fake_video, stride=15)
        with pytest.raises(ExtractionInProgressError):
            orchestrator.run(fake_video, stride=15)

        release.set()
        assert future.result(timeout=10).ok
        assert orchestrator.state is RunState.COMPLETED

    def test_queue_delivery_runs_callbacks_on_consumer_thread(
        self, make_orchestrator, scripted_engine, fake_video
    ):
        delivery = QueueDelivery()
        calls = []
        orchestrator = make_orchestrator(deliver=delivery, frame_count=60)

        future = orchestrator.extract(
            fake_video,
            stride=15,
            progress=lambda value: calls.append(("progress", value, threading.get_ident())),
            completion=lambda outcome: calls.append(("done", outcome, threading.get_ident())),
        )
        future.result(timeout=10)

        assert calls == []
        assert delivery.pending == 6

        assert delivery.drain() == 6
        assert [c[0] for c in calls] == ["progress"] * 5 + ["done"]
        assert [c[1] for c in calls[:5]] == pytest.approx([14 / 60, 29 / 60, 44 / 60, 59 / 60, 1.0])
        assert {c[2] for c in calls} == {threading.get_ident()}

    def test_drain_with_timeout_when_idle(self):
        assert QueueDelivery().drain(timeout=0.01) == 0
