"""Tests for Scheduler lifecycle, failure handling and reset gating."""

import logging
import threading
import time

import pytest

from examwatch.config import EngineConfig
from examwatch.engine import ProctorEngine
from examwatch.errors import DetectorUnavailable, InvalidReset
from examwatch.observability import MemorySink, ObservabilityHub, TraceLevel
from examwatch.scheduler import Scheduler, SchedulerState
from examwatch.types import ObjectClass, ObjectDetection, ViolationKind


class FakeSource:
    """In-memory DetectionSource with controllable behavior."""

    def __init__(self, faces=(), objects=(), ready=True):
        self.faces = list(faces)
        self.objects = list(objects)
        self.ready = ready
        self.face_error = None
        self.object_error = None
        self.gate = None
        self.entered = threading.Event()
        self.delay = 0.0
        self.frames = 0
        self._lock = threading.Lock()
        self._in_flight = 0
        self.max_in_flight = 0

    def is_ready(self):
        return self.ready

    def next_frame(self):
        self.frames += 1
        return {"index": self.frames}

    def _enter(self):
        with self._lock:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)

    def _leave(self):
        with self._lock:
            self._in_flight -= 1

    def detect_faces(self, frame):
        self._enter()
        try:
            self.entered.set()
            if self.gate is not None:
                self.gate.wait(5.0)
            if self.delay:
                time.sleep(self.delay)
            if self.face_error is not None:
                raise self.face_error
            return list(self.faces)
        finally:
            self._leave()

    def detect_objects(self, frame):
        if self.object_error is not None:
            raise self.object_error
        return list(self.objects)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def fast_config():
    return EngineConfig(tick_interval_ms=10)


class TestSynchronousTick:
    def test_tick_runs_engine(self, make_face):
        scheduler = Scheduler(FakeSource(faces=[make_face()]))
        result = scheduler.tick()
        assert result is not None
        assert result.tick_id == 1
        assert scheduler.snapshot().total == 0

    def test_not_ready_skips_tick(self):
        scheduler = Scheduler(FakeSource(ready=False))
        assert scheduler.tick() is None
        assert scheduler.engine.tick_count == 0
        assert scheduler.skipped_ticks == 1

    def test_detector_unavailable_skips_tick(self, make_face):
        source = FakeSource(faces=[make_face()])
        source.face_error = DetectorUnavailable("camera unplugged")
        scheduler = Scheduler(source)

        assert scheduler.tick() is None
        assert scheduler.engine.tick_count == 0
        assert scheduler.snapshot().total == 0

    def test_face_detector_failure_counts_as_empty(self):
        phone = ObjectDetection(object_class=ObjectClass.PHONE, confidence=0.8)
        source = FakeSource(objects=[phone])
        source.face_error = RuntimeError("model crashed")
        scheduler = Scheduler(source)

        result = scheduler.tick()
        kinds = {t.kind for t in result.transitions}
        assert kinds == {ViolationKind.FACE_ABSENT, ViolationKind.PHONE_DETECTED}

    def test_object_detector_failure_counts_as_empty(self, make_face):
        source = FakeSource(faces=[make_face()])
        source.object_error = RuntimeError("onnx session lost")
        scheduler = Scheduler(source)

        result = scheduler.tick()
        assert result is not None
        assert result.transitions == ()

    def test_detector_failure_is_traced(self):
        sink = MemorySink()
        hub = ObservabilityHub.get_instance()
        hub.configure(level=TraceLevel.MINIMAL, sinks=[sink])

        source = FakeSource()
        source.object_error = RuntimeError("boom")
        Scheduler(source).tick()

        errors = sink.get_by_type("detector_error")
        assert len(errors) == 1
        assert errors[0].detector == "object"
        assert errors[0].error == "boom"

    def test_frame_size_from_numpy_frame(self, make_face):
        import numpy as np

        class ImageSource(FakeSource):
            def next_frame(self):
                return np.zeros((1080, 1920, 3), dtype=np.uint8)

        # drift 200 < min(1920, 1080) / 4 = 270
        source = ImageSource(faces=[make_face(center=(1160.0, 540.0))])
        scheduler = Scheduler(source)
        scheduler.tick()
        assert scheduler.engine.focus_counter == 0

    def test_callbacks_on_existing_engine(self, make_face):
        events = []
        engine = ProctorEngine()
        scheduler = Scheduler(FakeSource(), engine=engine, on_transition=events.append)
        scheduler.tick()
        assert scheduler.engine is engine
        assert [e.kind for e in events] == [ViolationKind.FACE_ABSENT]


class TestReset:
    def test_reset_when_idle(self):
        scheduler = Scheduler(FakeSource())
        scheduler.tick()
        assert scheduler.snapshot().total == 1
        scheduler.reset()
        assert scheduler.snapshot().total == 0

    def test_reset_during_tick_raises(self):
        source = FakeSource()
        source.gate = threading.Event()
        scheduler = Scheduler(source)

        worker = threading.Thread(target=scheduler.tick)
        worker.start()
        try:
            assert source.entered.wait(5.0)
            assert scheduler.tick_in_flight
            with pytest.raises(InvalidReset):
                scheduler.reset()
        finally:
            source.gate.set()
            worker.join(5.0)

        assert scheduler.engine.tick_count == 1
        scheduler.reset()
        assert scheduler.snapshot().total == 0


class TestLifecycle:
    def test_start_requires_ready_source(self):
        scheduler = Scheduler(FakeSource(ready=False))
        with pytest.raises(DetectorUnavailable):
            scheduler.start()
        assert scheduler.state is SchedulerState.IDLE

    def test_start_stop_runs_periodic_ticks(self, make_face, fast_config):
        scheduler = Scheduler(FakeSource(faces=[make_face()]), config=fast_config)
        scheduler.start()
        try:
            assert scheduler.is_running
            assert wait_for(lambda: scheduler.engine.tick_count >= 3)
        finally:
            scheduler.stop()

        assert scheduler.state is SchedulerState.IDLE
        count = scheduler.engine.tick_count
        time.sleep(0.05)
        assert scheduler.engine.tick_count == count

    def test_start_and_stop_are_idempotent(self, fast_config):
        scheduler = Scheduler(FakeSource(), config=fast_config)
        scheduler.stop()
        scheduler.start()
        session = scheduler.session_id
        scheduler.start()
        assert scheduler.session_id == session
        scheduler.stop()
        scheduler.stop()
        assert scheduler.state is SchedulerState.IDLE

    def test_stop_discards_in_flight_results(self):
        source = FakeSource()
        source.gate = threading.Event()
        scheduler = Scheduler(source, config=EngineConfig(tick_interval_ms=10))
        scheduler.start()
        assert source.entered.wait(5.0)

        stopper = threading.Thread(target=scheduler.stop)
        stopper.start()
        assert wait_for(lambda: scheduler.state is SchedulerState.IDLE)
        source.gate.set()
        stopper.join(5.0)

        assert wait_for(lambda: scheduler.skipped_ticks >= 1)
        assert scheduler.engine.tick_count == 0
        assert scheduler.snapshot().total == 0

    def test_ticks_never_overlap(self, make_face):
        source = FakeSource(faces=[make_face()])
        source.delay = 0.03
        scheduler = Scheduler(source, config=EngineConfig(tick_interval_ms=10))
        scheduler.start()
        try:
            assert wait_for(lambda: scheduler.engine.tick_count >= 3)
        finally:
            scheduler.stop()

        assert source.max_in_flight == 1
        # Each tick overran its 10ms slot, so missed slots were skipped.
        assert scheduler.skipped_ticks > 0

    def test_session_trace_records(self, fast_config):
        sink = MemorySink()
        ObservabilityHub.get_instance().configure(level=TraceLevel.MINIMAL, sinks=[sink])

        scheduler = Scheduler(FakeSource(), config=fast_config)
        scheduler.start()
        wait_for(lambda: scheduler.engine.tick_count >= 1)
        scheduler.stop()

        starts = sink.get_by_type("session_start")
        ends = sink.get_by_type("session_end")
        assert len(starts) == 1
        assert starts[0].tick_interval_ms == 10
        assert len(ends) == 1
        assert ends[0].session_id == starts[0].session_id
        assert ends[0].ticks >= 1

    def test_restart_keeps_statistics(self, fast_config):
        scheduler = Scheduler(FakeSource(), config=fast_config)
        scheduler.start()
        wait_for(lambda: scheduler.engine.tick_count >= 1)
        scheduler.stop()
        total = scheduler.snapshot().total

        scheduler.start()
        assert scheduler.session_id == 2
        scheduler.stop()
        assert scheduler.snapshot().total >= total


class GatedEngine(ProctorEngine):
    """Engine whose first tick blocks inside process() until released."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.entered = threading.Event()
        self.gate = threading.Event()

    def process(self, frame, timestamp=None):
        self.entered.set()
        self.gate.wait(5.0)
        return super().process(frame, timestamp)


class TestStopSemantics:
    def test_stop_waits_for_commit_in_progress(self):
        """A tick already committing finishes inside the session."""
        engine = GatedEngine(config=EngineConfig(tick_interval_ms=50))
        scheduler = Scheduler(FakeSource(), engine=engine)
        scheduler.start()
        assert engine.entered.wait(5.0)

        stopper = threading.Thread(target=scheduler.stop)
        stopper.start()
        time.sleep(0.05)
        assert scheduler.state is SchedulerState.RUNNING

        engine.gate.set()
        stopper.join(5.0)
        assert scheduler.state is SchedulerState.IDLE
        assert scheduler.engine.tick_count == 1
        assert scheduler.ticks == 1

    def test_stop_from_tick_callback(self, fast_config):
        scheduler = Scheduler(FakeSource(), config=fast_config)
        scheduler.engine.add_tick_callback(lambda result: scheduler.stop())
        scheduler.start()

        assert wait_for(lambda: scheduler.state is SchedulerState.IDLE)
        assert scheduler.engine.tick_count == 1

    def test_stop_does_not_block_on_hung_detector(self, caplog):
        source = FakeSource()
        source.gate = threading.Event()
        scheduler = Scheduler(source, config=EngineConfig(tick_interval_ms=10))
        scheduler.start()
        assert source.entered.wait(5.0)

        try:
            with caplog.at_level(logging.WARNING, logger="examwatch.scheduler"):
                started = time.monotonic()
                scheduler.stop()
                elapsed = time.monotonic() - started

            assert elapsed < 1.0
            assert scheduler.state is SchedulerState.IDLE
            assert "still busy" in caplog.text
        finally:
            source.gate.set()

        assert wait_for(lambda: scheduler.skipped_ticks >= 1)
        assert scheduler.engine.tick_count == 0

    def test_explicit_stop_timeout(self):
        source = FakeSource()
        source.gate = threading.Event()
        scheduler = Scheduler(source)
        scheduler.start()
        assert source.entered.wait(5.0)

        try:
            started = time.monotonic()
            scheduler.stop(timeout=0.05)
            assert time.monotonic() - started < 1.0
        finally:
            source.gate.set()
