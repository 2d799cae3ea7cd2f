"""Periodic sampling and monitoring lifecycle.

The Scheduler owns the engine and drives one tick per interval on a
single background thread:

    IDLE --start()--> RUNNING --stop()--> IDLE

Per tick, the face and object detectors run concurrently in a thread
pool and the tick waits for both before mutating engine state. Ticks
never overlap: they run back to back on the loop thread and a tick lock
serializes them against ``reset()``. If a tick overruns its interval the
missed slots are skipped, not queued.

Failure handling inside a tick:
- DetectorUnavailable (source not ready, or raised by a detector):
  the whole tick is skipped, nothing is mutated.
- Any other detector exception: that detector's result counts as empty,
  the tick still runs.
- Session stopped while detectors were running: results are discarded.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from examwatch.config import EngineConfig
from examwatch.engine import ProctorEngine, TickCallback, TransitionCallback
from examwatch.errors import DetectorFailure, DetectorUnavailable, InvalidReset
from examwatch.observability import ObservabilityHub
from examwatch.observability.records import (
    DetectorErrorRecord,
    SessionEndRecord,
    SessionStartRecord,
    TickSkipRecord,
)
from examwatch.source import DetectionSource, frame_size
from examwatch.types import EngineSnapshot, FrameDetections, TickResult

logger = logging.getLogger(__name__)

STOP_TIMEOUT_TICKS = 5  # tick intervals stop() waits for the loop thread


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class Scheduler:
    """Runs the violation engine periodically against a DetectionSource.

    Args:
        source: Frame + detector provider.
        engine: Engine to drive (built from ``config`` if omitted).
        config: Engine configuration, used when ``engine`` is omitted.
        on_transition: Edge-transition callback (only with ``engine`` omitted).
        on_tick: Per-tick callback (only with ``engine`` omitted).
        hub: Trace hub (defaults to the process-wide instance).
        clock: Monotonic clock in seconds, for interval bookkeeping.

    Example:
        >>> scheduler = Scheduler(source, on_transition=print)
        >>> scheduler.start()
        >>> ...
        >>> scheduler.stop()
        >>> scheduler.snapshot().severity
    """

    def __init__(
        self,
        source: DetectionSource,
        engine: Optional[ProctorEngine] = None,
        config: Optional[EngineConfig] = None,
        on_transition: Optional[TransitionCallback] = None,
        on_tick: Optional[TickCallback] = None,
        hub: Optional[ObservabilityHub] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._hub = hub or ObservabilityHub.get_instance()
        if engine is None:
            engine = ProctorEngine(
                config=config,
                on_transition=on_transition,
                on_tick=on_tick,
                hub=self._hub,
            )
        else:
            if on_transition is not None:
                engine.add_transition_callback(on_transition)
            if on_tick is not None:
                engine.add_tick_callback(on_tick)

        self.source = source
        self.engine = engine
        self.config = engine.config
        self._clock = clock

        self._state = SchedulerState.IDLE
        self._state_lock = threading.RLock()
        self._tick_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self._session_id = 0
        self._session_start = 0.0
        self._ticks = 0
        self._skipped_ticks = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def ticks(self) -> int:
        """Ticks applied in the current (or last) session."""
        return self._ticks

    @property
    def skipped_ticks(self) -> int:
        """Ticks skipped or discarded in the current (or last) session."""
        return self._skipped_ticks

    @property
    def tick_in_flight(self) -> bool:
        return self._tick_lock.locked()

    def snapshot(self) -> EngineSnapshot:
        return self.engine.snapshot()

    def _session_active(self, session_id: Optional[int]) -> bool:
        if session_id is None:
            return True
        with self._state_lock:
            return self._state is SchedulerState.RUNNING and self._session_id == session_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin periodic sampling.

        Raises:
            DetectorUnavailable: If the source is not ready.
        """
        with self._state_lock:
            if self._state is SchedulerState.RUNNING:
                logger.debug("Scheduler already running (session %d)", self._session_id)
                return
            if not self.source.is_ready():
                raise DetectorUnavailable("detection source is not ready")

            self._session_id += 1
            self._ticks = 0
            self._skipped_ticks = 0
            self._session_start = self._clock()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(self._session_id, stop_event),
                name=f"examwatch-scheduler-{self._session_id}",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            self._state = SchedulerState.RUNNING
            session_id = self._session_id

        logger.info(
            "Monitoring started (session %d, interval %dms)",
            session_id, self.config.tick_interval_ms,
        )
        if self._hub.enabled:
            self._hub.emit(SessionStartRecord(
                session_id=session_id,
                tick_interval_ms=self.config.tick_interval_ms,
                config=self.config.to_dict(),
            ))
        thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop sampling.

        No new tick is scheduled after this call. A tick already waiting
        on its detectors finishes, but its results are discarded.

        Args:
            timeout: Seconds to wait for the loop thread (default:
                ``STOP_TIMEOUT_TICKS`` tick intervals). A thread still
                blocked in a detector after that is left to finish alone.
        """
        if timeout is None:
            timeout = STOP_TIMEOUT_TICKS * self.config.tick_interval_sec
        with self._state_lock:
            if self._state is SchedulerState.IDLE:
                return
            self._state = SchedulerState.IDLE
            stop_event, thread = self._stop_event, self._thread
            session_id = self._session_id

        stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Scheduler thread still busy after stop (session %d)", session_id)

        snapshot = self.engine.snapshot()
        duration = self._clock() - self._session_start
        logger.info(
            "Monitoring stopped (session %d): %d ticks, %d skipped, %d violations, %s",
            session_id, self._ticks, self._skipped_ticks,
            snapshot.total, snapshot.severity.value,
        )
        if self._hub.enabled:
            self._hub.emit(SessionEndRecord(
                session_id=session_id,
                ticks=self._ticks,
                skipped_ticks=self._skipped_ticks,
                duration_sec=duration,
                total_violations=snapshot.total,
                severity=snapshot.severity.value,
            ))
            self._hub.flush()

    def reset(self) -> None:
        """Reset all violation statistics and tracker counters.

        Raises:
            InvalidReset: If a tick is in flight.
        """
        if not self._tick_lock.acquire(blocking=False):
            raise InvalidReset("cannot reset while a tick is in flight")
        try:
            self.engine.reset()
        finally:
            self._tick_lock.release()

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def tick(self) -> Optional[TickResult]:
        """Run one tick synchronously.

        Returns:
            TickResult, or None if the tick was skipped.
        """
        return self._tick(session_id=None)

    def _tick(self, session_id: Optional[int]) -> Optional[TickResult]:
        with self._tick_lock:
            tick_id = self.engine.tick_count + 1

            if not self.source.is_ready():
                self._skip(tick_id, "detector_unavailable")
                return None

            try:
                frame = self.source.next_frame()
                faces, objects = self._detect(frame, tick_id)
            except DetectorUnavailable as exc:
                logger.debug("Tick %d skipped: %s", tick_id, exc)
                self._skip(tick_id, "detector_unavailable")
                return None

            size = frame_size(frame)
            detections = FrameDetections(
                faces=faces,
                objects=objects,
                frame_width=size[0] if size else None,
                frame_height=size[1] if size else None,
            )

            # stop() cannot slip in between the session check and the commit.
            with self._state_lock:
                if not self._session_active(session_id):
                    logger.debug("Tick %d discarded: session %s stopped", tick_id, session_id)
                    self._skip(tick_id, "session_stopped")
                    return None
                result = self.engine.process(detections)
                self._ticks += 1
            return result

    def _detect(self, frame: Any, tick_id: int) -> Tuple[Sequence, Sequence]:
        """Run both detectors concurrently, absorbing their failures."""

        def _call(name, fn):
            try:
                return list(fn(frame))
            except DetectorUnavailable:
                raise
            except Exception as exc:
                self._report_failure(DetectorFailure(name, exc), tick_id)
                return []

        with ThreadPoolExecutor(max_workers=2) as pool:
            faces_future = pool.submit(_call, "face", self.source.detect_faces)
            objects_future = pool.submit(_call, "object", self.source.detect_objects)
            results: List[Any] = []
            unavailable: Optional[DetectorUnavailable] = None
            for future in (faces_future, objects_future):
                try:
                    results.append(future.result())
                except DetectorUnavailable as exc:
                    unavailable = exc
                    results.append([])

        if unavailable is not None:
            raise unavailable
        return results[0], results[1]

    def _report_failure(self, failure: DetectorFailure, tick_id: int) -> None:
        logger.warning("Tick %d: %s", tick_id, failure)
        if self._hub.enabled:
            self._hub.emit(DetectorErrorRecord(
                tick_id=tick_id,
                detector=failure.detector,
                error=str(failure.cause),
            ))

    def _skip(self, tick_id: int, reason: str, count: int = 1) -> None:
        self._skipped_ticks += count
        if self._hub.enabled:
            self._hub.emit(TickSkipRecord(tick_id=tick_id, reason=reason, count=count))

    def _run(self, session_id: int, stop_event: threading.Event) -> None:
        interval = self.config.tick_interval_sec
        next_due = self._clock()

        while not stop_event.is_set():
            try:
                self._tick(session_id)
            except Exception:
                # State is untouched by a failed tick; keep sampling.
                logger.exception("Tick failed (session %d)", session_id)

            next_due += interval
            now = self._clock()
            if now > next_due:
                overdue = int((now - next_due) // interval) + 1
                next_due += overdue * interval
                logger.debug("Skipping %d overdue tick(s)", overdue)
                self._skip(self.engine.tick_count + 1, "overdue", overdue)
            stop_event.wait(max(0.0, next_due - now))

        logger.debug("Scheduler loop exited (session %d)", session_id)


__all__ = ["Scheduler", "SchedulerState"]
