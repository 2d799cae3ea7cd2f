"""Single-tick violation processing.

``ProctorEngine.process()`` runs one tick:

    frame detections
        -> presence / objects     (pure)
        -> focus / drowsiness     (evaluate next counters, no commit)
        -> aggregator.plan()      (statuses, transitions, next counts)
        -> commit all             (all-or-nothing)
        -> callbacks + trace records

Everything that can fail runs before the commit, so a failed tick leaves
no partial state behind.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from examwatch.aggregator import ViolationAggregator
from examwatch.analyzers import (
    DrowsinessTracker,
    EarFunction,
    FocusTracker,
    classify_objects,
    classify_presence,
)
from examwatch.config import EngineConfig
from examwatch.observability import ObservabilityHub, TraceLevel
from examwatch.observability.records import (
    ResetRecord,
    TickRecord,
    TrackerDetailRecord,
    TransitionRecord,
)
from examwatch.types import (
    EngineSnapshot,
    FrameDetections,
    TickResult,
    TransitionEvent,
    ViolationKind,
)

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[TransitionEvent], None]
TickCallback = Callable[[TickResult], None]


@dataclass
class EngineState:
    """All mutable state of a monitoring session."""

    focus: FocusTracker
    drowsiness: DrowsinessTracker
    aggregator: ViolationAggregator = field(default_factory=ViolationAggregator)
    tick_count: int = 0

    @classmethod
    def from_config(
        cls, config: EngineConfig, ear_fn: Optional[EarFunction] = None
    ) -> EngineState:
        return cls(
            focus=FocusTracker(
                focus_lost_frames=config.focus_lost_frames,
                drift_fraction=config.focus_drift_fraction,
            ),
            drowsiness=DrowsinessTracker(
                drowsiness_frames=config.drowsiness_frames,
                ear_threshold=config.ear_threshold,
                ear_fn=ear_fn,
            ),
        )

    def reset(self) -> None:
        self.aggregator.reset()
        self.focus.reset()
        self.drowsiness.reset()


class ProctorEngine:
    """Turns per-frame detections into debounced violation statistics.

    Args:
        config: Engine thresholds (defaults to EngineConfig()).
        ear_fn: Eye-aspect-ratio function for the drowsiness tracker.
        on_transition: Called for every edge transition.
        on_tick: Called with the full result of every applied tick.
        hub: Trace hub (defaults to the process-wide instance).

    Example:
        >>> engine = ProctorEngine(on_transition=print)
        >>> result = engine.process(FrameDetections(faces=[face]))
        >>> engine.snapshot().severity
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        ear_fn: Optional[EarFunction] = None,
        on_transition: Optional[TransitionCallback] = None,
        on_tick: Optional[TickCallback] = None,
        hub: Optional[ObservabilityHub] = None,
    ):
        self.config = config or EngineConfig()
        self._state = EngineState.from_config(self.config, ear_fn)
        self._transition_callbacks: List[TransitionCallback] = []
        self._tick_callbacks: List[TickCallback] = []
        self._hub = hub or ObservabilityHub.get_instance()
        self._default_size_logged = False

        if on_transition is not None:
            self._transition_callbacks.append(on_transition)
        if on_tick is not None:
            self._tick_callbacks.append(on_tick)

    @property
    def tick_count(self) -> int:
        return self._state.tick_count

    @property
    def focus_counter(self) -> int:
        return self._state.focus.counter

    @property
    def drowsiness_counter(self) -> int:
        return self._state.drowsiness.counter

    def add_transition_callback(self, callback: TransitionCallback) -> None:
        self._transition_callbacks.append(callback)

    def add_tick_callback(self, callback: TickCallback) -> None:
        self._tick_callbacks.append(callback)

    def _frame_size(self, frame: FrameDetections) -> Tuple[int, int]:
        if frame.frame_width and frame.frame_height:
            return frame.frame_width, frame.frame_height
        if not self._default_size_logged:
            logger.info(
                "Frame size unknown, using default %dx%d",
                self.config.default_frame_width, self.config.default_frame_height,
            )
            self._default_size_logged = True
        return self.config.default_frame_size

    def process(
        self, frame: FrameDetections, timestamp: Optional[float] = None
    ) -> TickResult:
        """Run one tick on ``frame`` and return its result."""
        start_ns = time.perf_counter_ns()
        state = self._state
        tick_id = state.tick_count + 1
        if timestamp is None:
            timestamp = time.time()

        width, height = self._frame_size(frame)
        face = frame.primary_face

        presence = classify_presence(frame.faces)
        objects = classify_objects(frame.objects)
        focus_counter, focus_lost = state.focus.evaluate(face, width, height)
        drowsy_counter, drowsy, ear = state.drowsiness.evaluate(face)

        outputs: Dict[ViolationKind, bool] = {
            ViolationKind.FOCUS_LOST: focus_lost,
            ViolationKind.FACE_ABSENT: presence.face_absent,
            ViolationKind.MULTIPLE_FACES: presence.multiple_faces,
            ViolationKind.PHONE_DETECTED: objects.phone_detected,
            ViolationKind.NOTES_DETECTED: objects.notes_detected,
            ViolationKind.DROWSINESS: drowsy,
        }
        plan = state.aggregator.plan(outputs, tick_id=tick_id, timestamp=timestamp)

        # Commit
        state.focus.commit(focus_counter)
        state.drowsiness.commit(drowsy_counter, ear)
        state.aggregator.commit(plan)
        state.tick_count = tick_id

        snapshot = state.aggregator.snapshot()
        result = TickResult(
            tick_id=tick_id,
            timestamp=timestamp,
            statuses=plan.statuses,
            transitions=plan.transitions,
            snapshot=snapshot,
        )

        processing_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._emit_tick(frame, result, processing_ms, width, height, ear)
        self._notify(result)
        return result

    def snapshot(self) -> EngineSnapshot:
        return self._state.aggregator.snapshot()

    def reset(self) -> None:
        """Zero all counts, active flags and tracker counters."""
        before = self._state.aggregator.counts
        self._state.reset()
        logger.info("Engine reset (%d violations cleared)", sum(before.values()))
        if self._hub.enabled:
            self._hub.emit(ResetRecord(
                total_before=sum(before.values()),
                counts_before={k.value: v for k, v in before.items()},
            ))

    def _emit_tick(self, frame, result, processing_ms, width, height, ear) -> None:
        hub = self._hub
        if not hub.enabled:
            return

        snapshot = result.snapshot
        for event in result.transitions:
            hub.emit(TransitionRecord(
                tick_id=result.tick_id,
                kind=event.kind.value,
                active=event.active,
                count=snapshot.counts[event.kind],
            ))

        if hub.is_level_enabled(TraceLevel.NORMAL):
            hub.emit(TickRecord(
                tick_id=result.tick_id,
                face_count=len(frame.faces),
                object_count=len(frame.objects),
                active=[k.value for k in snapshot.active_kinds],
                total_violations=snapshot.total,
                severity=snapshot.severity.value,
                processing_ms=processing_ms,
            ))

        if hub.is_level_enabled(TraceLevel.VERBOSE):
            hub.emit(TrackerDetailRecord(
                tick_id=result.tick_id,
                focus_counter=self._state.focus.counter,
                drowsiness_counter=self._state.drowsiness.counter,
                ear=ear,
                frame_width=int(width),
                frame_height=int(height),
            ))

    def _notify(self, result: TickResult) -> None:
        for event in result.transitions:
            for callback in self._transition_callbacks:
                try:
                    callback(event)
                except Exception as exc:
                    logger.warning("Transition callback raised: %s", exc)
        for callback in self._tick_callbacks:
            try:
                callback(result)
            except Exception as exc:
                logger.warning("Tick callback raised: %s", exc)


__all__ = ["EngineState", "ProctorEngine", "TransitionCallback", "TickCallback"]
