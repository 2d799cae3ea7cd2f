"""examwatch - Debounced exam-violation detection from per-frame perception.

Turns face / object detections into edge-triggered violation events,
monotonic counters and a risk level.

Quick Start:
    >>> from examwatch import ProctorEngine, FrameDetections
    >>> engine = ProctorEngine(on_transition=print)
    >>> for frame in recorded_frames:
    ...     engine.process(frame)
    >>> print(engine.snapshot().severity.value)

Live monitoring:
    >>> from examwatch import Scheduler
    >>> scheduler = Scheduler(source, on_transition=print)
    >>> scheduler.start()
    >>> ...
    >>> scheduler.stop()
"""

__version__ = "0.1.0"

from examwatch.config import EngineConfig
from examwatch.errors import (
    ConfigurationError,
    DetectorFailure,
    DetectorUnavailable,
    ExamwatchError,
    InvalidReset,
)
from examwatch.types import (
    BoundingBox,
    EngineSnapshot,
    FaceDetection,
    FaceLandmarks,
    FrameDetections,
    ObjectClass,
    ObjectDetection,
    Severity,
    TickResult,
    TransitionEvent,
    ViolationKind,
    ViolationStatus,
)
from examwatch.aggregator import ViolationAggregator
from examwatch.severity import classify_severity
from examwatch.engine import EngineState, ProctorEngine
from examwatch.scheduler import Scheduler, SchedulerState
from examwatch.source import DetectionSource, ReplaySource

__all__ = [
    "__version__",
    # Configuration
    "EngineConfig",
    # Errors
    "ExamwatchError",
    "ConfigurationError",
    "DetectorUnavailable",
    "DetectorFailure",
    "InvalidReset",
    # Types
    "BoundingBox",
    "FaceLandmarks",
    "FaceDetection",
    "ObjectClass",
    "ObjectDetection",
    "FrameDetections",
    "ViolationKind",
    "ViolationStatus",
    "TransitionEvent",
    "Severity",
    "EngineSnapshot",
    "TickResult",
    # Core
    "ViolationAggregator",
    "classify_severity",
    "EngineState",
    "ProctorEngine",
    "Scheduler",
    "SchedulerState",
    # Sources
    "DetectionSource",
    "ReplaySource",
]
