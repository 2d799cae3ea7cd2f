"""Per-frame classifiers feeding the violation aggregator.

Presence and object classification are pure functions; focus and
drowsiness trackers own their hysteresis counters.
"""

from examwatch.analyzers.presence import PresenceResult, classify_presence
from examwatch.analyzers.objects import ObjectResult, classify_objects
from examwatch.analyzers.focus import FocusTracker, center_drift
from examwatch.analyzers.drowsiness import (
    DrowsinessTracker,
    EarFunction,
    eye_aspect_ratio,
    mean_eye_aspect_ratio,
)

__all__ = [
    "PresenceResult",
    "classify_presence",
    "ObjectResult",
    "classify_objects",
    "FocusTracker",
    "center_drift",
    "DrowsinessTracker",
    "EarFunction",
    "eye_aspect_ratio",
    "mean_eye_aspect_ratio",
]
