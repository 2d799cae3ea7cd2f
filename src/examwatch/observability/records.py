"""Trace record data classes for examwatch observability.

Record Categories:
- Session records: monitoring session start / end
- Violation records: edge transitions and resets
- Tick records: per-tick summaries, skipped ticks, tracker detail
- Detector records: absorbed detector failures
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from examwatch.observability.hub import TraceLevel


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {_jsonable(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass
class TraceRecord:
    """Base trace record.

    ``min_level`` is the lowest hub level at which the record is emitted.
    """

    record_type: str = field(default="base", init=False)
    timestamp_ns: int = field(default_factory=time.time_ns)
    min_level: TraceLevel = field(default=TraceLevel.MINIMAL, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("min_level", None)
        return _jsonable(data)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# =============================================================================
# Session Records
# =============================================================================


@dataclass
class SessionStartRecord(TraceRecord):
    record_type: str = field(default="session_start", init=False)

    session_id: int = 0
    tick_interval_ms: int = 0
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionEndRecord(TraceRecord):
    record_type: str = field(default="session_end", init=False)

    session_id: int = 0
    ticks: int = 0
    skipped_ticks: int = 0
    duration_sec: float = 0.0
    total_violations: int = 0
    severity: str = ""


# =============================================================================
# Violation Records
# =============================================================================


@dataclass
class TransitionRecord(TraceRecord):
    """Edge transition of one violation kind."""

    record_type: str = field(default="transition", init=False)

    tick_id: int = 0
    kind: str = ""
    active: bool = False
    count: int = 0  # count after the transition


@dataclass
class ResetRecord(TraceRecord):
    record_type: str = field(default="reset", init=False)

    total_before: int = 0
    counts_before: Dict[str, int] = field(default_factory=dict)


# =============================================================================
# Tick Records
# =============================================================================


@dataclass
class TickRecord(TraceRecord):
    """Summary of one applied tick."""

    record_type: str = field(default="tick", init=False)
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)

    tick_id: int = 0
    face_count: int = 0
    object_count: int = 0
    active: List[str] = field(default_factory=list)
    total_violations: int = 0
    severity: str = ""
    processing_ms: float = 0.0


@dataclass
class TickSkipRecord(TraceRecord):
    """A tick that was skipped or whose results were discarded.

    Reasons: "detector_unavailable", "session_stopped", "overdue".
    """

    record_type: str = field(default="tick_skip", init=False)
    min_level: TraceLevel = field(default=TraceLevel.NORMAL, repr=False)

    tick_id: int = 0
    reason: str = ""
    count: int = 1


@dataclass
class TrackerDetailRecord(TraceRecord):
    """Hysteresis counters after a tick (VERBOSE)."""

    record_type: str = field(default="tracker_detail", init=False)
    min_level: TraceLevel = field(default=TraceLevel.VERBOSE, repr=False)

    tick_id: int = 0
    focus_counter: int = 0
    drowsiness_counter: int = 0
    ear: Optional[float] = None
    frame_width: int = 0
    frame_height: int = 0


# =============================================================================
# Detector Records
# =============================================================================


@dataclass
class DetectorErrorRecord(TraceRecord):
    """A detector call that raised; its result was treated as empty."""

    record_type: str = field(default="detector_error", init=False)

    tick_id: int = 0
    detector: str = ""
    error: str = ""


__all__ = [
    "TraceRecord",
    "SessionStartRecord",
    "SessionEndRecord",
    "TransitionRecord",
    "ResetRecord",
    "TickRecord",
    "TickSkipRecord",
    "TrackerDetailRecord",
    "DetectorErrorRecord",
]
