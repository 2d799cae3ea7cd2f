"""examwatch data types.

Per-frame detections flow in, violation statuses and snapshots flow out.
All detection types are immutable and scoped to a single tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in pixels (x, y is the top-left corner)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True, eq=False)
class FaceLandmarks:
    """Facial landmarks for one face.

    Eyes are contours of shape (N, 2). Six points ordered p1..p6
    (corner, two upper lid points, corner, two lower lid points) are
    needed for an eye-aspect-ratio; a single keypoint per eye (as
    BlazeFace returns) is accepted but does not allow closure checks.

    Attributes:
        left_eye: Left eye contour, shape (N, 2).
        right_eye: Right eye contour, shape (N, 2).
        nose: Nose tip (x, y).
        mouth: Mouth center (x, y).
        left_ear: Left ear tragion (x, y).
        right_ear: Right ear tragion (x, y).
    """

    left_eye: Optional[np.ndarray] = None
    right_eye: Optional[np.ndarray] = None
    nose: Optional[Tuple[float, float]] = None
    mouth: Optional[Tuple[float, float]] = None
    left_ear: Optional[Tuple[float, float]] = None
    right_ear: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        for name in ("left_eye", "right_eye"):
            pts = getattr(self, name)
            if pts is None:
                continue
            arr = np.asarray(pts, dtype=np.float64).reshape(-1, 2)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)


@dataclass(frozen=True)
class FaceDetection:
    """One detected face.

    Attributes:
        bbox: Face bounding box in pixels.
        center: Box center (x, y) in pixels.
        probability: Detection probability [0, 1].
        landmarks: Optional landmarks; required for drowsiness checks.
    """

    bbox: BoundingBox
    center: Tuple[float, float]
    probability: float = 1.0
    landmarks: Optional[FaceLandmarks] = None

    @classmethod
    def from_bbox(
        cls,
        bbox: BoundingBox,
        probability: float = 1.0,
        landmarks: Optional[FaceLandmarks] = None,
    ) -> FaceDetection:
        """Create a face whose center is the bbox midpoint."""
        return cls(bbox=bbox, center=bbox.center, probability=probability, landmarks=landmarks)


class ObjectClass(str, Enum):
    """Object taxonomy relevant to exam monitoring."""

    PHONE = "phone"
    NOTES = "notes"
    OTHER = "other"


@dataclass(frozen=True)
class ObjectDetection:
    """One detected object (pre-filtered by confidence upstream)."""

    object_class: ObjectClass
    confidence: float = 1.0
    bbox: Optional[BoundingBox] = None


@dataclass(frozen=True)
class FrameDetections:
    """Everything the detectors found in one sampled frame.

    ``frame_width``/``frame_height`` are optional; when missing the engine
    falls back to the configured default frame size.
    """

    faces: Tuple[FaceDetection, ...] = ()
    objects: Tuple[ObjectDetection, ...] = ()
    frame_width: Optional[int] = None
    frame_height: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "faces", tuple(self.faces))
        object.__setattr__(self, "objects", tuple(self.objects))

    @property
    def primary_face(self) -> Optional[FaceDetection]:
        """The face used for focus and drowsiness (first reported)."""
        return self.faces[0] if self.faces else None


class ViolationKind(str, Enum):
    """Closed set of violation kinds, in reporting order."""

    FOCUS_LOST = "focusLost"
    FACE_ABSENT = "faceAbsent"
    MULTIPLE_FACES = "multipleFaces"
    PHONE_DETECTED = "phoneDetected"
    NOTES_DETECTED = "notesDetected"
    DROWSINESS = "drowsiness"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    ViolationKind.FOCUS_LOST: "Focus Lost",
    ViolationKind.FACE_ABSENT: "Face Absent",
    ViolationKind.MULTIPLE_FACES: "Multiple Faces",
    ViolationKind.PHONE_DETECTED: "Phone Detected",
    ViolationKind.NOTES_DETECTED: "Notes Detected",
    ViolationKind.DROWSINESS: "Drowsiness",
}


class Severity(str, Enum):
    """Qualitative risk level derived from the total violation count."""

    NORMAL = "Normal"
    LOW_RISK = "Low Risk"
    MEDIUM_RISK = "Medium Risk"
    HIGH_RISK = "High Risk"
    CRITICAL = "Critical"

    @property
    def description(self) -> str:
        return _SEVERITY_DESCRIPTIONS[self]


_SEVERITY_DESCRIPTIONS = {
    Severity.NORMAL: "All systems normal",
    Severity.LOW_RISK: "Minor concerns detected",
    Severity.MEDIUM_RISK: "Attention recommended",
    Severity.HIGH_RISK: "Close monitoring needed",
    Severity.CRITICAL: "Immediate intervention required",
}


@dataclass(frozen=True)
class ViolationStatus:
    """Per-tick status of one violation kind."""

    kind: ViolationKind
    active: bool


@dataclass(frozen=True)
class TransitionEvent:
    """Edge transition of one violation kind.

    Attributes:
        kind: Violation kind that changed.
        active: New state (True on false->true, False on true->false).
        timestamp: Wall-clock time of the tick (seconds since epoch).
        tick_id: Sequence number of the tick that produced the edge.
    """

    kind: ViolationKind
    active: bool
    timestamp: float
    tick_id: int = 0


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only, point-in-time view of the violation statistics."""

    counts: Mapping[ViolationKind, int]
    active: Mapping[ViolationKind, bool]
    severity: Severity

    def __post_init__(self) -> None:
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))
        object.__setattr__(self, "active", MappingProxyType(dict(self.active)))

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def active_kinds(self) -> Tuple[ViolationKind, ...]:
        return tuple(k for k in ViolationKind if self.active.get(k, False))

    def share(self, kind: ViolationKind) -> float:
        """Percentage of all violations attributed to ``kind``."""
        total = self.total
        if total == 0:
            return 0.0
        return 100.0 * self.counts.get(kind, 0) / total

    def to_dict(self) -> dict:
        return {
            "counts": {k.value: v for k, v in self.counts.items()},
            "active": {k.value: v for k, v in self.active.items()},
            "total": self.total,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class TickResult:
    """Outcome of one applied tick.

    ``statuses`` always holds all six kinds in ``ViolationKind`` order;
    ``transitions`` holds only the edges.
    """

    tick_id: int
    timestamp: float
    statuses: Tuple[ViolationStatus, ...]
    transitions: Tuple[TransitionEvent, ...] = field(default_factory=tuple)
    snapshot: Optional[EngineSnapshot] = None


__all__ = [
    "BoundingBox",
    "FaceLandmarks",
    "FaceDetection",
    "ObjectClass",
    "ObjectDetection",
    "FrameDetections",
    "ViolationKind",
    "Severity",
    "ViolationStatus",
    "TransitionEvent",
    "EngineSnapshot",
    "TickResult",
]
