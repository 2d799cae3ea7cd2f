"""Detection sources and detector-output adapters.

A DetectionSource wraps frame acquisition plus the face and object
detectors. The engine never touches images; it only sees the
FaceDetection / ObjectDetection values a source returns.

Adapters convert common detector outputs:
- BlazeFace-style corners -> FaceDetection (``face_from_corners``)
- COCO-SSD labels -> ObjectClass (``coco_label_to_class``)

Recorded sessions replay through ``ReplaySource`` (JSONL, one frame per
line)::

    {"frame_size": [640, 480],
     "faces": [{"bbox": [270, 190, 100, 120], "probability": 0.98}],
     "objects": [{"class": "cell phone", "confidence": 0.91}]}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from examwatch.errors import DetectorUnavailable
from examwatch.types import (
    BoundingBox,
    FaceDetection,
    FaceLandmarks,
    FrameDetections,
    ObjectClass,
    ObjectDetection,
)

logger = logging.getLogger(__name__)


class DetectionSource(Protocol):
    """Protocol for frame + detector providers.

    ``detect_faces`` / ``detect_objects`` may block; the scheduler calls
    them concurrently and waits for both. Raising DetectorUnavailable
    skips the tick; any other exception counts as a detector failure.
    """

    def is_ready(self) -> bool:
        """True when both detectors are loaded and a frame can be read."""
        ...

    def next_frame(self) -> Any:
        """Acquire the frame for the next tick."""
        ...

    def detect_faces(self, frame: Any) -> Sequence[FaceDetection]:
        ...

    def detect_objects(self, frame: Any) -> Sequence[ObjectDetection]:
        """Detect objects, pre-filtered to the phone/notes taxonomy."""
        ...


_COCO_LABELS = {
    "cell phone": ObjectClass.PHONE,
    "phone": ObjectClass.PHONE,
    "book": ObjectClass.NOTES,
    "notes": ObjectClass.NOTES,
}


def coco_label_to_class(label: str) -> ObjectClass:
    """Map a COCO (or already-normalized) label to the object taxonomy."""
    return _COCO_LABELS.get(label.strip().lower(), ObjectClass.OTHER)


def face_from_corners(
    top_left: Sequence[float],
    bottom_right: Sequence[float],
    probability: float = 1.0,
    landmarks: Optional[FaceLandmarks] = None,
) -> FaceDetection:
    """Build a FaceDetection from top-left / bottom-right corners."""
    x1, y1 = float(top_left[0]), float(top_left[1])
    x2, y2 = float(bottom_right[0]), float(bottom_right[1])
    bbox = BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)
    return FaceDetection.from_bbox(bbox, probability=probability, landmarks=landmarks)


def frame_size(frame: Any) -> Optional[Tuple[int, int]]:
    """(width, height) of a frame, or None if it carries no size.

    Understands numpy images (``shape`` = (H, W, ...)), FrameDetections
    and objects with ``width``/``height``.
    """
    shape = getattr(frame, "shape", None)
    if shape is not None and len(shape) >= 2:
        return int(shape[1]), int(shape[0])
    for w_attr, h_attr in (("frame_width", "frame_height"), ("width", "height")):
        w = getattr(frame, w_attr, None)
        h = getattr(frame, h_attr, None)
        if w and h:
            return int(w), int(h)
    return None


# -----------------------------------------------------------------------------
# JSON form
# -----------------------------------------------------------------------------


def _point(value: Any) -> Optional[Tuple[float, float]]:
    if value is None:
        return None
    return (float(value[0]), float(value[1]))


def _landmarks_from_dict(data: Optional[Dict[str, Any]]) -> Optional[FaceLandmarks]:
    if not data:
        return None
    return FaceLandmarks(
        left_eye=data.get("left_eye"),
        right_eye=data.get("right_eye"),
        nose=_point(data.get("nose")),
        mouth=_point(data.get("mouth")),
        left_ear=_point(data.get("left_ear")),
        right_ear=_point(data.get("right_ear")),
    )


def _face_from_dict(data: Dict[str, Any]) -> FaceDetection:
    landmarks = _landmarks_from_dict(data.get("landmarks"))
    probability = float(data.get("probability", 1.0))
    if "top_left" in data and "bottom_right" in data:
        return face_from_corners(data["top_left"], data["bottom_right"], probability, landmarks)

    bbox = BoundingBox(*(float(v) for v in data["bbox"]))
    center = _point(data.get("center")) or bbox.center
    return FaceDetection(bbox=bbox, center=center, probability=probability, landmarks=landmarks)


def _object_from_dict(data: Dict[str, Any]) -> ObjectDetection:
    bbox = data.get("bbox")
    return ObjectDetection(
        object_class=coco_label_to_class(str(data.get("class", "other"))),
        confidence=float(data.get("confidence", data.get("score", 1.0))),
        bbox=BoundingBox(*(float(v) for v in bbox)) if bbox else None,
    )


def frame_from_dict(data: Dict[str, Any]) -> FrameDetections:
    """Parse one recorded frame (see module docstring for the layout)."""
    size = data.get("frame_size")
    width = height = None
    if size:
        width, height = int(size[0]), int(size[1])
        if width <= 0 or height <= 0:
            raise ValueError(f"frame_size must be positive, got {width}x{height}")
    return FrameDetections(
        faces=[_face_from_dict(f) for f in data.get("faces", [])],
        objects=[_object_from_dict(o) for o in data.get("objects", [])],
        frame_width=width,
        frame_height=height,
    )


def frame_to_dict(frame: FrameDetections) -> Dict[str, Any]:
    faces = []
    for face in frame.faces:
        entry: Dict[str, Any] = {
            "bbox": list(face.bbox.as_tuple()),
            "center": list(face.center),
            "probability": face.probability,
        }
        lm = face.landmarks
        if lm is not None:
            landmarks: Dict[str, Any] = {}
            for name in ("left_eye", "right_eye"):
                pts = getattr(lm, name)
                if pts is not None:
                    landmarks[name] = pts.tolist()
            for name in ("nose", "mouth", "left_ear", "right_ear"):
                pt = getattr(lm, name)
                if pt is not None:
                    landmarks[name] = list(pt)
            entry["landmarks"] = landmarks
        faces.append(entry)

    objects = []
    for obj in frame.objects:
        entry = {"class": obj.object_class.value, "confidence": obj.confidence}
        if obj.bbox is not None:
            entry["bbox"] = list(obj.bbox.as_tuple())
        objects.append(entry)

    data: Dict[str, Any] = {"faces": faces, "objects": objects}
    if frame.frame_width and frame.frame_height:
        data["frame_size"] = [frame.frame_width, frame.frame_height]
    return data


# -----------------------------------------------------------------------------
# Replay
# -----------------------------------------------------------------------------


class ReplaySource:
    """DetectionSource over a recorded sequence of FrameDetections.

    Each ``next_frame()`` returns the next recorded frame; the detectors
    simply hand back its faces and objects. The source stops being ready
    once the recording is exhausted.
    """

    def __init__(self, frames: Iterable[FrameDetections]):
        self._frames: List[FrameDetections] = list(frames)
        self._cursor = 0

    @classmethod
    def from_jsonl(cls, path: str) -> ReplaySource:
        """Load a recording with one JSON frame per line."""
        frames = []
        with open(Path(path), encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    frames.append(frame_from_dict(json.loads(line)))
                except (ValueError, KeyError, TypeError, IndexError) as exc:
                    raise ValueError(f"{path}:{line_no}: invalid frame record: {exc}") from exc
        logger.debug("Loaded %d frames from %s", len(frames), path)
        return cls(frames)

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> Tuple[FrameDetections, ...]:
        return tuple(self._frames)

    @property
    def remaining(self) -> int:
        return len(self._frames) - self._cursor

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._frames)

    def is_ready(self) -> bool:
        return not self.exhausted

    def next_frame(self) -> FrameDetections:
        if self.exhausted:
            raise DetectorUnavailable("replay exhausted")
        frame = self._frames[self._cursor]
        self._cursor += 1
        return frame

    def detect_faces(self, frame: FrameDetections) -> Sequence[FaceDetection]:
        return frame.faces

    def detect_objects(self, frame: FrameDetections) -> Sequence[ObjectDetection]:
        return frame.objects

    def rewind(self) -> None:
        self._cursor = 0


__all__ = [
    "DetectionSource",
    "ReplaySource",
    "coco_label_to_class",
    "face_from_corners",
    "frame_size",
    "frame_from_dict",
    "frame_to_dict",
]
