"""Presence classification from the per-frame face count."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from examwatch.types import FaceDetection


@dataclass(frozen=True)
class PresenceResult:
    face_absent: bool
    multiple_faces: bool


def classify_presence(faces: Sequence[FaceDetection]) -> PresenceResult:
    """Classify absence / multiple faces. Pure function of ``len(faces)``."""
    count = len(faces)
    return PresenceResult(face_absent=count == 0, multiple_faces=count > 1)


__all__ = ["PresenceResult", "classify_presence"]
