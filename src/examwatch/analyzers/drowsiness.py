"""Drowsiness tracking from eye closure.

Eye closure is judged per frame with an eye-aspect-ratio (EAR) function
over the face landmarks. Closure must persist for ``drowsiness_frames``
consecutive ticks; any open-eye frame resets the run.

EAR for a six-point eye contour p1..p6::

    EAR = (|p2 - p6| + |p3 - p5|) / (2 * |p1 - p4|)

Open eyes sit around 0.25-0.35, closed eyes drop below ~0.2.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

import numpy as np

from examwatch.config import DROWSINESS_FRAMES, EAR_THRESHOLD
from examwatch.types import FaceDetection, FaceLandmarks

EarFunction = Callable[[FaceLandmarks], Optional[float]]


def eye_aspect_ratio(eye: Optional[np.ndarray]) -> Optional[float]:
    """EAR of one six-point eye contour, or None if not computable."""
    if eye is None:
        return None
    pts = np.asarray(eye, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] != 6:
        return None

    p1, p2, p3, p4, p5, p6 = pts
    horizontal = np.linalg.norm(p1 - p4)
    if horizontal <= 0:
        return None
    vertical = np.linalg.norm(p2 - p6) + np.linalg.norm(p3 - p5)
    return float(vertical / (2.0 * horizontal))


def mean_eye_aspect_ratio(landmarks: FaceLandmarks) -> Optional[float]:
    """Mean EAR over the eyes that have a full contour.

    Returns None when neither eye has six points.
    """
    values = [
        v for v in (
            eye_aspect_ratio(landmarks.left_eye),
            eye_aspect_ratio(landmarks.right_eye),
        )
        if v is not None
    ]
    if not values:
        return None
    return float(np.mean(values))


class DrowsinessTracker:
    """Consecutive-frame hysteresis over eye closure.

    Args:
        drowsiness_frames: Consecutive closed-eye ticks for drowsiness.
        ear_threshold: EAR below which eyes count as closed.
        ear_fn: Landmarks -> EAR (None = cannot assess).
    """

    def __init__(
        self,
        drowsiness_frames: int = DROWSINESS_FRAMES,
        ear_threshold: float = EAR_THRESHOLD,
        ear_fn: Optional[EarFunction] = None,
    ):
        self.drowsiness_frames = drowsiness_frames
        self.ear_threshold = ear_threshold
        self.ear_fn: EarFunction = ear_fn or mean_eye_aspect_ratio
        self._counter = 0
        self._last_ear: Optional[float] = None

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def last_ear(self) -> Optional[float]:
        """EAR of the last committed tick (None if not assessed)."""
        return self._last_ear

    def evaluate(self, face: Optional[FaceDetection]) -> Tuple[int, bool, Optional[float]]:
        """Compute the next counter value without committing it.

        Returns:
            (next_counter, drowsy, ear)
        """
        if face is None or face.landmarks is None:
            return 0, False, None

        ear = self.ear_fn(face.landmarks)
        if ear is None:
            # Landmarks without eye contours: closure cannot be assessed.
            return 0, False, None

        next_counter = self._counter + 1 if ear < self.ear_threshold else 0
        return next_counter, next_counter >= self.drowsiness_frames, ear

    def commit(self, counter: int, ear: Optional[float] = None) -> None:
        if counter < 0:
            raise ValueError(f"counter must be non-negative, got {counter}")
        self._counter = counter
        self._last_ear = ear

    def update(self, face: Optional[FaceDetection]) -> bool:
        """Advance one tick. Returns True once drowsiness is sustained."""
        counter, drowsy, ear = self.evaluate(face)
        self.commit(counter, ear)
        return drowsy

    def reset(self) -> None:
        self._counter = 0
        self._last_ear = None


__all__ = [
    "DrowsinessTracker",
    "EarFunction",
    "eye_aspect_ratio",
    "mean_eye_aspect_ratio",
]
