"""Focus tracking from face-center drift.

No gaze vector is estimated. The primary face's box center is compared
with the frame center; sustained drift (or a missing face) raises a
decaying counter:

- no face: counter += 1
- drift > min(W, H) * drift_fraction: counter += 1
- otherwise: counter -= 1 (floored at 0)

Focus is lost while ``counter >= focus_lost_frames``.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from examwatch.config import FOCUS_DRIFT_FRACTION, FOCUS_LOST_FRAMES
from examwatch.types import FaceDetection


def center_drift(
    center: Tuple[float, float], frame_width: float, frame_height: float
) -> float:
    """Euclidean distance of ``center`` from the frame center in pixels."""
    frame_center = np.array([frame_width / 2.0, frame_height / 2.0])
    return float(np.linalg.norm(np.asarray(center, dtype=np.float64) - frame_center))


class FocusTracker:
    """Decaying hysteresis over face-center drift.

    Args:
        focus_lost_frames: Counter value at which focus is reported lost.
        drift_fraction: Allowed drift as a fraction of the shorter side.
    """

    def __init__(
        self,
        focus_lost_frames: int = FOCUS_LOST_FRAMES,
        drift_fraction: float = FOCUS_DRIFT_FRACTION,
    ):
        self.focus_lost_frames = focus_lost_frames
        self.drift_fraction = drift_fraction
        self._counter = 0

    @property
    def counter(self) -> int:
        return self._counter

    def evaluate(
        self,
        face: Optional[FaceDetection],
        frame_width: float,
        frame_height: float,
    ) -> Tuple[int, bool]:
        """Compute the next counter value without committing it.

        Returns:
            (next_counter, focus_lost)
        """
        if face is None:
            next_counter = self._counter + 1
        else:
            if frame_width <= 0 or frame_height <= 0:
                raise ValueError(
                    f"frame size must be positive, got {frame_width}x{frame_height}"
                )
            drift = center_drift(face.center, frame_width, frame_height)
            limit = min(frame_width, frame_height) * self.drift_fraction
            if drift > limit:
                next_counter = self._counter + 1
            else:
                next_counter = max(0, self._counter - 1)
        return next_counter, next_counter >= self.focus_lost_frames

    def commit(self, counter: int) -> None:
        if counter < 0:
            raise ValueError(f"counter must be non-negative, got {counter}")
        self._counter = counter

    def update(
        self,
        face: Optional[FaceDetection],
        frame_width: float,
        frame_height: float,
    ) -> bool:
        """Advance one tick. Returns True once focus is lost."""
        counter, lost = self.evaluate(face, frame_width, frame_height)
        self.commit(counter)
        return lost

    def reset(self) -> None:
        self._counter = 0


__all__ = ["FocusTracker", "center_drift"]
