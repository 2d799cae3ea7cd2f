"""Shared fixtures for examwatch tests.

All detections are synthetic. NO ML models needed.
"""

import numpy as np
import pytest

from examwatch.observability import ObservabilityHub
from examwatch.types import (
    BoundingBox,
    FaceDetection,
    FaceLandmarks,
    FrameDetections,
    ObjectClass,
    ObjectDetection,
)

FRAME_W, FRAME_H = 640, 480


def eye_contour(ear: float, center=(0.0, 0.0), width: float = 30.0) -> np.ndarray:
    """Six-point eye contour whose eye-aspect-ratio is exactly ``ear``."""
    cx, cy = center
    h = ear * width
    x0 = cx - width / 2
    return np.array([
        [x0, cy],                      # p1 corner
        [x0 + width / 3, cy - h / 2],  # p2 upper lid
        [x0 + 2 * width / 3, cy - h / 2],  # p3 upper lid
        [x0 + width, cy],              # p4 corner
        [x0 + 2 * width / 3, cy + h / 2],  # p5 lower lid
        [x0 + width / 3, cy + h / 2],  # p6 lower lid
    ])


@pytest.fixture(autouse=True)
def clean_hub():
    """Isolate the observability singleton per test."""
    ObservabilityHub.reset_instance()
    yield
    ObservabilityHub.reset_instance()


@pytest.fixture
def make_landmarks():
    """Factory for landmarks with both eyes at a given EAR."""
    def _make(ear: float = 0.3) -> FaceLandmarks:
        return FaceLandmarks(
            left_eye=eye_contour(ear, center=(300.0, 220.0)),
            right_eye=eye_contour(ear, center=(340.0, 220.0)),
            nose=(320.0, 245.0),
            mouth=(320.0, 270.0),
        )
    return _make


@pytest.fixture
def make_face():
    """Factory for a face centered at ``center`` (default: frame center)."""
    def _make(center=(FRAME_W / 2, FRAME_H / 2), size=100.0, probability=0.95, landmarks=None):
        cx, cy = center
        bbox = BoundingBox(x=cx - size / 2, y=cy - size / 2, width=size, height=size)
        return FaceDetection(bbox=bbox, center=(cx, cy), probability=probability, landmarks=landmarks)
    return _make


@pytest.fixture
def make_frame():
    """Factory for FrameDetections (640x480 by default)."""
    def _make(faces=(), objects=(), size=(FRAME_W, FRAME_H)):
        return FrameDetections(
            faces=list(faces),
            objects=list(objects),
            frame_width=size[0] if size else None,
            frame_height=size[1] if size else None,
        )
    return _make


@pytest.fixture
def phone():
    return ObjectDetection(object_class=ObjectClass.PHONE, confidence=0.9)


@pytest.fixture
def notes():
    return ObjectDetection(object_class=ObjectClass.NOTES, confidence=0.6)
