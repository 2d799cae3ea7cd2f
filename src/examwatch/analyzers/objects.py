"""Object classification into the phone / notes violation taxonomy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from examwatch.types import ObjectClass, ObjectDetection


@dataclass(frozen=True)
class ObjectResult:
    phone_detected: bool
    notes_detected: bool


def classify_objects(objects: Sequence[ObjectDetection]) -> ObjectResult:
    """Flag phone / notes if any detection carries that class.

    Confidence is ignored: the object detector is expected to
    pre-filter low-confidence boxes.
    """
    classes = {obj.object_class for obj in objects}
    return ObjectResult(
        phone_detected=ObjectClass.PHONE in classes,
        notes_detected=ObjectClass.NOTES in classes,
    )


__all__ = ["ObjectResult", "classify_objects"]
