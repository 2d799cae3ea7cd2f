"""Exception types for examwatch.

Only configuration and lifecycle-misuse errors reach the caller.
Detector-level errors are absorbed inside a tick (see scheduler).
"""


class ExamwatchError(Exception):
    """Base class for all examwatch errors."""


class ConfigurationError(ExamwatchError, ValueError):
    """Invalid engine configuration (raised at construction time)."""


class DetectorUnavailable(ExamwatchError):
    """Face or object detector is not ready.

    Raised by ``Scheduler.start()`` when the source is not ready. Inside a
    tick it causes the whole tick to be skipped.
    """


class DetectorFailure(ExamwatchError):
    """A detector call raised.

    Args:
        detector: Detector name ("face" or "object").
        cause: The original exception.
    """

    def __init__(self, detector: str, cause: BaseException):
        super().__init__(f"{detector} detector failed: {cause}")
        self.detector = detector
        self.cause = cause


class InvalidReset(ExamwatchError):
    """``reset()`` was called while a tick is in flight."""


__all__ = [
    "ExamwatchError",
    "ConfigurationError",
    "DetectorUnavailable",
    "DetectorFailure",
    "InvalidReset",
]
