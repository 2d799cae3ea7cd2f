"""Engine configuration.

All thresholds are static named constants supplied at construction.
Invalid values fail fast with ConfigurationError.

Example:
    >>> from examwatch.config import EngineConfig
    >>> config = EngineConfig(focus_lost_frames=20, tick_interval_ms=200)
    >>> config = EngineConfig.from_yaml("examwatch.yaml")
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Tuple

from examwatch.errors import ConfigurationError

FOCUS_LOST_FRAMES = 35  # ticks of drift before focus counts as lost
DROWSINESS_FRAMES = 15  # consecutive closed-eye ticks before drowsiness
EAR_THRESHOLD = 0.2
FOCUS_DRIFT_FRACTION = 0.25  # of min(frame_width, frame_height)
TICK_INTERVAL_MS = 300
DEFAULT_FRAME_SIZE: Tuple[int, int] = (640, 480)


@dataclass(frozen=True)
class EngineConfig:
    """Thresholds and timing for the violation engine.

    Attributes:
        focus_lost_frames: Focus counter value at which focus is lost.
        drowsiness_frames: Consecutive closed-eye ticks for drowsiness.
        focus_drift_fraction: Allowed drift of the face center from the
            frame center, as a fraction of the shorter frame side.
        ear_threshold: Eye-aspect-ratio below which eyes count as closed.
        tick_interval_ms: Sampling period of the scheduler.
        default_frame_width: Width used when a frame carries no size.
        default_frame_height: Height used when a frame carries no size.
    """

    focus_lost_frames: int = FOCUS_LOST_FRAMES
    drowsiness_frames: int = DROWSINESS_FRAMES
    focus_drift_fraction: float = FOCUS_DRIFT_FRACTION
    ear_threshold: float = EAR_THRESHOLD
    tick_interval_ms: int = TICK_INTERVAL_MS
    default_frame_width: int = DEFAULT_FRAME_SIZE[0]
    default_frame_height: int = DEFAULT_FRAME_SIZE[1]

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(
                    f"{f.name} must be a number, got {type(value).__name__}"
                )
            if not math.isfinite(value) or not value > 0:
                raise ConfigurationError(f"{f.name} must be a positive finite number, got {value}")

        for name in (
            "focus_lost_frames",
            "drowsiness_frames",
            "tick_interval_ms",
            "default_frame_width",
            "default_frame_height",
        ):
            value = getattr(self, name)
            if not float(value).is_integer():
                raise ConfigurationError(f"{name} must be an integer, got {value}")
            object.__setattr__(self, name, int(value))

    @property
    def tick_interval_sec(self) -> float:
        return self.tick_interval_ms / 1000.0

    @property
    def default_frame_size(self) -> Tuple[int, int]:
        return (self.default_frame_width, self.default_frame_height)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EngineConfig:
        """Create EngineConfig from a dictionary (e.g., loaded from YAML).

        Accepts either a flat mapping or one nested under an ``engine`` key.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(f"config must be a mapping, got {type(data).__name__}")
        if "engine" in data and isinstance(data["engine"], dict):
            data = data["engine"]

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> EngineConfig:
        """Load EngineConfig from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: On unknown keys or invalid values.
        """
        import yaml

        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "EngineConfig",
    "FOCUS_LOST_FRAMES",
    "DROWSINESS_FRAMES",
    "EAR_THRESHOLD",
    "FOCUS_DRIFT_FRACTION",
    "TICK_INTERVAL_MS",
    "DEFAULT_FRAME_SIZE",
]
