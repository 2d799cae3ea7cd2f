"""Trace levels, sink interface and the central ObservabilityHub.

The hub fans immutable trace records out to sinks. It is disabled by
default (``TraceLevel.OFF``) so emission costs one attribute check.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from examwatch.observability.records import TraceRecord

logger = logging.getLogger(__name__)


class TraceLevel(IntEnum):
    """Trace verbosity.

    - OFF: nothing
    - MINIMAL: session boundaries, transitions, detector errors, resets
    - NORMAL: + per-tick summaries and skipped ticks
    - VERBOSE: + tracker counters per tick
    """

    OFF = 0
    MINIMAL = 1
    NORMAL = 2
    VERBOSE = 3

    @classmethod
    def from_string(cls, value: str) -> TraceLevel:
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(
                f"unknown trace level {value!r}; "
                f"expected one of {', '.join(l.name.lower() for l in cls)}"
            ) from None


class Sink(ABC):
    """Destination for trace records."""

    @abstractmethod
    def write(self, record: TraceRecord) -> None:
        ...

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.flush()


class ObservabilityHub:
    """Process-wide trace dispatcher.

    Example:
        >>> hub = ObservabilityHub.get_instance()
        >>> hub.configure(level=TraceLevel.NORMAL, sinks=[MemorySink()])
        >>> if hub.enabled:
        ...     hub.emit(TickRecord(tick_id=1))
    """

    _instance: Optional[ObservabilityHub] = None
    _instance_lock = threading.Lock()

    def __init__(self):
        self._level = TraceLevel.OFF
        self._sinks: List[Sink] = []
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> ObservabilityHub:
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton (closing its sinks). Intended for tests."""
        with cls._instance_lock:
            if cls._instance is not None:
                cls._instance.shutdown()
            cls._instance = None

    @property
    def level(self) -> TraceLevel:
        return self._level

    @property
    def enabled(self) -> bool:
        return self._level > TraceLevel.OFF

    def configure(
        self,
        level: TraceLevel = TraceLevel.NORMAL,
        sinks: Optional[Sequence[Sink]] = None,
    ) -> None:
        self._level = TraceLevel(level)
        if sinks:
            for sink in sinks:
                self.add_sink(sink)

    def is_level_enabled(self, level: TraceLevel) -> bool:
        return self._level >= level

    def add_sink(self, sink: Sink) -> None:
        with self._lock:
            if sink not in self._sinks:
                self._sinks.append(sink)

    def remove_sink(self, sink: Sink) -> None:
        with self._lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    def emit(self, record: TraceRecord) -> None:
        if not self.enabled or not self.is_level_enabled(record.min_level):
            return
        with self._lock:
            sinks = list(self._sinks)
        for sink in sinks:
            try:
                sink.write(record)
            except Exception as exc:
                logger.warning("Sink %s failed: %s", type(sink).__name__, exc)

    def flush(self) -> None:
        with self._lock:
            sinks = list(self._sinks)
        for sink in sinks:
            sink.flush()

    def shutdown(self) -> None:
        """Close all sinks and disable tracing."""
        with self._lock:
            sinks, self._sinks = self._sinks, []
        for sink in sinks:
            try:
                sink.close()
            except Exception as exc:
                logger.warning("Closing sink %s failed: %s", type(sink).__name__, exc)
        self._level = TraceLevel.OFF


__all__ = ["TraceLevel", "Sink", "ObservabilityHub"]
