"""Trace output sinks for observability.

Sinks receive trace records and handle their output to various destinations:
- FileSink: JSONL file output
- ConsoleSink: Formatted console output
- MemorySink: In-memory buffer for testing/analysis
- NullSink: Discards everything
"""

from __future__ import annotations

import collections
import sys
import threading
from pathlib import Path
from typing import List, Optional, TextIO

from examwatch.observability.hub import Sink
from examwatch.observability.records import (
    DetectorErrorRecord,
    ResetRecord,
    SessionEndRecord,
    SessionStartRecord,
    TickRecord,
    TickSkipRecord,
    TraceRecord,
    TrackerDetailRecord,
    TransitionRecord,
)


class NullSink(Sink):
    """Sink that discards all records."""

    def write(self, record: TraceRecord) -> None:
        pass


class FileSink(Sink):
    """Buffered JSONL file sink.

    Args:
        path: Output file (parent directories are created).
        buffer_size: Records buffered before a write to disk.
    """

    def __init__(self, path: str, buffer_size: int = 100):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._buffer_size = max(1, buffer_size)
        self._buffer: List[str] = []
        self._lock = threading.Lock()
        self._file = open(self._path, "a", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def write(self, record: TraceRecord) -> None:
        with self._lock:
            self._buffer.append(record.to_json())
            if len(self._buffer) >= self._buffer_size:
                self._flush_locked()

    def flush(self) -> None:
        with self._lock:
            self._flush_locked()

    def _flush_locked(self) -> None:
        if self._file.closed or not self._buffer:
            return
        self._file.write("\n".join(self._buffer) + "\n")
        self._file.flush()
        self._buffer.clear()

    def close(self) -> None:
        with self._lock:
            self._flush_locked()
            if not self._file.closed:
                self._file.close()


class MemorySink(Sink):
    """Bounded in-memory record buffer.

    Args:
        max_records: Oldest records are dropped beyond this size.
    """

    def __init__(self, max_records: int = 10000):
        self._records: collections.deque = collections.deque(maxlen=max_records)
        self._lock = threading.Lock()

    def write(self, record: TraceRecord) -> None:
        with self._lock:
            self._records.append(record)

    def get_records(self) -> List[TraceRecord]:
        with self._lock:
            return list(self._records)

    def get_by_type(self, record_type: str) -> List[TraceRecord]:
        return [r for r in self.get_records() if r.record_type == record_type]

    def get_by_tick(self, tick_id: int) -> List[TraceRecord]:
        return [r for r in self.get_records() if getattr(r, "tick_id", None) == tick_id]

    def get_transitions(self) -> List[TransitionRecord]:
        return [r for r in self.get_records() if isinstance(r, TransitionRecord)]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class ConsoleSink(Sink):
    """Human-readable one-line-per-record console output.

    Args:
        stream: Output stream (default: stderr).
        color: Use ANSI colors.
    """

    _COLORS = {
        "red": "\033[31m",
        "green": "\033[32m",
        "yellow": "\033[33m",
        "blue": "\033[34m",
        "magenta": "\033[35m",
        "cyan": "\033[36m",
    }
    _RESET = "\033[0m"

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True):
        self._stream = stream or sys.stderr
        self._color = color

    def _colorize(self, text: str, color: str) -> str:
        if not self._color:
            return text
        return f"{self._COLORS.get(color, '')}{text}{self._RESET}"

    def write(self, record: TraceRecord) -> None:
        line = self._format_record(record)
        if line is not None:
            self._stream.write(line + "\n")

    def flush(self) -> None:
        self._stream.flush()

    def close(self) -> None:
        # Stream is not owned by the sink.
        self.flush()

    def _format_record(self, record: TraceRecord) -> Optional[str]:
        if isinstance(record, TransitionRecord):
            return self._format_transition(record)
        elif isinstance(record, DetectorErrorRecord):
            tag = self._colorize("[DETECTOR]", "yellow")
            return f"{tag} Tick {record.tick_id}: {record.detector} failed: {record.error}"
        elif isinstance(record, TickSkipRecord):
            tag = self._colorize("[SKIP]", "magenta")
            return f"{tag} Tick {record.tick_id}: {record.reason} (x{record.count})"
        elif isinstance(record, TickRecord):
            active = ",".join(record.active) if record.active else "-"
            return (
                f"[TICK] {record.tick_id}: faces={record.face_count} "
                f"objects={record.object_count} active={active} "
                f"total={record.total_violations} ({record.severity}) "
                f"{record.processing_ms:.1f}ms"
            )
        elif isinstance(record, TrackerDetailRecord):
            ear = f"{record.ear:.3f}" if record.ear is not None else "n/a"
            return (
                f"[TRACK] {record.tick_id}: focus={record.focus_counter} "
                f"drowsy={record.drowsiness_counter} ear={ear}"
            )
        elif isinstance(record, ResetRecord):
            tag = self._colorize("[RESET]", "blue")
            return f"{tag} cleared {record.total_before} violations"
        elif isinstance(record, SessionStartRecord):
            tag = self._colorize("[SESSION]", "blue")
            return f"{tag} #{record.session_id} started (interval {record.tick_interval_ms}ms)"
        elif isinstance(record, SessionEndRecord):
            tag = self._colorize("[SESSION]", "blue")
            return (
                f"{tag} #{record.session_id} ended after {record.ticks} ticks "
                f"({record.skipped_ticks} skipped), {record.total_violations} violations, "
                f"{record.severity}"
            )
        return None

    def _format_transition(self, record: TransitionRecord) -> str:
        if record.active:
            tag = self._colorize("[VIOLATION]", "red")
            return f"{tag} Tick {record.tick_id}: {record.kind} (count={record.count})"
        tag = self._colorize("[CLEARED]", "green")
        return f"{tag} Tick {record.tick_id}: {record.kind}"


__all__ = [
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
]
