"""Observability system for examwatch.

Tracks what the engine decided and why:
- Violation transitions and resets
- Per-tick summaries and skipped ticks
- Hysteresis counters
- Absorbed detector failures

Trace Levels:
- OFF: No tracing (default)
- MINIMAL: Sessions, transitions, detector errors, resets
- NORMAL: + tick summaries
- VERBOSE: + tracker counters

Example:
    >>> from examwatch.observability import ObservabilityHub, TraceLevel, FileSink
    >>> hub = ObservabilityHub.get_instance()
    >>> hub.configure(level=TraceLevel.NORMAL)
    >>> hub.add_sink(FileSink("/tmp/trace.jsonl"))
"""

from examwatch.observability.hub import ObservabilityHub, Sink, TraceLevel
from examwatch.observability.records import TraceRecord
from examwatch.observability.sinks import ConsoleSink, FileSink, MemorySink, NullSink

__all__ = [
    "TraceLevel",
    "Sink",
    "ObservabilityHub",
    "TraceRecord",
    "FileSink",
    "ConsoleSink",
    "MemorySink",
    "NullSink",
]
