"""CLI helpers: config loading, observability setup, report formatting."""

from __future__ import annotations

from typing import List, Optional, TextIO

from examwatch.config import EngineConfig
from examwatch.types import EngineSnapshot, ViolationKind


def load_config(config_path: Optional[str]) -> EngineConfig:
    """Load EngineConfig from YAML, or defaults when no path is given."""
    if config_path:
        return EngineConfig.from_yaml(config_path)
    return EngineConfig()


def setup_observability(trace_level: str, trace_output: Optional[str] = None):
    """Configure observability based on CLI arguments.

    Args:
        trace_level: Trace level string ("off", "minimal", "normal", "verbose").
        trace_output: Optional path to output JSONL file.

    Returns:
        Tuple of (hub, file_sink) for cleanup. file_sink may be None.
    """
    from examwatch.observability import ConsoleSink, FileSink, ObservabilityHub, TraceLevel

    level = TraceLevel.from_string(trace_level or "off")
    hub = ObservabilityHub.get_instance()

    if level == TraceLevel.OFF:
        return hub, None

    sinks = [ConsoleSink()]
    file_sink = None
    if trace_output:
        file_sink = FileSink(trace_output)
        sinks.append(file_sink)

    hub.configure(level=level, sinks=sinks)
    return hub, file_sink


def cleanup_observability(hub, file_sink) -> None:
    """Clean up observability resources."""
    if hub is not None:
        hub.shutdown()


def format_report(snapshot: EngineSnapshot, width: int = 50) -> str:
    """Multi-line summary of counts, shares and severity."""
    lines: List[str] = []
    sep = "=" * width
    lines.append(sep)
    lines.append("Violation Report")
    lines.append(sep)
    lines.append(f"  {'Kind':<16} {'Count':>6} {'Share':>8}  Active")
    lines.append("  " + "-" * (width - 2))
    for kind in ViolationKind:
        count = snapshot.counts.get(kind, 0)
        share = f"{snapshot.share(kind):.1f}%" if count else "-"
        active = "yes" if snapshot.active.get(kind, False) else ""
        lines.append(f"  {kind.label:<16} {count:>6} {share:>8}  {active}")
    lines.append("")
    lines.append(f"  Total violations: {snapshot.total}")
    lines.append(f"  Risk assessment:  {snapshot.severity.value} ({snapshot.severity.description})")
    lines.append(sep)
    return "\n".join(lines)


def print_report(snapshot: EngineSnapshot, stream: Optional[TextIO] = None) -> None:
    print(format_report(snapshot), file=stream)
