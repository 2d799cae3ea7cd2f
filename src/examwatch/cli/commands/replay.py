"""Replay command for examwatch CLI.

Feeds a recorded detection session (JSONL) through the engine and
prints transitions plus a final violation report.
"""

import json
import sys
import time

from examwatch.cli.utils import (
    cleanup_observability,
    load_config,
    print_report,
    setup_observability,
)
from examwatch.engine import ProctorEngine
from examwatch.errors import ConfigurationError
from examwatch.scheduler import Scheduler
from examwatch.source import ReplaySource


def run_replay(args):
    """Replay recorded detections and report violations."""
    try:
        config = load_config(getattr(args, "config", None))
        source = ReplaySource.from_jsonl(args.path)
    except (OSError, ValueError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    hub, file_sink = setup_observability(
        getattr(args, "trace", "off"), getattr(args, "trace_output", None),
    )
    as_json = getattr(args, "json", False)
    interval = config.tick_interval_sec

    def _print_transition(event):
        state = "ACTIVE" if event.active else "cleared"
        t = (event.tick_id - 1) * interval
        print(f"  [t={t:7.1f}s tick {event.tick_id:>5}] {event.kind.label:<15} {state}")

    engine = ProctorEngine(
        config=config,
        on_transition=None if as_json else _print_transition,
        hub=hub,
    )

    if not as_json:
        mode = "realtime" if args.realtime else "offline"
        print(f"Replaying: {args.path} ({len(source)} frames, {mode})")
        print("-" * 50)

    try:
        if args.realtime:
            _replay_realtime(source, engine)
        else:
            for i, frame in enumerate(source.frames):
                engine.process(frame, timestamp=i * interval)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
    finally:
        cleanup_observability(hub, file_sink)

    snapshot = engine.snapshot()
    if as_json:
        data = snapshot.to_dict()
        data["ticks"] = engine.tick_count
        print(json.dumps(data, indent=2))
    else:
        print()
        print_report(snapshot)


def _replay_realtime(source: ReplaySource, engine: ProctorEngine) -> None:
    """Drive the replay through the Scheduler at the configured interval."""
    scheduler = Scheduler(source, engine=engine)
    if source.exhausted:
        return

    poll = engine.config.tick_interval_sec / 4
    scheduler.start()
    try:
        # Ticks that fail inside the engine still consume their frame.
        while scheduler.is_running and not (source.exhausted and not scheduler.tick_in_flight):
            time.sleep(poll)
    finally:
        scheduler.stop()
