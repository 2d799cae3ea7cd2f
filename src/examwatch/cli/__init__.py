"""Command-line interface for examwatch."""

import argparse
import logging
import sys


def _add_config_args(parser):
    parser.add_argument(
        "--config", type=str, metavar="PATH",
        help="Path to engine config YAML file"
    )


def _add_trace_args(parser):
    """Add --trace, --trace-output args to a parser."""
    parser.add_argument("--trace", choices=["off", "minimal", "normal", "verbose"], default="off")
    parser.add_argument("--trace-output", type=str, help="Output file for trace records (JSONL)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="examwatch",
        description="examwatch - Debounced exam-violation detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  examwatch info                                  # Thresholds and taxonomy
  examwatch info --config examwatch.yaml          # Effective config
  examwatch replay session.jsonl                  # Offline replay
  examwatch replay session.jsonl --realtime       # Replay at tick interval
  examwatch replay session.jsonl --json           # Final snapshot as JSON
  examwatch replay session.jsonl --trace normal --trace-output trace.jsonl
""",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    info_parser = subparsers.add_parser(
        "info",
        help="Show thresholds, violation kinds and severity bands",
    )
    _add_config_args(info_parser)

    replay_parser = subparsers.add_parser(
        "replay",
        help="Replay recorded detections and report violations",
        description="Feed a JSONL recording (one frame of detections per line) through the engine.",
    )
    replay_parser.add_argument("path", help="Path to JSONL recording")
    _add_config_args(replay_parser)
    replay_parser.add_argument(
        "--realtime", action="store_true",
        help="Run through the scheduler at the configured tick interval",
    )
    replay_parser.add_argument("--json", action="store_true", help="Print final snapshot as JSON")
    _add_trace_args(replay_parser)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)

    from examwatch.cli import commands

    if args.command == "info":
        commands.run_info(args)

    elif args.command == "replay":
        commands.run_replay(args)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
