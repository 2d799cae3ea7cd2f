"""CLI command handlers."""

from examwatch.cli.commands.info import run_info
from examwatch.cli.commands.replay import run_replay

__all__ = [
    "run_info",
    "run_replay",
]
