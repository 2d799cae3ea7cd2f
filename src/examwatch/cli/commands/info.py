"""Info command for examwatch CLI.

Shows thresholds, violation kinds and severity bands.
"""

import sys

from examwatch.cli.utils import load_config
from examwatch.errors import ConfigurationError
from examwatch.severity import SEVERITY_BANDS
from examwatch.types import ViolationKind


def run_info(args):
    """Show the effective configuration and the violation taxonomy."""
    from examwatch import __version__

    try:
        config = load_config(getattr(args, "config", None))
    except (OSError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print("examwatch - System Information")
    print("=" * 60)
    print(f"  examwatch: {__version__}")

    print("\n[Thresholds]")
    print("-" * 60)
    for name, value in config.to_dict().items():
        print(f"  {name:<24} {value}")

    print("\n[Violation Kinds]")
    print("-" * 60)
    for kind in ViolationKind:
        print(f"  {kind.value:<16} {kind.label}")

    print("\n[Severity Bands]")
    print("-" * 60)
    for lower, severity in SEVERITY_BANDS:
        print(f"  total >= {lower:<3} {severity.value:<12} {severity.description}")
