"""Risk level from the total violation count.

Bands are inclusive lower bounds, checked highest first.
"""

from __future__ import annotations

from typing import Tuple

from examwatch.types import Severity

SEVERITY_BANDS: Tuple[Tuple[int, Severity], ...] = (
    (20, Severity.CRITICAL),
    (15, Severity.HIGH_RISK),
    (8, Severity.MEDIUM_RISK),
    (3, Severity.LOW_RISK),
    (0, Severity.NORMAL),
)


def classify_severity(total: int) -> Severity:
    """Map a total violation count to a Severity."""
    if total < 0:
        raise ValueError(f"total must be non-negative, got {total}")
    for lower, severity in SEVERITY_BANDS:
        if total >= lower:
            return severity
    return Severity.NORMAL


__all__ = ["SEVERITY_BANDS", "classify_severity"]
