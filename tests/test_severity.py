"""Tests for severity bands."""

import pytest

from examwatch.severity import classify_severity
from examwatch.types import Severity


@pytest.mark.parametrize(
    "total,expected",
    [
        (0, Severity.NORMAL),
        (2, Severity.NORMAL),
        (3, Severity.LOW_RISK),
        (7, Severity.LOW_RISK),
        (8, Severity.MEDIUM_RISK),
        (14, Severity.MEDIUM_RISK),
        (15, Severity.HIGH_RISK),
        (19, Severity.HIGH_RISK),
        (20, Severity.CRITICAL),
        (250, Severity.CRITICAL),
    ],
)
def test_band_boundaries(total, expected):
    assert classify_severity(total) == expected


def test_negative_total_rejected():
    with pytest.raises(ValueError):
        classify_severity(-1)


def test_monotonic():
    order = list(Severity)
    levels = [order.index(classify_severity(n)) for n in range(40)]
    assert levels == sorted(levels)


def test_labels():
    assert Severity.CRITICAL.value == "Critical"
    assert Severity.NORMAL.description
