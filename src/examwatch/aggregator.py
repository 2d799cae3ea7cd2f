"""Violation aggregation with edge-triggered counters.

The aggregator is the only fusion point between classifier outputs and
violation statistics. Per tick, for every kind:

- false -> true: count += 1, transition(active=True)
- true -> false: transition(active=False), count unchanged
- unchanged: no transition

A full six-element status list is produced every tick regardless of
edges, so consumers that want a per-tick snapshot get one.

Invariant: ``count[kind]`` equals the number of false->true edges of
that kind since the last ``reset()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

from examwatch.severity import classify_severity
from examwatch.types import (
    EngineSnapshot,
    TransitionEvent,
    ViolationKind,
    ViolationStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationPlan:
    """Pending result of one tick, applied with ``commit()``."""

    statuses: Tuple[ViolationStatus, ...]
    transitions: Tuple[TransitionEvent, ...]
    next_active: Mapping[ViolationKind, bool]
    next_counts: Mapping[ViolationKind, int]


class ViolationAggregator:
    """Per-kind active flags and monotonic counters.

    Example:
        >>> agg = ViolationAggregator()
        >>> statuses, transitions = agg.update(outputs, tick_id=1, timestamp=time.time())
        >>> agg.snapshot().severity
    """

    def __init__(self):
        self._active: Dict[ViolationKind, bool] = {k: False for k in ViolationKind}
        self._counts: Dict[ViolationKind, int] = {k: 0 for k in ViolationKind}

    @property
    def counts(self) -> Dict[ViolationKind, int]:
        return dict(self._counts)

    @property
    def active(self) -> Dict[ViolationKind, bool]:
        return dict(self._active)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def plan(
        self,
        outputs: Mapping[ViolationKind, bool],
        tick_id: int = 0,
        timestamp: float = 0.0,
    ) -> AggregationPlan:
        """Compute statuses, transitions and next state without mutating.

        Raises:
            ValueError: If ``outputs`` does not cover every kind.
        """
        missing = [k.value for k in ViolationKind if k not in outputs]
        if missing:
            raise ValueError(f"missing classifier outputs: {', '.join(missing)}")

        statuses = []
        transitions = []
        next_active = dict(self._active)
        next_counts = dict(self._counts)

        for kind in ViolationKind:
            new_active = bool(outputs[kind])
            old_active = self._active[kind]

            if new_active and not old_active:
                next_counts[kind] += 1
                transitions.append(TransitionEvent(kind, True, timestamp, tick_id))
            elif old_active and not new_active:
                transitions.append(TransitionEvent(kind, False, timestamp, tick_id))

            next_active[kind] = new_active
            statuses.append(ViolationStatus(kind, new_active))

        return AggregationPlan(
            statuses=tuple(statuses),
            transitions=tuple(transitions),
            next_active=next_active,
            next_counts=next_counts,
        )

    def commit(self, plan: AggregationPlan) -> None:
        self._active = dict(plan.next_active)
        self._counts = dict(plan.next_counts)
        for event in plan.transitions:
            logger.debug(
                "tick %d: %s -> %s (count=%d)",
                event.tick_id, event.kind.value,
                "active" if event.active else "cleared",
                self._counts[event.kind],
            )

    def update(
        self,
        outputs: Mapping[ViolationKind, bool],
        tick_id: int = 0,
        timestamp: float = 0.0,
    ) -> Tuple[Tuple[ViolationStatus, ...], Tuple[TransitionEvent, ...]]:
        """Apply one tick of classifier outputs.

        Returns:
            (statuses, transitions)
        """
        plan = self.plan(outputs, tick_id, timestamp)
        self.commit(plan)
        return plan.statuses, plan.transitions

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            counts=self._counts,
            active=self._active,
            severity=classify_severity(self.total),
        )

    def reset(self) -> None:
        """Zero all counts and clear all active flags."""
        self._active = {k: False for k in ViolationKind}
        self._counts = {k: 0 for k in ViolationKind}


__all__ = ["AggregationPlan", "ViolationAggregator"]
