"""
Dedup Tracker

Remembers which windows each rule has already acted on, so a rule fires
at most once per window between the window opening and closing.
"""

from __future__ import annotations
from typing import Dict, FrozenSet, Set


class DedupTracker:
    """Per-rule record of window ids that have been actioned."""

    def __init__(self):
        self._fired: Dict[int, Set[int]] = {}

    def should_fire(self, rule_index: int, window_id: int) -> bool:
        """Check whether a rule may act on a window, recording it if so.

        Returns:
            True the first time for a (rule, window) pair, False afterwards
            until the window is forgotten
        """
        fired = self._fired.setdefault(rule_index, set())
        if window_id in fired:
            return False
        fired.add(window_id)
        return True

    def forget(self, window_id: int):
        """Drop a closed window from every rule's record."""
        for fired in self._fired.values():
            fired.discard(window_id)

    def fired(self, rule_index: int) -> FrozenSet[int]:
        """Window ids a rule has acted on."""
        return frozenset(self._fired.get(rule_index, ()))

    def __contains__(self, window_id: int) -> bool:
        return any(window_id in fired for fired in self._fired.values())

    def __len__(self) -> int:
        """Number of recorded (rule, window) pairs."""
        return sum(len(fired) for fired in self._fired.values())
