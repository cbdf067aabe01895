"""
Rule Engine

Applies the rule set to windows as window events arrive on the bus.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Iterable, Optional

from .errors import ActionDispatchError
from .tracker import DedupTracker

if TYPE_CHECKING:
    from .dispatcher import ActionDispatcher
    from .protocol import Window
    from .rules import RuleSet

logger = logging.getLogger(__name__)


class RuleEngine:
    """Evaluates rules for every observed window and dispatches matches.

    This component subscribes to the window topics the daemon publishes.

    Responsibilities:
    - WINDOWS_CHANGED: evaluate every window in the list
    - WINDOW_OPENED_OR_CHANGED: evaluate the window
    - WINDOW_CLOSED: forget the window so its id can fire again
    """

    def __init__(
        self,
        bus,
        rules: "RuleSet",
        dispatcher: "ActionDispatcher",
        tracker: Optional[DedupTracker] = None,
    ):
        """Initialize the rule engine.

        Args:
            bus: Event bus instance (Pypubsub)
            rules: Compiled rule set
            dispatcher: Dispatcher for matched rules
            tracker: Dedup tracker (a fresh one if None)
        """
        self.bus = bus
        self.rules = rules
        self.dispatcher = dispatcher
        self.tracker = tracker if tracker is not None else DedupTracker()
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        """Subscribe to window events."""
        from pubsub import pub
        from . import topics

        pub.subscribe(self._on_windows_changed, topics.WINDOWS_CHANGED)
        pub.subscribe(self._on_window_opened_or_changed, topics.WINDOW_OPENED_OR_CHANGED)
        pub.subscribe(self._on_window_closed, topics.WINDOW_CLOSED)

    def _on_windows_changed(self, windows: Iterable["Window"]):
        for window in windows:
            self.process_window(window)

    def _on_window_opened_or_changed(self, window: "Window"):
        self.process_window(window)

    def _on_window_closed(self, window_id: int):
        self.tracker.forget(window_id)

    def process_window(self, window: "Window") -> int:
        """Run every applicable rule that has not yet fired for this window.

        A failed action stops the remaining actions of that rule only; later
        rules for the same window still run.

        Returns:
            Number of rules that fired
        """
        from pubsub import pub
        from . import topics

        fired = 0
        for index, rule in self.rules.matching(window):
            if not self.tracker.should_fire(index, window.id):
                continue

            fired += 1
            logger.info(
                "Rule %d matched window %d (app_id=%r, title=%r)",
                index,
                window.id,
                window.app_id,
                window.title,
            )
            pub.sendMessage(topics.RULE_MATCHED, rule_index=index, window=window)

            try:
                self.dispatcher.dispatch(window, rule.actions)
            except ActionDispatchError as e:
                logger.error("Rule %d on window %d: %s", index, window.id, e)
                pub.sendMessage(
                    topics.ACTION_FAILED, rule_index=index, window=window, error=e
                )
        return fired
