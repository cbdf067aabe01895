"""
nirirules Daemon

Connects to niri, subscribes to the event stream and feeds window events
to the rule engine over the event bus.
"""

from __future__ import annotations
import argparse
import logging
import math
import sys
import time
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional

from pubsub import pub

from . import topics
from .config import DaemonConfig, find_rule_file, load_rules, rule_file_candidates
from .connection import NiriSocket
from .dispatcher import ActionDispatcher
from .errors import StartupError, TransportError
from .protocol import Event, WindowClosed, WindowOpenedOrChanged, WindowsChanged
from .rule_engine import RuleEngine
from .rules import RuleSet

logger = logging.getLogger(__name__)


class DaemonState(Enum):
    """Lifecycle of the daemon."""

    CONNECTING = auto()
    SUBSCRIBING = auto()
    STREAMING = auto()
    TERMINATED = auto()


class NiriRulesDaemon:
    """
    nirirules daemon

    Owns the two compositor connections: the event stream is read on one,
    actions are sent on the other, so a pending read never blocks an
    acknowledgment.
    """

    def __init__(
        self,
        rules: RuleSet,
        config: Optional[DaemonConfig] = None,
        event_connection: Optional[NiriSocket] = None,
        action_connection: Optional[NiriSocket] = None,
    ):
        """Initialize the daemon.

        Architecture:
        1. Create the connections (not yet opened)
        2. Create components - they self-subscribe to events
        3. Run: connect, subscribe, then publish each event on the bus
        """
        self.config = config or DaemonConfig()
        self.rules = rules
        self.state = DaemonState.CONNECTING

        self.event_connection = event_connection or NiriSocket(self.config.socket_path)
        self.action_connection = action_connection or NiriSocket(
            self.config.socket_path, timeout=self.config.action_timeout
        )

        if self.config.debug:
            pub.subscribe(self.debug_event_logger, pub.ALL_TOPICS)

        self.dispatcher = ActionDispatcher(self.action_connection)
        self.rule_engine = RuleEngine(bus=pub, rules=rules, dispatcher=self.dispatcher)

    def debug_event_logger(self, topic=pub.AUTO_TOPIC, **kwargs):
        """Log all events published on the event bus."""
        timestamp = time.strftime("%H:%M:%S")
        topic_name = topic.getName()
        data_str = ", ".join(f"{k}={v}" for k, v in kwargs.items() if k != "topic")
        logger.debug("[%s] EVENT: %s | %s", timestamp, topic_name, data_str)

    def start(self):
        """Open both connections and subscribe to the event stream.

        Raises:
            StartupError: If either connection fails or the subscription
                is rejected
        """
        self.state = DaemonState.CONNECTING
        if not self.event_connection.connected:
            self.event_connection.connect()
        if not self.action_connection.connected:
            self.action_connection.connect()

        self.state = DaemonState.SUBSCRIBING
        self.event_connection.subscribe()

        self.state = DaemonState.STREAMING
        logger.info("Subscribed to niri event stream with %d rules", len(self.rules))

    def handle_event(self, event: Event):
        """Publish one decoded event on the bus."""
        if isinstance(event, WindowsChanged):
            pub.sendMessage(topics.WINDOWS_CHANGED, windows=event.windows)
        elif isinstance(event, WindowOpenedOrChanged):
            pub.sendMessage(topics.WINDOW_OPENED_OR_CHANGED, window=event.window)
        elif isinstance(event, WindowClosed):
            pub.sendMessage(topics.WINDOW_CLOSED, window_id=event.id)

    def run(self) -> int:
        """Run until the event stream ends.

        Returns:
            Process exit status
        """
        try:
            self.start()
        except StartupError as e:
            logger.error("%s", e)
            self.stop()
            return 1

        status = 0
        try:
            for event in self.event_connection.read_events():
                self.handle_event(event)
            logger.info("niri closed the event stream")
            pub.sendMessage(topics.STREAM_ENDED)
        except TransportError as e:
            logger.error("%s", e)
            status = 1
        finally:
            self.stop()
        return status

    def stop(self):
        """Close both connections."""
        self.event_connection.close()
        self.action_connection.close()
        self.state = DaemonState.TERMINATED


def _timeout(value: str) -> float:
    """argparse type for --action-timeout: a non-negative number of seconds."""
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if not math.isfinite(seconds) or seconds < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative number: {value}")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    search_order = "\n".join(f"  {p}" for p in rule_file_candidates())
    parser = argparse.ArgumentParser(
        prog="nirirules",
        description="Apply window rules to niri windows as they open and change.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Without --rules, the first existing file is used:\n{search_order}",
    )
    parser.add_argument(
        "-r",
        "--rules",
        type=Path,
        metavar="FILE",
        help="Rule file (TOML)",
    )
    parser.add_argument(
        "--action-timeout",
        type=_timeout,
        default=5.0,
        metavar="SECONDS",
        help="Seconds to wait for niri to acknowledge an action; 0 waits forever (default: 5)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = DaemonConfig(
        rules_path=args.rules,
        action_timeout=args.action_timeout or None,
    )
    if args.verbose:
        config.debug = True

    # NIRIRULES_DEBUG turns on the bus tracer, which logs at DEBUG
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config.rules_path = find_rule_file(config.rules_path)
        rules = load_rules(config.rules_path)
    except StartupError as e:
        logger.error("%s", e)
        return 1

    daemon = NiriRulesDaemon(rules, config)
    try:
        return daemon.run()
    except KeyboardInterrupt:
        daemon.stop()
        return 130


if __name__ == "__main__":
    sys.exit(main())
