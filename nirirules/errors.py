"""
Error types for nirirules.

StartupError and its subclasses end the process. ActionDispatchError is
raised per action and is recovered from by the rule engine.
"""

from __future__ import annotations
from typing import Optional


class NiriRulesError(Exception):
    """Base class for all nirirules errors."""


class StartupError(NiriRulesError):
    """Fatal error before the event stream is running."""


class RuleFileError(StartupError):
    """The rule file is unreadable or malformed."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class MatcherCompileError(RuleFileError):
    """A matcher pattern in the rule file is not a valid regular expression."""

    def __init__(
        self,
        path: str,
        rule_index: int,
        section: str,
        matcher_index: int,
        field: str,
        pattern: str,
        reason: str,
    ):
        self.rule_index = rule_index
        self.section = section
        self.matcher_index = matcher_index
        self.field = field
        self.pattern = pattern
        super().__init__(
            path,
            f"rule {rule_index}, {section} matcher {matcher_index}: "
            f"invalid {field} pattern {pattern!r}: {reason}",
        )


class ConnectionClosed(NiriRulesError):
    """The compositor closed the socket."""


class TransportError(NiriRulesError):
    """A send, receive, or decode failure on a compositor socket."""


class ActionDispatchError(NiriRulesError):
    """An action was not acknowledged by the compositor."""

    def __init__(self, action: object, reason: str, window_id: Optional[int] = None):
        self.action = action
        self.reason = reason
        self.window_id = window_id
        super().__init__(f"{action!r} failed: {reason}")
