"""
Window Rules

Matchers, rules and the compiled rule set, plus the evaluation that
decides whether a rule applies to a window.

Patterns are compiled once when the rule set is built; evaluation never
touches the regex compiler.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Sequence, Tuple

from .protocol import SizeChange, Window


class PatternError(ValueError):
    """A matcher pattern that does not compile."""

    def __init__(self, attr: str, pattern: str, reason: str):
        self.attr = attr
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"invalid {attr} pattern {pattern!r}: {reason}")


def _compile_pattern(attr: str, pattern: Optional[str]) -> Optional[re.Pattern]:
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError(attr, pattern, str(e)) from e


@dataclass(frozen=True)
class Matcher:
    """A predicate over a window's attributes.

    Unset fields are wildcards. A matcher with no fields set matches
    every window.
    """

    app_id: Optional[re.Pattern] = None
    title: Optional[re.Pattern] = None
    is_focused: Optional[bool] = None
    is_floating: Optional[bool] = None
    is_urgent: Optional[bool] = None

    @classmethod
    def compile(
        cls,
        app_id: Optional[str] = None,
        title: Optional[str] = None,
        is_focused: Optional[bool] = None,
        is_floating: Optional[bool] = None,
        is_urgent: Optional[bool] = None,
    ) -> "Matcher":
        """Build a matcher from pattern strings.

        Raises:
            PatternError: If a pattern is invalid
        """
        return cls(
            app_id=_compile_pattern("app_id", app_id),
            title=_compile_pattern("title", title),
            is_focused=is_focused,
            is_floating=is_floating,
            is_urgent=is_urgent,
        )

    def matches(self, window: Window) -> bool:
        if self.app_id is not None and not self.app_id.search(window.app_id or ""):
            return False
        if self.title is not None and not self.title.search(window.title or ""):
            return False
        if self.is_focused is not None and window.is_focused != self.is_focused:
            return False
        if self.is_floating is not None and window.is_floating != self.is_floating:
            return False
        if self.is_urgent is not None and window.is_urgent != self.is_urgent:
            return False
        return True


class Placement(Enum):
    """Where a matched window is moved."""

    FLOAT = "float"
    TILE = "tile"


@dataclass(frozen=True)
class Actions:
    """What to do with a matched window. Unset fields do nothing."""

    placement: Optional[Placement] = None
    column_width: Optional[SizeChange] = None
    row_height: Optional[SizeChange] = None
    spawn: Optional[str] = None

    @property
    def empty(self) -> bool:
        return (
            self.placement is None
            and self.column_width is None
            and self.row_height is None
            and self.spawn is None
        )


@dataclass(frozen=True)
class Rule:
    """Exclude matchers, include matchers and the actions to run."""

    includes: Tuple[Matcher, ...] = ()
    excludes: Tuple[Matcher, ...] = ()
    actions: Actions = field(default_factory=Actions)


def applies(window: Window, rule: Rule) -> bool:
    """Check whether a rule applies to a window.

    Excludes win outright: if any exclude matcher matches, the includes are
    not consulted. Otherwise at least one include matcher must match, so a
    rule without includes never applies.
    """
    if any(m.matches(window) for m in rule.excludes):
        return False
    return any(m.matches(window) for m in rule.includes)


class RuleSet:
    """Ordered, immutable collection of rules.

    Every rule is evaluated independently; a rule's position is its
    identity for deduplication.
    """

    def __init__(self, rules: Sequence[Rule] = ()):
        self._rules: Tuple[Rule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def matching(self, window: Window) -> Iterator[Tuple[int, Rule]]:
        """Yield (index, rule) for every rule that applies to the window."""
        for index, rule in enumerate(self._rules):
            if applies(window, rule):
                yield index, rule

    def __repr__(self) -> str:
        return f"RuleSet({len(self._rules)} rules)"
