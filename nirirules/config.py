"""
Configuration

Daemon settings and the rule file loader.

Rule files are TOML:

    [[rule]]
    open-floating = true
    spawn = "notify-send 'floated window {id}'"

      [[rule.match]]
      app-id = "^librewolf$"
      title = ".*Bitwarden.*"

      [[rule.exclude]]
      is-focused = false

The document is checked against RULE_FILE_SCHEMA before any pattern is
compiled.

Warning: spawn placeholders are pasted into a shell command without
quoting. {title} and {app_id} come from the client, so a crafted title
can inject shell syntax; only {id} and {pid} are always numeric.
"""

from __future__ import annotations
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema

from .errors import MatcherCompileError, RuleFileError
from .protocol import SizeChange
from .rules import Actions, Matcher, PatternError, Placement, Rule, RuleSet

logger = logging.getLogger(__name__)

CONFIG_ENV = "NIRIRULES_CONFIG"
DEBUG_ENV = "NIRIRULES_DEBUG"
RULES_FILE_NAME = "rules.toml"

_MATCHER_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "app-id": {"type": "string"},
        "title": {"type": "string"},
        "is-focused": {"type": "boolean"},
        "is-urgent": {"type": "boolean"},
        "is-floating": {"type": "boolean"},
    },
    "additionalProperties": False,
}

_SIZE_SCHEMA: Dict[str, Any] = {"type": ["integer", "string"]}

RULE_FILE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "rule": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "match": {"type": "array", "items": _MATCHER_SCHEMA},
                    "exclude": {"type": "array", "items": _MATCHER_SCHEMA},
                    "open-floating": {"type": "boolean"},
                    "default-column-width": _SIZE_SCHEMA,
                    "default-row-height": _SIZE_SCHEMA,
                    "spawn": {"type": "string"},
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}

# Matcher fields -> pattern keys in the rule file
_PATTERN_KEYS = {"app_id": "app-id", "title": "title"}


@dataclass
class DaemonConfig:
    """Daemon configuration."""

    # Rule file; searched for with rule_file_candidates() when None
    rules_path: Optional[Path] = None

    # Compositor socket; $NIRI_SOCKET when None
    socket_path: Optional[str] = None

    # Seconds to wait for an action acknowledgment, None to wait forever
    action_timeout: Optional[float] = 5.0

    # Log every bus message
    debug: bool = field(default_factory=lambda: bool(os.getenv(DEBUG_ENV)))


def rule_file_candidates() -> List[Path]:
    """Paths searched for the rule file, in order."""
    candidates = []
    if os.getenv(CONFIG_ENV):
        candidates.append(Path(os.environ[CONFIG_ENV]))
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        candidates.append(Path(xdg_config) / "nirirules" / RULES_FILE_NAME)
    candidates.append(Path.home() / ".config" / "nirirules" / RULES_FILE_NAME)
    candidates.append(Path(RULES_FILE_NAME))
    return candidates


def find_rule_file(explicit: Optional[Path] = None) -> Path:
    """Resolve the rule file to load.

    Args:
        explicit: Path given on the command line; used as-is

    Raises:
        RuleFileError: If no candidate exists
    """
    if explicit is not None:
        return explicit

    candidates = rule_file_candidates()
    for path in candidates:
        if path.is_file():
            return path

    searched = ", ".join(str(p) for p in candidates)
    raise RuleFileError(RULES_FILE_NAME, f"no rule file found (searched {searched})")


def load_rules(path: Path) -> RuleSet:
    """Read, validate and compile a rule file.

    Raises:
        RuleFileError: If the file is unreadable, not TOML or fails validation
        MatcherCompileError: If a pattern does not compile
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise RuleFileError(str(path), f"cannot read: {e.strerror or e}") from e
    except tomllib.TOMLDecodeError as e:
        raise RuleFileError(str(path), f"invalid TOML: {e}") from e

    rules = build_rule_set(data, str(path))
    logger.info("Loaded %d rules from %s", len(rules), path)
    return rules


def validate_rule_document(data: Dict[str, Any], path: str = "<rules>"):
    """Check a parsed rule document against RULE_FILE_SCHEMA.

    Raises:
        RuleFileError: Describing the first error in document order
    """
    validator = jsonschema.Draft7Validator(RULE_FILE_SCHEMA)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    if errors:
        error = errors[0]
        raise RuleFileError(path, f"{_format_location(error.absolute_path)}: {error.message}")


def build_rule_set(data: Dict[str, Any], path: str = "<rules>") -> RuleSet:
    """Compile a parsed rule document into a RuleSet."""
    validate_rule_document(data, path)

    rules = []
    for index, rule_data in enumerate(data.get("rule", [])):
        rule = Rule(
            includes=_compile_matchers(rule_data.get("match", []), path, index, "match"),
            excludes=_compile_matchers(
                rule_data.get("exclude", []), path, index, "exclude"
            ),
            actions=_build_actions(rule_data, path, index),
        )
        if not rule.includes:
            logger.warning("%s: rule %d has no match entries and will never apply", path, index)
        elif rule.actions.empty:
            logger.warning("%s: rule %d has no actions", path, index)
        rules.append(rule)

    if not rules:
        logger.warning("%s: no rules defined", path)
    return RuleSet(rules)


def _compile_matchers(
    entries: List[Dict[str, Any]], path: str, rule_index: int, section: str
) -> Tuple[Matcher, ...]:
    matchers = []
    for matcher_index, entry in enumerate(entries):
        try:
            matcher = Matcher.compile(
                app_id=entry.get("app-id"),
                title=entry.get("title"),
                is_focused=entry.get("is-focused"),
                is_floating=entry.get("is-floating"),
                is_urgent=entry.get("is-urgent"),
            )
        except PatternError as e:
            raise MatcherCompileError(
                path,
                rule_index,
                section,
                matcher_index,
                _PATTERN_KEYS[e.attr],
                e.pattern,
                e.reason,
            ) from e
        matchers.append(matcher)
    return tuple(matchers)


def _build_actions(rule_data: Dict[str, Any], path: str, rule_index: int) -> Actions:
    placement = None
    if "open-floating" in rule_data:
        placement = Placement.FLOAT if rule_data["open-floating"] else Placement.TILE

    sizes = {}
    for key in ("default-column-width", "default-row-height"):
        if key in rule_data:
            try:
                sizes[key] = SizeChange.parse(rule_data[key])
            except ValueError as e:
                raise RuleFileError(path, f"rule {rule_index}, {key}: {e}") from e

    return Actions(
        placement=placement,
        column_width=sizes.get("default-column-width"),
        row_height=sizes.get("default-row-height"),
        spawn=rule_data.get("spawn"),
    )


def _format_location(parts) -> str:
    location = ""
    for part in parts:
        location += f"[{part}]" if isinstance(part, int) else (f".{part}" if location else part)
    return location or "document"
