"""
nirirules

A window rule daemon for the niri Wayland compositor.

This package provides:
- Matchers and rules over window attributes and state
- A per-rule dedup tracker so each rule acts once per window
- An action dispatcher for float/tile placement, resizing and spawning
- Bindings for the niri IPC socket and event stream
- A daemon tying them together over an event bus

Example usage:
    from pathlib import Path
    from nirirules import NiriRulesDaemon, load_rules

    rules = load_rules(Path("~/.config/nirirules/rules.toml").expanduser())
    NiriRulesDaemon(rules).run()

Or run directly:
    python -m nirirules --rules rules.toml
"""

__version__ = "0.1.0"

from .protocol import (
    Window,
    SizeChange,
    SizeChangeKind,
    Action,
    MoveWindowToFloating,
    MoveWindowToTiling,
    SetWindowWidth,
    SetWindowHeight,
    SpawnSh,
)

from .errors import (
    NiriRulesError,
    StartupError,
    RuleFileError,
    MatcherCompileError,
    ActionDispatchError,
)

from .rules import Matcher, PatternError, Placement, Actions, Rule, RuleSet, applies
from .tracker import DedupTracker
from .dispatcher import ActionDispatcher, build_actions, render_command
from .connection import NiriSocket
from .config import DaemonConfig, load_rules, find_rule_file
from .rule_engine import RuleEngine
from .daemon import NiriRulesDaemon, DaemonState, main

from . import topics

__all__ = [
    # Version
    "__version__",
    # Protocol types
    "Window",
    "SizeChange",
    "SizeChangeKind",
    "Action",
    "MoveWindowToFloating",
    "MoveWindowToTiling",
    "SetWindowWidth",
    "SetWindowHeight",
    "SpawnSh",
    # Errors
    "NiriRulesError",
    "StartupError",
    "RuleFileError",
    "MatcherCompileError",
    "ActionDispatchError",
    # Rules
    "Matcher",
    "PatternError",
    "Placement",
    "Actions",
    "Rule",
    "RuleSet",
    "applies",
    "DedupTracker",
    # Dispatch
    "ActionDispatcher",
    "build_actions",
    "render_command",
    # Connection
    "NiriSocket",
    # Configuration
    "DaemonConfig",
    "load_rules",
    "find_rule_file",
    # Daemon
    "RuleEngine",
    "NiriRulesDaemon",
    "DaemonState",
    "main",
    # Event topics
    "topics",
]
