"""
Event Topics for nirirules

All pub/sub topics are defined here for easy discovery and documentation.
Topic naming convention: <category>.<action>

The daemon decodes compositor events and publishes them on these topics;
components subscribe to the ones they care about.
"""

# Window events (bridged from the compositor event stream)
WINDOWS_CHANGED = "window.changed"
"""Published with the full window list. Params: windows"""

WINDOW_OPENED_OR_CHANGED = "window.opened_or_changed"
"""Published when a window opens or one of its attributes changes. Params: window"""

WINDOW_CLOSED = "window.closed"
"""Published when a window is closed. Params: window_id"""

# Rule engine notifications
RULE_MATCHED = "rule.matched"
"""Published before a rule's actions are sent. Params: rule_index, window"""

ACTION_FAILED = "action.failed"
"""Published when an action for a rule match was rejected. Params: rule_index, window, error"""

# Lifecycle events
STREAM_ENDED = "stream.ended"
"""Published when the compositor closes the event stream."""
