"""
Action Dispatcher

Turns a rule match into compositor actions and sends them one at a time,
each acknowledged before the next goes out.
"""

from __future__ import annotations
import logging
import re
from typing import TYPE_CHECKING, List

from .errors import ActionDispatchError, TransportError
from .protocol import (
    Action,
    MoveWindowToFloating,
    MoveWindowToTiling,
    SetWindowHeight,
    SetWindowWidth,
    SpawnSh,
    Window,
)
from .rules import Actions, Placement

if TYPE_CHECKING:
    from .connection import NiriSocket

logger = logging.getLogger(__name__)

# Spawn template placeholders
ID_PLACEHOLDER = "{id}"
TITLE_PLACEHOLDER = "{title}"
APP_ID_PLACEHOLDER = "{app_id}"
PID_PLACEHOLDER = "{pid}"

_PLACEHOLDER_RE = re.compile(
    "|".join(
        re.escape(p)
        for p in (ID_PLACEHOLDER, TITLE_PLACEHOLDER, APP_ID_PLACEHOLDER, PID_PLACEHOLDER)
    )
)


def render_command(template: str, window: Window) -> str:
    """Substitute window attributes into a spawn command template.

    Replacement is literal and covers every occurrence. The template is
    scanned once, so placeholders inside a substituted value stay as they
    are. Missing title, app id or pid become empty strings.

    Values are not shell-quoted.
    """
    values = {
        ID_PLACEHOLDER: str(window.id),
        TITLE_PLACEHOLDER: window.title or "",
        APP_ID_PLACEHOLDER: window.app_id or "",
        PID_PLACEHOLDER: str(window.pid) if window.pid is not None else "",
    }
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(0)], template)


def build_actions(window: Window, actions: Actions) -> List[Action]:
    """Build the ordered action list for a matched window.

    Order is placement, column width, row height, spawn. Sizing follows
    placement because floating and tiled windows size differently, and the
    spawned command sees the window in its final state.
    """
    result: List[Action] = []
    if actions.placement is Placement.FLOAT:
        result.append(MoveWindowToFloating(id=window.id))
    elif actions.placement is Placement.TILE:
        result.append(MoveWindowToTiling(id=window.id))
    if actions.column_width is not None:
        result.append(SetWindowWidth(id=window.id, change=actions.column_width))
    if actions.row_height is not None:
        result.append(SetWindowHeight(id=window.id, change=actions.row_height))
    if actions.spawn is not None:
        result.append(SpawnSh(command=render_command(actions.spawn, window)))
    return result


class ActionDispatcher:
    """Sends a rule's actions over the action connection."""

    def __init__(self, connection: "NiriSocket"):
        """Initialize the dispatcher.

        Args:
            connection: Connection used only for actions, never for events
        """
        self.connection = connection

    def dispatch(self, window: Window, actions: Actions) -> List[Action]:
        """Send the actions for a matched window.

        Returns:
            The actions that were sent, in order

        Raises:
            ActionDispatchError: On the first action that fails; the
                remaining actions are not sent
        """
        sent: List[Action] = []
        for action in build_actions(window, actions):
            try:
                reply = self.connection.send(action)
            except TransportError as e:
                raise ActionDispatchError(action, str(e), window.id) from e
            if not reply.handled:
                raise ActionDispatchError(
                    action, reply.error or f"unexpected reply {reply.response!r}", window.id
                )
            logger.debug("Sent %s", action)
            sent.append(action)
        return sent
