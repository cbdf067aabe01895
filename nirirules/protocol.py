"""
niri IPC Protocol Bindings

Python types for the parts of the niri IPC protocol nirirules speaks:
the window snapshot, the actions it sends, the replies it reads and the
events it receives on the event stream.

Every message on the socket is a single line of JSON.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union


class ProtocolError(ValueError):
    """A message from the compositor could not be decoded."""


@dataclass(frozen=True)
class Window:
    """Snapshot of one compositor window at event time."""

    id: int
    title: Optional[str] = None
    app_id: Optional[str] = None
    pid: Optional[int] = None
    is_focused: bool = False
    is_floating: bool = False
    is_urgent: bool = False

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Window":
        """Build a window from its JSON object. Unknown keys are ignored."""
        if not isinstance(data, dict) or not isinstance(data.get("id"), int):
            raise ProtocolError(f"Invalid window object: {data!r}")
        return cls(
            id=data["id"],
            title=data.get("title"),
            app_id=data.get("app_id"),
            pid=data.get("pid"),
            is_focused=bool(data.get("is_focused", False)),
            is_floating=bool(data.get("is_floating", False)),
            is_urgent=bool(data.get("is_urgent", False)),
        )


class SizeChangeKind(Enum):
    """How a size value is applied."""

    SET_FIXED = "SetFixed"
    SET_PROPORTION = "SetProportion"
    ADJUST_FIXED = "AdjustFixed"
    ADJUST_PROPORTION = "AdjustProportion"


@dataclass(frozen=True)
class SizeChange:
    """A width or height change.

    Parsed from the same syntax niri uses for its size actions:

    - "800"   set to 800 logical pixels
    - "+10"   grow by 10 logical pixels
    - "50%"   set to 50% of the available space
    - "-10%"  shrink by 10% of the available space

    A bare integer is a signed pixel delta.
    """

    kind: SizeChangeKind
    value: Union[int, float]

    @classmethod
    def parse(cls, value: Union[int, str]) -> "SizeChange":
        if isinstance(value, bool):
            raise ValueError(f"Invalid size change: {value!r}")
        if isinstance(value, int):
            return cls(SizeChangeKind.ADJUST_FIXED, value)
        if not isinstance(value, str):
            raise ValueError(f"Invalid size change: {value!r}")

        text = value.strip()
        relative = text.startswith(("+", "-"))
        try:
            if text.endswith("%"):
                amount: Union[int, float] = float(text[:-1])
                kind = (
                    SizeChangeKind.ADJUST_PROPORTION
                    if relative
                    else SizeChangeKind.SET_PROPORTION
                )
            else:
                amount = int(text)
                kind = (
                    SizeChangeKind.ADJUST_FIXED if relative else SizeChangeKind.SET_FIXED
                )
        except ValueError:
            raise ValueError(f"Invalid size change: {value!r}") from None
        return cls(kind, amount)

    def to_json(self) -> Dict[str, Union[int, float]]:
        return {self.kind.value: self.value}


class Action:
    """Base class for actions sent to the compositor."""

    name: ClassVar[str] = ""

    def arguments(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_json(self) -> Dict[str, Any]:
        return {self.name: self.arguments()}


@dataclass(frozen=True)
class MoveWindowToFloating(Action):
    name: ClassVar[str] = "MoveWindowToFloating"

    id: int

    def arguments(self) -> Dict[str, Any]:
        return {"id": self.id}


@dataclass(frozen=True)
class MoveWindowToTiling(Action):
    name: ClassVar[str] = "MoveWindowToTiling"

    id: int

    def arguments(self) -> Dict[str, Any]:
        return {"id": self.id}


@dataclass(frozen=True)
class SetWindowWidth(Action):
    """Change the width of the column holding the window."""

    name: ClassVar[str] = "SetWindowWidth"

    id: int
    change: SizeChange

    def arguments(self) -> Dict[str, Any]:
        return {"id": self.id, "change": self.change.to_json()}


@dataclass(frozen=True)
class SetWindowHeight(Action):
    """Change the height of the window within its column."""

    name: ClassVar[str] = "SetWindowHeight"

    id: int
    change: SizeChange

    def arguments(self) -> Dict[str, Any]:
        return {"id": self.id, "change": self.change.to_json()}


@dataclass(frozen=True)
class SpawnSh(Action):
    """Run a command through the shell."""

    name: ClassVar[str] = "SpawnSh"

    command: str

    def arguments(self) -> Dict[str, Any]:
        return {"command": self.command}


EVENT_STREAM = "EventStream"


def encode_request(request: Union[str, Action]) -> bytes:
    """Encode a request as one line of JSON.

    Args:
        request: EVENT_STREAM or an Action

    Returns:
        Newline-terminated UTF-8 bytes
    """
    if isinstance(request, Action):
        payload: Any = {"Action": request.to_json()}
    else:
        payload = request
    return (json.dumps(payload) + "\n").encode("utf-8")


@dataclass(frozen=True)
class Reply:
    """Reply to a request: either Ok(response) or Err(message)."""

    ok: bool
    response: Any = None
    error: Optional[str] = None

    @property
    def handled(self) -> bool:
        """True for the plain acknowledgment niri gives actions and EventStream."""
        return self.ok and self.response == "Handled"


def decode_reply(line: Union[str, bytes]) -> Reply:
    """Decode a reply line."""
    data = _load(line)
    if isinstance(data, dict) and len(data) == 1:
        if "Ok" in data:
            return Reply(ok=True, response=data["Ok"])
        if "Err" in data:
            return Reply(ok=False, error=str(data["Err"]))
    raise ProtocolError(f"Unexpected reply: {data!r}")


@dataclass(frozen=True)
class Event:
    """Base class for decoded event-stream messages."""

    kind: ClassVar[str] = ""


@dataclass(frozen=True)
class WindowsChanged(Event):
    kind: ClassVar[str] = "WindowsChanged"

    windows: Tuple[Window, ...] = ()


@dataclass(frozen=True)
class WindowOpenedOrChanged(Event):
    kind: ClassVar[str] = "WindowOpenedOrChanged"

    window: Optional[Window] = None


@dataclass(frozen=True)
class WindowClosed(Event):
    kind: ClassVar[str] = "WindowClosed"

    id: int = 0


@dataclass(frozen=True)
class OtherEvent(Event):
    """Any event kind nirirules does not act on."""

    name: str = ""
    payload: Any = field(default=None, compare=False)


def decode_event(line: Union[str, bytes]) -> Event:
    """Decode one event-stream line."""
    data = _load(line)
    if isinstance(data, str):
        return OtherEvent(name=data)
    if not isinstance(data, dict) or len(data) != 1:
        raise ProtocolError(f"Unexpected event: {data!r}")

    (name, body), = data.items()
    try:
        if name == WindowsChanged.kind:
            return WindowsChanged(
                windows=tuple(Window.from_json(w) for w in body["windows"])
            )
        if name == WindowOpenedOrChanged.kind:
            return WindowOpenedOrChanged(window=Window.from_json(body["window"]))
        if name == WindowClosed.kind:
            window_id = body["id"]
            if not isinstance(window_id, int):
                raise ProtocolError(f"Invalid window id: {window_id!r}")
            return WindowClosed(id=window_id)
    except (KeyError, TypeError) as e:
        raise ProtocolError(f"Malformed {name} event: {e}") from e
    return OtherEvent(name=name, payload=body)


def _load(line: Union[str, bytes]) -> Any:
    try:
        return json.loads(line)
    except ValueError as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e
