"""
niri Socket Module

Handles the Unix socket connection to the niri compositor.

niri's IPC is synchronous request/reply: a request line is written and one
reply line is read back. Once a connection has been turned into an event
stream it only yields events, so nirirules keeps one connection for the
stream and a second one for actions.
"""

from __future__ import annotations
import logging
import os
import socket
from typing import BinaryIO, Iterator, Optional, Union

from .errors import ConnectionClosed, StartupError, TransportError
from .protocol import (
    EVENT_STREAM,
    Action,
    Event,
    ProtocolError,
    Reply,
    decode_event,
    decode_reply,
    encode_request,
)

logger = logging.getLogger(__name__)

SOCKET_ENV = "NIRI_SOCKET"


def default_socket_path() -> str:
    """Get the compositor socket path from the environment.

    Raises:
        StartupError: If NIRI_SOCKET is not set
    """
    path = os.environ.get(SOCKET_ENV)
    if not path:
        raise StartupError(f"{SOCKET_ENV} is not set; is niri running?")
    return path


class NiriSocket:
    """One connection to the niri IPC socket."""

    def __init__(
        self,
        path: Optional[str] = None,
        timeout: Optional[float] = None,
        sock: Optional[socket.socket] = None,
    ):
        """Initialize the connection.

        Args:
            path: Socket path (defaults to $NIRI_SOCKET on connect)
            timeout: Seconds to wait for a reply, None to block forever
            sock: Already connected socket to use instead of connecting
        """
        self.path = path
        self.timeout = timeout
        self.socket: Optional[socket.socket] = None
        self._reader: Optional[BinaryIO] = None
        if sock is not None:
            self._attach(sock)

    @property
    def connected(self) -> bool:
        return self.socket is not None

    def connect(self):
        """Connect to the compositor.

        Raises:
            StartupError: If the socket cannot be reached
        """
        if self.path is None:
            self.path = default_socket_path()

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self.path)
        except OSError as e:
            sock.close()
            raise StartupError(f"Failed to connect to niri at {self.path}: {e}") from e
        self._attach(sock)
        logger.debug("Connected to %s", self.path)

    def _attach(self, sock: socket.socket):
        sock.settimeout(self.timeout)
        self.socket = sock
        self._reader = sock.makefile("rb")

    def close(self):
        """Close the connection."""
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self.socket is not None:
            self.socket.close()
            self.socket = None

    def send(self, request: Union[str, Action]) -> Reply:
        """Send a request and wait for its reply.

        A connection that failed mid-request is closed and reopened on the
        next send, so a late reply is never mistaken for the next one.

        Raises:
            TransportError: If the request could not be sent or no reply arrived
        """
        if self.socket is None:
            try:
                self.connect()
            except StartupError as e:
                raise TransportError(str(e)) from e

        try:
            self.socket.sendall(encode_request(request))
            line = self._readline()
        except socket.timeout as e:
            self.close()
            raise TransportError(f"No reply within {self.timeout}s") from e
        except (OSError, ConnectionClosed) as e:
            self.close()
            raise TransportError(f"Socket error: {e}") from e

        try:
            return decode_reply(line)
        except ProtocolError as e:
            self.close()
            raise TransportError(str(e)) from e

    def subscribe(self):
        """Turn this connection into an event stream.

        Raises:
            StartupError: If the compositor did not acknowledge the request
        """
        try:
            reply = self.send(EVENT_STREAM)
        except TransportError as e:
            raise StartupError(f"EventStream request failed: {e}") from e
        if not reply.handled:
            raise StartupError(
                "Expected niri to acknowledge the EventStream request, "
                f"got {reply.error or reply.response!r}"
            )
        # Nothing else is written on an event stream connection
        self.socket.shutdown(socket.SHUT_WR)

    def read_events(self) -> Iterator[Event]:
        """Yield decoded events until the compositor closes the stream.

        Malformed lines are logged and skipped.

        Raises:
            TransportError: On a read error
        """
        while True:
            try:
                line = self._readline()
            except ConnectionClosed:
                return
            except OSError as e:
                raise TransportError(f"Event stream read failed: {e}") from e

            if not line.strip():
                continue
            try:
                yield decode_event(line)
            except ProtocolError as e:
                logger.warning("Skipping undecodable event: %s", e)

    def _readline(self) -> bytes:
        if self._reader is None:
            raise ConnectionClosed("Socket is not connected")
        line = self._reader.readline()
        if not line:
            raise ConnectionClosed("niri closed the connection")
        return line

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
