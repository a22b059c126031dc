# rcon_panel/rcon.py
from __future__ import annotations

import enum
import logging
import threading
from typing import Optional

from .errors import IllegalState, InvalidArgument
from .packet import DEFAULT_ENCODING, SIZE_LEN, Packet, PacketType, decode, encode, read_size
from .transport import SocketTransport, Transport

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


class RconClient:
    """
    One RCON session over one transport: connect, authenticate, execute, close.

    Only one request is ever outstanding. The server is expected to answer each
    request with exactly one frame, so responses are never matched up by id;
    a lock serializes the write-then-read unit across threads. Output split
    over several frames by the server is not reassembled.

    Transport errors propagate untouched and leave the session in whatever
    state it was in; close it and reconnect.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        request_id: int = 0,
        encoding: str = DEFAULT_ENCODING,
    ):
        self.transport = transport if transport is not None else SocketTransport()
        self.request_id = request_id
        self.encoding = encoding
        self._state = SessionState.UNCONNECTED
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is not SessionState.UNCONNECTED

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    # ── lifecycle ────────────────────────────────────────────────────────────

    def connect(self, host: str, port: int) -> bool:
        """Returns False, changing nothing, when the transport is already open."""
        if self.transport.is_connected():
            return False
        if not self.transport.connect(host, port):
            return False
        self._state = SessionState.CONNECTED
        logger.info("connected to %s:%d", host, port)
        return True

    def close(self) -> None:
        """
        Idempotent. Does not wait for the request lock: a thread blocked in a
        read holds it until the socket timeout, and closing the transport is
        what unblocks that thread (it then fails with a transport error).
        """
        if self._state is SessionState.UNCONNECTED and not self.transport.is_connected():
            return
        self.transport.close()
        self._state = SessionState.UNCONNECTED
        logger.info("connection closed")

    def __enter__(self) -> "RconClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ── protocol ─────────────────────────────────────────────────────────────

    def authenticate(self, password: str) -> bool:
        """
        Send the password. A response id of -1 means the server rejected it:
        that returns False and leaves the session connected but unauthenticated.
        """
        if not password:
            raise InvalidArgument("password must be a non-empty string")
        if self._state is SessionState.UNCONNECTED:
            raise IllegalState("must connect before authenticating")

        response = self._request(PacketType.AUTH, password)
        if response.auth_failed:
            self._state = SessionState.CONNECTED
            logger.warning("authentication rejected by server")
            return False
        self._state = SessionState.AUTHENTICATED
        logger.info("authenticated")
        return True

    def execute_command(self, command: str) -> str:
        if not command:
            raise InvalidArgument("command must be a non-empty string")
        if self._state is not SessionState.AUTHENTICATED:
            raise IllegalState("must authenticate before executing commands")

        response = self._request(PacketType.EXEC_COMMAND, command)
        return response.body

    def _request(self, kind: PacketType, body: str) -> Packet:
        payload = encode(kind, self.request_id, body, self.encoding)
        with self._lock:
            self.transport.send(payload)
            logger.debug("sent type=%d id=%d size=%d", kind, self.request_id, len(payload) - SIZE_LEN)
            prefix = self.transport.receive_exactly(SIZE_LEN)
            rest = self.transport.receive_exactly(read_size(prefix))
        packet = decode(prefix + rest, self.encoding)
        logger.debug("received type=%d id=%d size=%d", packet.type, packet.id, len(rest))
        return packet
