# rcon_panel/transport.py
from __future__ import annotations

import logging
import socket
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Duplex byte stream the RCON session talks through."""

    @abstractmethod
    def connect(self, host: str, port: int) -> bool:
        """Open the stream. Returns False if it is already open."""

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def send(self, data: bytes) -> None:
        ...

    @abstractmethod
    def receive_exactly(self, n: int) -> bytes:
        """Block until exactly ``n`` bytes have arrived."""

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class SocketTransport(Transport):
    """Blocking TCP transport; ``timeout`` applies to connect and to every recv."""

    def __init__(self, timeout: Optional[float] = 5.0):
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None

    def connect(self, host: str, port: int) -> bool:
        if self._sock is not None:
            return False
        sock = socket.create_connection((host, port), timeout=self.timeout)
        sock.settimeout(self.timeout)
        self._sock = sock
        logger.debug("tcp connected to %s:%d", host, port)
        return True

    def is_connected(self) -> bool:
        return self._sock is not None

    def _require_sock(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionError("transport is not connected")
        return self._sock

    def send(self, data: bytes) -> None:
        self._require_sock().sendall(data)

    def receive_exactly(self, n: int) -> bytes:
        sock = self._require_sock()
        buf = bytearray()
        while len(buf) < n:
            chunk = sock.recv(n - len(buf))
            if not chunk:
                raise ConnectionError(f"connection closed after {len(buf)} of {n} bytes")
            buf += chunk
        return bytes(buf)

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # peer may already have dropped the connection
            pass
        sock.close()
        logger.debug("tcp connection closed")
