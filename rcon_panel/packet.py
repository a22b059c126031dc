# rcon_panel/packet.py
"""
RCON wire codec.

Every frame on the wire is

    size:int32-LE | id:int32-LE | type:int32-LE | body | 0x00 | 0x00

where ``size`` counts everything after the size field (8 + len(body) + 2).
"""
from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .errors import InvalidArgument, MalformedPacket

SIZE_FORMAT = "<i"
HEADER_FORMAT = "<ii"  # id, type
SIZE_LEN = struct.calcsize(SIZE_FORMAT)
HEADER_LEN = struct.calcsize(HEADER_FORMAT)
TERMINATOR = b"\x00\x00"
MIN_SIZE = HEADER_LEN + len(TERMINATOR)

AUTH_FAILED_ID = -1
DEFAULT_ENCODING = "utf-8"

_INT32_MIN = -(2 ** 31)
_INT32_MAX = 2 ** 31 - 1


class PacketType(enum.IntEnum):
    # 2 is reused: EXEC_COMMAND going out, AUTH_RESPONSE coming back
    RESPONSE_VALUE = 0
    EXEC_COMMAND = 2
    AUTH_RESPONSE = 2
    AUTH = 3


@dataclass(frozen=True)
class Packet:
    id: int
    type: int
    body: str = ""

    @property
    def auth_failed(self) -> bool:
        return self.id == AUTH_FAILED_ID

    def to_bytes(self, encoding: str = DEFAULT_ENCODING) -> bytes:
        return encode(self.type, self.id, self.body, encoding)

    @staticmethod
    def from_bytes(raw: bytes, encoding: str = DEFAULT_ENCODING) -> "Packet":
        return decode(raw, encoding)


def _check_int32(name: str, value: int) -> None:
    if not _INT32_MIN <= int(value) <= _INT32_MAX:
        raise InvalidArgument(f"{name} does not fit in a signed 32-bit integer: {value}")


def encode(kind: int, req_id: int, body: str, encoding: str = DEFAULT_ENCODING) -> bytes:
    """Build one complete frame, size prefix included."""
    _check_int32("id", req_id)
    _check_int32("type", kind)
    if "\x00" in body:
        raise InvalidArgument("packet body must not contain NUL characters")
    try:
        raw_body = body.encode(encoding)
    except UnicodeEncodeError as e:
        raise InvalidArgument(f"packet body cannot be encoded as {encoding}: {e.reason}") from e
    data = struct.pack(HEADER_FORMAT, req_id, int(kind)) + raw_body + TERMINATOR
    return struct.pack(SIZE_FORMAT, len(data)) + data


def read_size(prefix: bytes) -> int:
    """Parse the 4-byte size prefix, rejecting sizes no valid frame can have."""
    if len(prefix) != SIZE_LEN:
        raise MalformedPacket(f"size prefix must be {SIZE_LEN} bytes, got {len(prefix)}")
    (size,) = struct.unpack(SIZE_FORMAT, prefix)
    if size < MIN_SIZE:
        raise MalformedPacket(f"declared size {size} is below the {MIN_SIZE}-byte minimum")
    return size


def decode(raw: bytes, encoding: str = DEFAULT_ENCODING) -> Packet:
    """
    Parse a complete frame (size prefix included).

    The two trailing NUL bytes are checked strictly; a frame whose declared
    size disagrees with the bytes supplied is rejected.
    """
    if len(raw) < SIZE_LEN:
        raise MalformedPacket("frame too short to hold a size prefix")
    (size,) = struct.unpack_from(SIZE_FORMAT, raw)
    data = raw[SIZE_LEN:]
    if len(data) < HEADER_LEN:
        raise MalformedPacket(f"need {HEADER_LEN} header bytes, got {len(data)}")
    if size != len(data):
        raise MalformedPacket(f"declared size {size} does not match {len(data)} bytes received")
    if len(data) < MIN_SIZE or data[-len(TERMINATOR):] != TERMINATOR:
        raise MalformedPacket("frame is missing its two-byte NUL terminator")

    req_id, kind = struct.unpack_from(HEADER_FORMAT, data)
    body = data[HEADER_LEN:-len(TERMINATOR)].decode(encoding, "replace")
    return Packet(id=req_id, type=kind, body=body)
