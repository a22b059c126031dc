# rcon_panel/errors.py
"""Exceptions raised by the RCON client."""
from __future__ import annotations


class RconError(Exception):
    """Base class for every error raised by rcon_panel itself."""


class InvalidArgument(RconError, ValueError):
    """Bad caller input (empty password/command, NUL in a body). Raised before any I/O."""


class IllegalState(RconError, RuntimeError):
    """Operation attempted in the wrong session state."""


class MalformedPacket(RconError, ValueError):
    """Bytes read from the wire do not form a valid RCON frame."""
