# rcon_panel/util.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .packet import DEFAULT_ENCODING

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 25575
DEFAULT_TIMEOUT = 5.0


@dataclass
class RconSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    encoding: str = DEFAULT_ENCODING


def read_properties(path: Path) -> dict:
    props = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                k, v = line.split("=", 1)
                props[k.strip()] = v.strip()
    return props


def rcon_enabled(props: Mapping[str, str]) -> bool:
    return props.get("enable-rcon", "false").strip().lower() == "true"


def _first(*values):
    for v in values:
        if v not in (None, ""):
            return v
    return None


def resolve_settings(
    host: Optional[str] = None,
    port: Optional[int] = None,
    password: Optional[str] = None,
    timeout: Optional[float] = None,
    encoding: Optional[str] = None,
    properties: Optional[Mapping[str, str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> RconSettings:
    """
    Merge explicit values, RCON_* environment variables and server.properties
    entries, in that order of precedence.
    """
    env = os.environ if env is None else env
    props = properties or {}

    raw_port = _first(port, env.get("RCON_PORT"), props.get("rcon.port"), DEFAULT_PORT)
    raw_timeout = _first(timeout, env.get("RCON_TIMEOUT"), DEFAULT_TIMEOUT)
    try:
        port_num = int(raw_port)
    except (TypeError, ValueError):
        raise ValueError(f"invalid RCON port: {raw_port!r}") from None
    if not 0 < port_num < 65536:
        raise ValueError(f"RCON port out of range: {port_num}")
    try:
        timeout_s = float(raw_timeout)
    except (TypeError, ValueError):
        raise ValueError(f"invalid RCON timeout: {raw_timeout!r}") from None

    return RconSettings(
        host=_first(host, env.get("RCON_HOST"), DEFAULT_HOST),
        port=port_num,
        password=_first(password, env.get("RCON_PASSWORD"), props.get("rcon.password")),
        timeout=timeout_s,
        encoding=_first(encoding, DEFAULT_ENCODING),
    )
