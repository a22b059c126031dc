#!/usr/bin/env python3
from __future__ import annotations
import argparse, sys, asyncio, logging
from pathlib import Path
from typing import Optional

from rcon_panel.errors import MalformedPacket, RconError
from rcon_panel.rcon import RconClient
from rcon_panel.transport import SocketTransport
from rcon_panel.util import RconSettings, read_properties, rcon_enabled, resolve_settings

log = logging.getLogger("rconcli")

EXIT_OK = 0
EXIT_AUTH_FAILED = 1
EXIT_ERROR = 2


class AuthFailed(Exception):
    pass


# --- settings / session helpers ---------------------------------------------

def load_settings(args) -> tuple[RconSettings, dict]:
    props = read_properties(Path(args.properties)) if args.properties else {}
    settings = resolve_settings(
        host=args.host,
        port=args.port,
        password=args.password,
        timeout=args.timeout,
        encoding=args.encoding,
        properties=props,
    )
    return settings, props

def open_client(settings: RconSettings) -> RconClient:
    """Connects and authenticates; the caller owns (and must close) the client."""
    if not settings.password:
        raise ValueError("no RCON password: pass --password, set RCON_PASSWORD or point --properties at server.properties.")
    client = RconClient(SocketTransport(timeout=settings.timeout), encoding=settings.encoding)
    try:
        client.connect(settings.host, settings.port)
        if not client.authenticate(settings.password):
            raise AuthFailed(f"authentication failed for {settings.host}:{settings.port}")
    except BaseException:
        client.close()
        raise
    return client

def _run_guarded(fn, args) -> int:
    try:
        return fn(args)
    except AuthFailed as e:
        print(f"[rcon] {e}", file=sys.stderr)
        return EXIT_AUTH_FAILED
    except (RconError, OSError, ValueError) as e:
        log.debug("rcon failure", exc_info=True)
        print(f"[rcon error] {e}", file=sys.stderr)
        return EXIT_ERROR

# --- exec / console ----------------------------------------------------------

def do_exec(args) -> int:
    settings, _ = load_settings(args)
    with open_client(settings) as client:
        for cmd in args.commands:
            out = client.execute_command(cmd)
            if out:
                print(out if out.endswith("\n") else out + "\n", end="", flush=True)
    return EXIT_OK

def do_console(args) -> int:
    """Opens the prompt_toolkit RCON console; plain input loop if that is unavailable."""
    settings, props = load_settings(args)
    hint = None
    if props and not rcon_enabled(props):
        hint = ("RCON appears disabled (enable-rcon=false). "
                "Set enable-rcon=true in server.properties and restart the server.")
    try:
        from rcon_panel.rcon_ui import run_rcon_ui
    except ImportError as e:
        print(f"prompt_toolkit UI not available ({e}); falling back to plain RCON.", flush=True)
        run_rcon_ui = None

    with open_client(settings) as client:
        if run_rcon_ui is None:
            return _fallback_rcon(client)
        try:
            asyncio.run(run_rcon_ui(client, f"{settings.host}:{settings.port}", hint))
        except KeyboardInterrupt:
            pass
    return EXIT_OK

def _fallback_rcon(client: RconClient) -> int:
    print("Interactive RCON. Type /quit to exit.")
    while True:
        try:
            cmd = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if cmd.lower() in ("/quit","quit","exit"): break
        if not cmd: continue
        try:
            print(client.execute_command(cmd))
        except KeyboardInterrupt:
            # reply may still be in flight; the stream can't be reused
            client.close()
            print("\n[rcon] interrupted (disconnected)")
            return EXIT_ERROR
        except (MalformedPacket, OSError) as e:
            client.close()
            print(f"[rcon error] {e} (disconnected)")
            return EXIT_ERROR
        except RconError as e:
            print(f"[rcon error] {e}")
    return EXIT_OK

# --- argparse ----------------------------------------------------------------

def build_parser():
    p = argparse.ArgumentParser(prog="rconcli.py", description="Source RCON client.")
    p.add_argument("--host", help="server host (env RCON_HOST, default 127.0.0.1)")
    p.add_argument("--port", type=int, help="RCON port (env RCON_PORT, rcon.port, default 25575)")
    p.add_argument("--password", help="RCON password (env RCON_PASSWORD, rcon.password)")
    p.add_argument("--properties", help="server.properties to read rcon.port/rcon.password from")
    p.add_argument("--timeout", type=float, help="socket timeout in seconds (env RCON_TIMEOUT, default 5)")
    p.add_argument("--encoding", help="body text encoding (default utf-8)")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    pe = sub.add_parser("exec", help="Run one or more commands and print the responses")
    pe.add_argument("commands", nargs="+", metavar="COMMAND")
    pe.set_defaults(func=do_exec)

    pc = sub.add_parser("console", help="Open interactive RCON console (prompt_toolkit)")
    pc.set_defaults(func=do_console)

    return p

def main(argv: Optional[list[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return _run_guarded(args.func, args)

if __name__ == "__main__":
    raise SystemExit(main())
