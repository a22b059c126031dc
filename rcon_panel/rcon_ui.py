# rcon_panel/rcon_ui.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import has_focus
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from .errors import MalformedPacket, RconError
from .rcon import RconClient

logger = logging.getLogger(__name__)

LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the in-memory text area
QUIT_WORDS = ("/quit", "quit", "exit")


async def run_rcon_ui(client: RconClient, title: str, hint: Optional[str] = None) -> None:
    """Fullscreen RCON console: scrolling output above an input bar."""
    log = TextArea(
        style="class:log",
        focusable=False,
        scrollbar=True,
        wrap_lines=False,
        read_only=False,  # programmatic inserts only; not focusable
    )
    input_field = TextArea(height=1, prompt="> ", multiline=False, history=InMemoryHistory())
    status = Label(
        text=f"RCON — {title}    (Ctrl-C / Esc to exit)",
        style="class:status",
    )

    kb = KeyBindings()

    @kb.add("enter", filter=has_focus(input_field))
    async def _(event) -> None:
        cmd = (input_field.text or "").strip()
        input_field.buffer.append_to_history()
        input_field.buffer.document = Document(text="")
        if not cmd:
            return
        if cmd.lower() in QUIT_WORDS:
            event.app.exit()
            return
        _append(app, log, f"$ {cmd}\n{await _run(client, cmd)}")

    @kb.add("c-c")
    @kb.add("escape")
    def _(event) -> None:
        event.app.exit()

    root = HSplit([status, log, input_field])
    app = Application(
        layout=Layout(root, focused_element=input_field),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(
            {
                "log": "bg:#0e162b #d1d5db",
                "status": "reverse",
            }
        ),
    )

    if hint:
        _append(None, log, f"[hint] {hint}\n")
    _append(None, log, "[rcon] authenticated. Type a command, /quit to leave.\n")
    await app.run_async()


async def _run(client: RconClient, cmd: str) -> str:
    """Run one command off the event loop; errors come back as console text."""
    try:
        out = await asyncio.to_thread(client.execute_command, cmd)
    except (MalformedPacket, OSError) as e:
        # the stream is in an unknown state after a bad frame or a failed read/write
        logger.debug("closing session after stream error", exc_info=True)
        client.close()
        return f"[rcon error] {e} (disconnected)\n"
    except RconError as e:
        return f"[rcon error] {e}\n"
    return out if out.endswith("\n") or not out else out + "\n"


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """
    Append text to the TextArea and keep the buffer size bounded.
    """
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        app.invalidate()
