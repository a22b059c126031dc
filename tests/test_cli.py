from __future__ import annotations

import pytest

import rconcli
from tests.fakes import FakeTransport, auth_response, command_response
from rcon_panel.packet import decode


@pytest.fixture
def fake(monkeypatch):
    t = FakeTransport()
    monkeypatch.setattr(rconcli, "SocketTransport", lambda timeout=None: t)
    for var in ("RCON_HOST", "RCON_PORT", "RCON_PASSWORD", "RCON_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    return t


def test_exec_prints_responses(fake, capsys):
    fake.queue(auth_response(), command_response("Set the time to 1000"), command_response("Done\n"))
    code = rconcli.main(["--password", "hunter2", "exec", "time set day", "save-all"])
    assert code == rconcli.EXIT_OK
    assert capsys.readouterr().out == "Set the time to 1000\nDone\n"
    assert [decode(b).body for b in fake.sent] == ["hunter2", "time set day", "save-all"]
    assert not fake.connected


def test_exec_auth_failure(fake, capsys):
    fake.queue(auth_response(-1))
    code = rconcli.main(["--password", "nope", "exec", "list"])
    assert code == rconcli.EXIT_AUTH_FAILED
    assert "authentication failed" in capsys.readouterr().err
    assert len(fake.sent) == 1
    assert fake.close_calls == 1


def test_exec_password_from_properties(fake, tmp_path):
    props = tmp_path / "server.properties"
    props.write_text("enable-rcon=true\nrcon.port=25580\nrcon.password=frompropfile\n", encoding="utf-8")
    fake.queue(auth_response(), command_response(""))
    code = rconcli.main(["--properties", str(props), "exec", "list"])
    assert code == rconcli.EXIT_OK
    assert decode(fake.sent[0]).body == "frompropfile"


def test_exec_without_password(fake, capsys):
    code = rconcli.main(["exec", "list"])
    assert code == rconcli.EXIT_ERROR
    assert "no RCON password" in capsys.readouterr().err
    assert fake.connect_calls == 0


def test_exec_transport_error(fake, capsys):
    fake.queue(auth_response())
    code = rconcli.main(["--password", "hunter2", "exec", "list"])
    assert code == rconcli.EXIT_ERROR
    assert "[rcon error]" in capsys.readouterr().err
    assert not fake.connected


def test_fallback_console(fake, monkeypatch, capsys):
    fake.queue(auth_response(), command_response("There are 0 of a max of 20 players online"))
    client = rconcli.RconClient(fake)
    client.connect("127.0.0.1", 25575)
    client.authenticate("hunter2")
    lines = iter(["list", "", "/quit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    assert rconcli._fallback_rcon(client) == rconcli.EXIT_OK
    assert "There are 0 of a max of 20 players online" in capsys.readouterr().out


def test_parser_requires_subcommand():
    with pytest.raises(SystemExit):
        rconcli.build_parser().parse_args([])


def _authenticated(t: FakeTransport) -> rconcli.RconClient:
    client = rconcli.RconClient(t)
    client.connect("127.0.0.1", 25575)
    client.authenticate("hunter2")
    return client


def test_fallback_console_disconnects_on_malformed_frame(fake, monkeypatch, capsys):
    fake.queue(auth_response(), b"\x02\x00\x00\x00" + command_response("first")[4:], command_response("second"))
    client = _authenticated(fake)
    lines = iter(["list", "list"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    assert rconcli._fallback_rcon(client) == rconcli.EXIT_ERROR
    out = capsys.readouterr().out
    assert "(disconnected)" in out
    assert "first" not in out
    assert not fake.connected
    assert len(fake.sent) == 2


def test_fallback_console_ctrl_c_during_command(monkeypatch, capsys):
    class Interruptible(FakeTransport):
        armed = False

        def receive_exactly(self, n):
            if self.armed:
                raise KeyboardInterrupt
            return super().receive_exactly(n)

    t = Interruptible(auth_response())
    client = _authenticated(t)
    t.armed = True
    monkeypatch.setattr("builtins.input", lambda prompt="": "list")
    assert rconcli._fallback_rcon(client) == rconcli.EXIT_ERROR
    assert "interrupted" in capsys.readouterr().out
    assert t.close_calls == 1
    assert not client.is_connected
