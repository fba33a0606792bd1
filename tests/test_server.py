# tests/test_server.py
from __future__ import annotations

import socket
import time
from collections.abc import Iterator
from pathlib import Path

import pytest

from confsh import server as server_module
from confsh.example import MinimalState, build_registry
from confsh.registry import Registry
from confsh.server import LineServer, _Client, format_address
from confsh.session import RunFlag, SessionConfig, Transport


CONFIG = SessionConfig(banner="Test", version="9.9", port=0)
GREETING = b"Test v9.9\r\ncli> "


def pump(
    server: LineServer,
    client: socket.socket,
    until: bytes | None = None,
    deadline: float = 2.0,
) -> bytes:
    """Drive the server loop and collect what the client receives.

    Stops once the received bytes end with ``until``, the client sees EOF,
    or the deadline passes.
    """
    client.settimeout(0.05)
    buf = b""
    end = time.monotonic() + deadline
    while time.monotonic() < end:
        server.run_once(0.05)
        try:
            chunk = client.recv(4096)
        except TimeoutError:
            continue
        if not chunk:
            break
        buf += chunk
        if until is not None and buf.endswith(until):
            break
    return buf


def settle(server: LineServer, rounds: int = 10) -> None:
    for _ in range(rounds):
        server.run_once(0.02)


def connect(server: LineServer) -> socket.socket:
    return socket.create_connection(server.address, timeout=1.0)


@pytest.fixture
def flag() -> RunFlag:
    return RunFlag()


@pytest.fixture
def server(flag: RunFlag) -> Iterator[LineServer]:
    srv = LineServer(build_registry(MinimalState()), config=CONFIG, flag=flag)
    srv.start()
    try:
        yield srv
    finally:
        srv.close()


# -------------------------------------------------------------------
# helpers
# -------------------------------------------------------------------


def test_format_address() -> None:
    assert format_address(("10.0.0.1", 5000)) == "10.0.0.1:5000"
    assert format_address(None) == "unknown"


def test_client_splits_on_any_line_ending_run() -> None:
    client = _Client(sock=None, address=None)  # type: ignore[arg-type]
    client.inbuf += b"one\r\ntwo\n\nthree\rfour"
    assert client.take_lines() == ["one", "two", "three"]
    assert bytes(client.inbuf) == b"four"


def test_client_queue_normalizes_newlines() -> None:
    client = _Client(sock=None, address=None)  # type: ignore[arg-type]
    client.queue("a\nb\r\nc")
    assert bytes(client.outbuf) == b"a\r\nb\r\nc"


def test_address_requires_start() -> None:
    srv = LineServer(build_registry(MinimalState()), config=CONFIG)
    with pytest.raises(RuntimeError):
        _ = srv.address


# -------------------------------------------------------------------
# loopback sessions
# -------------------------------------------------------------------


def test_attach_sends_banner_then_prompt(server: LineServer) -> None:
    with connect(server) as client:
        assert pump(server, client, GREETING) == GREETING
        assert server.session is not None
        assert server.session.transport is Transport.REMOTE


def test_command_output_and_prompt(server: LineServer) -> None:
    with connect(server) as client:
        pump(server, client, GREETING)
        client.sendall(b"show version\r\n")
        assert pump(server, client, b"cli> ") == b"confsh version 9.9\r\ncli> "


def test_context_prompt_over_the_wire(server: LineServer) -> None:
    with connect(server) as client:
        pump(server, client, GREETING)
        client.sendall(b"set\n")
        assert pump(server, client, b"cli(set)> ") == b"cli(set)> "
        client.sendall(b"name Remo\n")
        assert pump(server, client, b"cli(set)> ") == (
            b"Name set to 'Remo'\r\ncli(set)> "
        )


def test_line_split_across_reads(server: LineServer) -> None:
    with connect(server) as client:
        pump(server, client, GREETING)
        client.sendall(b"show ver")
        settle(server)
        client.sendall(b"sion\r\n")
        assert pump(server, client, b"cli> ") == b"confsh version 9.9\r\ncli> "


def test_second_client_is_rejected_with_active_address(
    server: LineServer,
) -> None:
    with connect(server) as first:
        pump(server, first, GREETING)
        first.sendall(b"set\n")
        pump(server, first, b"cli(set)> ")
        attached = server.session
        host, port = first.getsockname()[:2]

        with connect(server) as second:
            notice = pump(server, second)
            assert notice == (
                f"Another session is active from {host}:{port}\r\n".encode()
            )

        assert server.session is attached
        assert attached.context.frames == ["set"]
        first.sendall(b"name Rita\n")
        assert pump(server, first, b"cli(set)> ") == (
            b"Name set to 'Rita'\r\ncli(set)> "
        )


def test_client_without_line_end_is_dropped(
    server: LineServer, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(server_module, "MAX_LINE_BYTES", 1024)
    with connect(server) as client:
        pump(server, client, GREETING)
        client.sendall(b"x" * 2000)
        settle(server)
        assert server.session is None

    with connect(server) as again:
        assert pump(server, again, GREETING) == GREETING


def test_disconnect_frees_the_slot(server: LineServer) -> None:
    first = connect(server)
    pump(server, first, GREETING)
    first.close()
    settle(server)
    assert server.session is None

    with connect(server) as second:
        assert pump(server, second, GREETING) == GREETING


def test_each_attach_gets_a_fresh_context(server: LineServer) -> None:
    first = connect(server)
    pump(server, first, GREETING)
    first.sendall(b"set\n")
    pump(server, first, b"cli(set)> ")
    first.close()
    settle(server)

    with connect(server) as second:
        pump(server, second, GREETING)
        assert server.session is not None
        assert server.session.context.depth == 0


def test_quit_stops_the_process_flag(server: LineServer, flag: RunFlag) -> None:
    with connect(server) as client:
        pump(server, client, GREETING)
        client.sendall(b"quit\n")
        assert pump(server, client, b"Goodbye!\r\n") == b"Goodbye!\r\n"
        assert flag.running is False


def test_handler_exception_is_reported_and_logged(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CONFSH_DATA_HOME", str(tmp_path))
    registry = Registry()

    @registry.command("boom")
    def boom(session, match):
        raise RuntimeError("kaboom")

    registry.freeze()
    with LineServer(registry, config=SessionConfig(port=0)) as srv:
        with connect(srv) as client:
            pump(srv, client, b"cli> ")
            client.sendall(b"boom\n")
            assert pump(srv, client, b"cli> ") == (
                b"[ERROR] Unhandled exception: RuntimeError: kaboom\r\ncli> "
            )

    content = (tmp_path / "confsh" / "logs" / "crash.log").read_text(
        encoding="utf-8"
    )
    assert "transport=remote" in content
    assert "raw=boom" in content
