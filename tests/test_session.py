# tests/test_session.py
from __future__ import annotations

import logging
from pathlib import Path

import pytest

from confsh.config import YAMLConfig
from confsh.errors import FileIOError
from confsh.example import MinimalState, build_registry
from confsh.registry import Registry
from confsh.resolver import Outcome
from confsh.session import RunFlag, Session, SessionConfig, Transport


@pytest.fixture
def data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data = tmp_path / "data"
    monkeypatch.setenv("CONFSH_DATA_HOME", str(data))
    return data


def make_session(
    state: MinimalState | None = None, **kwargs
) -> tuple[Session, list[str]]:
    out: list[str] = []
    registry = build_registry(state or MinimalState())
    return Session.create(registry, output_fn=out.append, **kwargs), out


def dump_text(session: Session) -> str:
    chunks: list[str] = []

    class Sink:
        def write(self, text: str) -> None:
            chunks.append(text)

    session.dump_config(Sink())
    return "".join(chunks)


# -------------------------------------------------------------------
# output + lifecycle
# -------------------------------------------------------------------


def test_output_appends_newline_once() -> None:
    session, out = make_session()
    session.output("one")
    session.output("two\n")
    session.write("")
    assert out == ["one\n", "two\n"]


def test_err_prefixes_message() -> None:
    session, out = make_session()
    session.err("Parse error")
    assert out == ["Error: Parse error\n"]


def test_banner_uses_config() -> None:
    session, _ = make_session(config=SessionConfig(banner="Demo", version="2.1"))
    assert session.banner() == "Demo v2.1\n"
    plain, _ = make_session()
    assert plain.banner() == ""


def test_prompt_starts_at_base_prompt() -> None:
    session, _ = make_session(config=SessionConfig(prompt="router# "))
    assert session.prompt == "router# "
    session.context.enter("vlan")
    assert session.prompt == "router(vlan)> "


def test_request_exit_clears_shared_flag() -> None:
    flag = RunFlag()
    a, _ = make_session(flag=flag)
    b, _ = make_session(flag=flag)
    assert a.running and b.running
    a.request_exit()
    assert not b.running


def test_session_config_from_yaml_config() -> None:
    cfg = YAMLConfig(
        {
            "session": {"prompt": "sw> ", "banner": "Switch", "version": "3.0"},
            "server": {"host": "0.0.0.0", "port": 4000},
        }
    )
    sc = SessionConfig.from_config(cfg)
    assert sc.prompt == "sw> "
    assert sc.banner == "Switch"
    assert sc.version == "3.0"
    assert sc.grammar_env == "CONFSH_GRAMMAR"
    assert (sc.host, sc.port) == ("0.0.0.0", 4000)


def test_session_config_defaults() -> None:
    sc = SessionConfig.from_config(YAMLConfig({}))
    assert sc == SessionConfig()
    assert sc.prompt == "cli> "
    assert sc.version == "1.0.0"


# -------------------------------------------------------------------
# replay
# -------------------------------------------------------------------


def test_load_config_counts_and_logs_failed_lines(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    state = MinimalState()
    session, _ = make_session(state)
    path = tmp_path / "startup.cfg"
    path.write_text(
        "! greeting configuration\n"
        "# comment\n"
        "\n"
        "set name Dave\n"
        "bogus line\n"
        "set address 999.1.1.1\n"
        "set address 192.168.1.1\n"
        "! end\n",
        encoding="utf-8",
    )

    caplog.set_level(logging.ERROR, logger="confsh.session")
    assert session.load_config(path) == 2
    assert state.name == "Dave"
    assert state.address == "192.168.1.1"

    messages = [r.getMessage() for r in caplog.records]
    assert "Config error at line 5: bogus line" in messages
    assert "Config error at line 6: set address 999.1.1.1" in messages


def test_load_config_applies_abbreviations(tmp_path: Path) -> None:
    state = MinimalState()
    session, _ = make_session(state)
    path = tmp_path / "short.cfg"
    path.write_text("se na Erin\n", encoding="utf-8")
    assert session.load_config(path) == 0
    assert state.name == "Erin"


def test_load_config_does_not_enter_contexts(tmp_path: Path) -> None:
    state = MinimalState()
    session, _ = make_session(state)
    path = tmp_path / "ctx.cfg"
    path.write_text("set\nname Frank\nend\n", encoding="utf-8")
    assert session.load_config(path) == 3
    assert session.context.depth == 0
    assert state.name == "world"


def test_load_config_missing_file_raises(tmp_path: Path) -> None:
    session, _ = make_session()
    with pytest.raises(FileIOError):
        session.load_config(tmp_path / "nope.cfg")


def test_load_config_counts_handler_crash(
    tmp_path: Path, data_home: Path
) -> None:
    registry = Registry()

    @registry.command("boom")
    def boom(session, match):
        raise RuntimeError("kaboom")

    @registry.command("ok")
    def ok(session, match):
        return True

    registry.freeze()
    session = Session.create(registry, output_fn=lambda text: None)
    path = tmp_path / "crash.cfg"
    path.write_text("ok\nboom\nok\n", encoding="utf-8")

    assert session.load_config(path) == 1
    crash_log = data_home / "confsh" / "logs" / "crash.log"
    content = crash_log.read_text(encoding="utf-8")
    assert "raw=boom" in content
    assert "error=RuntimeError: kaboom" in content
    assert f"transport={Transport.LOCAL.value}" in content


def test_execute_skips_end_and_exit_handling() -> None:
    session, out = make_session()
    session.context.enter("set")
    assert session.execute("end") is Outcome.NO_MATCH
    assert session.context.depth == 1


# -------------------------------------------------------------------
# save + round trip
# -------------------------------------------------------------------


def test_write_file_command_saves_running_config(tmp_path: Path) -> None:
    session, out = make_session()
    session.handle_line("set name Grace")
    out.clear()

    path = tmp_path / "saved.cfg"
    assert session.handle_line(f"write file {path}") is Outcome.DISPATCHED
    assert "".join(out) == f"Configuration saved to {path}\n"
    assert path.read_text(encoding="utf-8") == dump_text(session)
    assert "set name Grace\n" in path.read_text(encoding="utf-8")


def test_write_file_to_bad_path_fails(tmp_path: Path) -> None:
    session, out = make_session()
    path = tmp_path / "missing-dir" / "saved.cfg"
    assert session.handle_line(f"write file {path}") is Outcome.FAILED
    text = "".join(out)
    assert "Cannot open file" in text
    assert text.endswith("Error: Command failed\n")


def test_save_config_raises_file_io_error(tmp_path: Path) -> None:
    session, _ = make_session()
    with pytest.raises(FileIOError):
        session.save_config(tmp_path / "no" / "such" / "dir.cfg")


def test_round_trip_dump_replay_dump(tmp_path: Path) -> None:
    first, _ = make_session()
    first.handle_line("set name Heidi")
    first.handle_line("set address 10.1.2.3")
    path = tmp_path / "running.cfg"
    first.save_config(path)
    before = dump_text(first)

    second, _ = make_session()
    assert dump_text(second) != before
    assert second.load_config(path) == 0
    assert dump_text(second) == before


def test_round_trip_of_default_state(tmp_path: Path) -> None:
    first, _ = make_session()
    path = tmp_path / "empty.cfg"
    first.save_config(path)

    second, _ = make_session()
    assert second.load_config(path) == 0
    assert dump_text(second) == dump_text(first)


def test_save_config_keeps_previous_file_when_emitter_raises(
    tmp_path: Path,
) -> None:
    registry = Registry()

    @registry.output("broken", "broken {value}\n", group="g")
    def emit_broken(sink, template):
        sink.write("partial line\n")
        raise RuntimeError("emitter failed")

    registry.freeze()
    session = Session.create(registry, output_fn=lambda text: None)
    path = tmp_path / "startup.cfg"
    path.write_text("set name Kept\n", encoding="utf-8")

    with pytest.raises(RuntimeError):
        session.save_config(path)
    assert path.read_text(encoding="utf-8") == "set name Kept\n"
