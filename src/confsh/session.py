# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
confsh session engine.

One Session per attached client (the local terminal, or the remote line
client). A session owns its context stack and output channel; the grammar,
dispatch table and output registry are shared and read-only.

Important boundary:
- Session does not read terminals or sockets. Transports feed it lines
  (handle_line) and give it an output callback (output_fn).
- Session does not choose its grammar. The caller passes the selection made
  once per process (yaml_io.select_grammar).
"""

from __future__ import annotations

import io
import logging
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from . import config as cfg_module
from .context import ContextStack
from .dispatch import DispatchMode
from .errors import FileIOError
from .output import FileSink, SessionSink
from .registry import Registry
from .resolver import Outcome, execute, process_line
from .yaml_io import GrammarSelection

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("!", "#")


def write_crash_log(
    error: Exception,
    raw_command: str = "",
    context: str = "",
    transport: str = "",
) -> None:
    """Write an entry to the crash log.

    Logs unhandled exceptions raised while handling a line.
    Only creates the log directory when actually needed.
    Appends to crash.log (never overwrites).
    """
    try:
        logs_dir = cfg_module.get_data_root() / "confsh" / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        crash_log_path = logs_dir / "crash.log"

        lines = [f"{datetime.now().isoformat()}"]
        if transport:
            lines.append(f"transport={transport}")
        if context:
            lines.append(f"context={context}")
        if raw_command:
            lines.append(f"raw={raw_command}")
        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(traceback.format_exc())
        lines.append("----")

        with crash_log_path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError:
        # Already in an error state; the caller still reports the error.
        logger.exception("could not write crash log")


def _stdout_write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


@dataclass
class RunFlag:
    """Process-wide "keep running" flag shared by sessions and loops."""

    running: bool = True

    def stop(self) -> None:
        self.running = False


class Transport(Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass
class SessionConfig:
    prompt: str = "cli> "
    banner: str = ""
    version: str = "1.0.0"
    app_name: str = "confsh"
    grammar_env: str = "CONFSH_GRAMMAR"
    host: str = "127.0.0.1"
    port: int = 2323

    @classmethod
    def from_config(cls, cfg: Any) -> SessionConfig:
        """Build from the ``session`` and ``server`` sections of a YAMLConfig."""
        defaults = cls()
        return cls(
            prompt=str(cfg.get_path("session.prompt", defaults.prompt)),
            banner=str(cfg.get_path("session.banner", defaults.banner) or ""),
            version=str(cfg.get_path("session.version", defaults.version)),
            app_name=str(cfg.get_path("session.app_name", defaults.app_name)),
            grammar_env=str(
                cfg.get_path("session.grammar_env", defaults.grammar_env)
            ),
            host=str(cfg.get_path("server.host", defaults.host)),
            port=int(cfg.get_path("server.port", defaults.port)),
        )


@dataclass
class Session:
    """confsh session engine."""

    registry: Registry
    grammar: Any
    mode: DispatchMode = DispatchMode.DIRECT
    overrides: dict[str, str] = field(default_factory=dict)
    config: SessionConfig = field(default_factory=SessionConfig)
    flag: RunFlag = field(default_factory=RunFlag)
    transport: Transport = Transport.LOCAL
    output_fn: Callable[[str], None] = _stdout_write

    context: ContextStack = field(init=False)

    def __post_init__(self) -> None:
        self.context = ContextStack(self.config.prompt)

    @classmethod
    def create(
        cls,
        registry: Registry,
        selection: GrammarSelection | None = None,
        **kwargs: Any,
    ) -> Session:
        """Open a session on ``selection`` (compiled grammar by default)."""
        if selection is None:
            return cls(registry=registry, grammar=registry.grammar(), **kwargs)
        return cls(
            registry=registry,
            grammar=selection.grammar,
            mode=selection.mode,
            overrides=dict(selection.overrides),
            **kwargs,
        )

    # -----------------------
    # Output
    # -----------------------

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline)."""
        if text:
            self.output_fn(text)

    def output(self, text: str = "") -> None:
        """Write one line of handler output."""
        self.write(text if text.endswith("\n") else text + "\n")

    def err(self, message: str) -> None:
        self.write(f"Error: {message}\n")

    # -----------------------
    # State
    # -----------------------

    @property
    def prompt(self) -> str:
        return self.context.prompt

    @property
    def running(self) -> bool:
        return self.flag.running

    def request_exit(self) -> None:
        self.flag.stop()

    def banner(self) -> str:
        if not self.config.banner:
            return ""
        return f"{self.config.banner} v{self.config.version}\n"

    # -----------------------
    # Lines
    # -----------------------

    def handle_line(self, line: str) -> Outcome:
        return process_line(self, line)

    def execute(self, line: str) -> Outcome:
        return execute(self, line)

    # -----------------------
    # Running configuration
    # -----------------------

    def dump_config(self, sink: Any = None) -> None:
        self.registry.outputs.dump(sink or SessionSink(self), self.overrides)

    def save_config(self, path: Path) -> None:
        """Write the running configuration to ``path``.

        Raises:
            FileIOError: the file cannot be written.
        """
        # render fully before touching the file
        buf = io.StringIO()
        self.dump_config(FileSink(buf))
        try:
            with Path(path).open("w", encoding="utf-8") as f:
                f.write(buf.getvalue())
        except OSError as e:
            raise FileIOError(f"Cannot open file: {path}: {e}") from e

    def load_config(self, path: Path) -> int:
        """Replay a configuration file; return the number of failed lines.

        Raises:
            FileIOError: the file cannot be read.
        """
        try:
            with Path(path).open("r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise FileIOError(f"Cannot open file: {path}: {e}") from e

        errors = 0
        for lineno, raw in enumerate(lines, start=1):
            text = raw.strip()
            if not text or text.startswith(COMMENT_PREFIXES):
                continue
            try:
                outcome = self.execute(text)
            except Exception as e:
                write_crash_log(
                    e, raw_command=text, transport=self.transport.value
                )
                outcome = Outcome.FAILED
            if outcome is not Outcome.DISPATCHED:
                errors += 1
                logger.error("Config error at line %d: %s", lineno, text)

        logger.info("Replayed %s with %d error(s)", path, errors)
        return errors
