# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
confsh entry point and local REPL loop.

Design:
- CLI owns process startup: config, logging, registry, grammar selection.
- Session is the engine (registry + grammar injected).
- Local mode reads lines through PromptToolkitUI when stdin is a TTY,
  plain input() otherwise; remote mode runs the LineServer.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from . import config
from .errors import FileIOError
from .example import MinimalState, build_registry
from .interfaces import LineUI
from .server import LineServer
from .session import RunFlag, Session, SessionConfig, Transport, write_crash_log
from .ui import PromptToolkitUI
from .yaml_io import select_grammar

logger = logging.getLogger(__name__)


def run_repl(
    session: Session,
    ui: LineUI | None = None,
    input_fn: Callable[[str], str] = input,
) -> None:
    """Run the local read-resolve-dispatch loop until the run flag clears."""
    while session.running:
        try:
            prompt = session.prompt
            if ui is not None:
                line = ui.read(prompt)
            else:
                line = input_fn(prompt)

            line = (line or "").strip()
            if not line:
                continue

            try:
                session.handle_line(line)
            except Exception as e:
                # Unhandled exception - write crash log, keep the session
                write_crash_log(
                    e,
                    raw_command=line,
                    context="-".join(session.context.frames),
                    transport=Transport.LOCAL.value,
                )
                session.write(
                    f"[ERROR] Unhandled exception: {type(e).__name__}: {e}\n"
                )

        except (KeyboardInterrupt, EOFError):
            session.write("\nGoodbye!\n")
            break


def _install_signal_handlers(flag: RunFlag, signals: list[int]) -> None:
    def _stop(signum: int, frame: Any) -> None:
        logger.info("Signal %d received, shutting down", signum)
        flag.stop()

    for signum in signals:
        signal.signal(signum, _stop)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="confsh",
        description="Router-style configuration shell (minimal example).",
    )
    parser.add_argument(
        "--tcp", metavar="PORT", type=int, default=None,
        help="serve one remote session on PORT instead of the terminal",
    )
    parser.add_argument(
        "--host", default=None,
        help="address to bind in --tcp mode (default from system.yaml)",
    )
    parser.add_argument(
        "--config", metavar="FILE", type=Path, default=None,
        help="replay a configuration file at startup",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="log level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for confsh."""
    args = build_parser().parse_args(argv)

    cfg = config.load_system_config()
    data_root = config.get_data_root()
    log_cfg = cfg.logging
    config.setup_logger(
        config.logs_dir(data_root) / str(log_cfg.get("file", "confsh.log")),
        level=args.log_level or log_cfg.get("level", "WARNING"),
        max_bytes=int(log_cfg.get("max_bytes", 2_000_000)),
        backups=int(log_cfg.get("backups", 3)),
    )

    session_cfg = SessionConfig.from_config(cfg)
    if args.tcp is not None:
        session_cfg.port = args.tcp
    if args.host:
        session_cfg.host = args.host

    # Explicit wiring: registry is built and frozen before any session
    registry = build_registry(MinimalState())
    selection = select_grammar(registry, session_cfg.grammar_env)
    flag = RunFlag()

    if args.config is not None:
        boot = Session.create(
            registry, selection, config=session_cfg, flag=flag
        )
        try:
            errors = boot.load_config(args.config)
        except FileIOError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if errors:
            print(f"{errors} error(s) in {args.config}", file=sys.stderr)

    if args.tcp is not None:
        _install_signal_handlers(flag, [signal.SIGINT, signal.SIGTERM])
        server = LineServer(registry, selection, session_cfg, flag)
        try:
            server.start()
        except OSError as e:
            print(
                f"Failed to listen on {session_cfg.host}:{session_cfg.port}: {e}",
                file=sys.stderr,
            )
            return 1
        host, port = server.address
        print(f"{session_cfg.app_name} listening on {host}:{port}")
        server.run()
        return 0

    # Ctrl+C at the prompt is handled by the REPL loop itself
    _install_signal_handlers(flag, [signal.SIGTERM])

    ui: PromptToolkitUI | None = None
    if sys.stdin.isatty():
        ui = PromptToolkitUI(
            history_path=data_root / session_cfg.app_name / "history"
        )

    session = Session.create(
        registry, selection, config=session_cfg, flag=flag,
    )
    if ui is not None:
        session.output_fn = ui.write
    session.write(session.banner())
    run_repl(session, ui=ui)
    return 0
