# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Built-in commands every confsh application gets:

    help | ?
    quit | exit
    show running-config | show run | show version
    write terminal | write file <filename> | write yaml <filename>
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .errors import FileIOError
from .grammar import Argument
from .registry import Registry
from .utils import format_table
from .yaml_io import export_grammar

FILENAME_PATTERN = r"[^ ]+"


def show_help(session: Any, match: Any) -> None:
    rows = [[syntax, help_text] for syntax, help_text in
            session.grammar.iter_commands()]
    table = format_table(["Command", "Description"], rows,
                         title="Available commands:\n")
    session.output(table)


def quit_session(session: Any, match: Any) -> None:
    session.output("Goodbye!")
    session.request_exit()


def show_running_config(session: Any, match: Any) -> None:
    session.dump_config()


def show_version(session: Any, match: Any) -> None:
    cfg = session.config
    session.output(f"{cfg.app_name} version {cfg.version}")


def write_file(session: Any, match: Any) -> bool:
    filename = match.arg_str("filename")
    try:
        session.save_config(Path(filename))
    except FileIOError as e:
        session.output(str(e))
        return False
    session.output(f"Configuration saved to {filename}")
    return True


def write_yaml(session: Any, match: Any) -> bool:
    filename = match.arg_str("filename")
    try:
        export_grammar(
            session.registry.grammar(),
            Path(filename),
            app_name=session.config.app_name,
            env_var=session.config.grammar_env,
        )
    except FileIOError as e:
        session.output(str(e))
        return False
    session.output(f"CLI grammar exported to {filename}")
    return True


def register_builtins(registry: Registry) -> None:
    """Add the built-in commands to ``registry``."""
    registry.add_command("help", show_help, callback="help",
                         help="show available commands")
    registry.alias("?", "help",
                   help="show available commands (alias for help)")
    registry.add_command("quit", quit_session, callback="quit",
                         help="exit the application")
    registry.alias("exit", "quit", help="exit the application (alias for quit)")

    show = registry.group("show", help="display information")
    show.command("running-config", callback="show_running_config",
                 help="display running configuration")(show_running_config)
    show.command("run", callback="show_run",
                 help="display running configuration")(show_running_config)
    show.command("version", callback="show_version",
                 help="display version information")(show_version)

    write = registry.group("write", help="save configuration")
    write.command("terminal", callback="write_terminal",
                  help="display config to terminal")(show_running_config)
    write.command(
        "file filename",
        Argument("filename", FILENAME_PATTERN, help="output filename"),
        callback="write_file", help="save config to file",
    )(write_file)
    write.command(
        "yaml filename",
        Argument("filename", FILENAME_PATTERN, help="output filename"),
        callback="write_yaml", help="export CLI grammar to YAML",
    )(write_yaml)
