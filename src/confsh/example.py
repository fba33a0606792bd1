# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Minimal demo application.

    show name | show address
    set name <value>          (greeting, priority 10)
    set address <ipv4>        (network, priority 20)
    del address <ipv4>
    hello
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .builtins import register_builtins
from .grammar import Argument
from .output import write_fmt
from .registry import Registry

DEFAULT_NAME = "world"
IPV4_PATTERN = (
    r"((25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)\.){3}"
    r"(25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)"
)


@dataclass
class MinimalState:
    name: str = DEFAULT_NAME
    address: str = ""


def build_registry(state: MinimalState | None = None) -> Registry:
    """Registry with the built-ins plus the demo commands, frozen."""
    state = state or MinimalState()
    registry = Registry()
    register_builtins(registry)

    show = registry.group("show")

    @show.command("name", callback="show_name", help="display current name")
    def show_name(session: Any, match: Any) -> None:
        session.output(f"Name: {state.name}")

    @show.command("address", callback="show_address",
                  help="display configured IPv4 address")
    def show_address(session: Any, match: Any) -> None:
        if state.address:
            session.output(f"Address: {state.address}")
        else:
            session.output("Address: not configured")

    config = registry.group("set", help="configure settings")

    @config.command(
        "name value", Argument("value", help="name to greet"),
        callback="set_name", help="set the greeting name",
    )
    def set_name(session: Any, match: Any) -> None:
        state.name = match.arg_str("value")
        session.output(f"Name set to '{state.name}'")

    @registry.output("set_name", "set name {value}\n",
                     group="greeting", priority=10)
    def emit_name(sink: Any, template: str) -> None:
        if state.name != DEFAULT_NAME:
            write_fmt(sink, template, {"value": state.name})

    @config.command(
        "address ipv4",
        Argument("ipv4", IPV4_PATTERN,
                 help="IPv4 address (e.g., 192.168.1.1)"),
        callback="set_address", help="set the IPv4 address",
    )
    def set_address(session: Any, match: Any) -> None:
        state.address = match.arg_str("ipv4")
        session.output(f"Address set to '{state.address}'")

    @registry.output("set_address", "set address {ipv4}\n",
                     group="network", priority=20)
    def emit_address(sink: Any, template: str) -> None:
        if state.address:
            write_fmt(sink, template, {"ipv4": state.address})

    delete = registry.group("del", help="delete configuration")

    @delete.command(
        "address ipv4",
        Argument("ipv4", IPV4_PATTERN, help="IPv4 address to delete"),
        callback="del_address", help="delete the IPv4 address",
    )
    def del_address(session: Any, match: Any) -> bool:
        value = match.arg_str("ipv4")
        if not state.address:
            session.output("No address configured")
            return False
        if state.address != value:
            session.output(
                f"Address '{value}' not found (configured: {state.address})"
            )
            return False
        session.output(f"Address '{state.address}' deleted")
        state.address = ""
        return True

    @registry.command("hello", callback="hello", help="say hello")
    def hello(session: Any, match: Any) -> None:
        session.output(f"Hello, {state.name}!")

    registry.freeze()
    return registry
