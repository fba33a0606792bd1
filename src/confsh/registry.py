# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Process-wide command registry.

Holds the compiled-in grammar tree, the dispatch table, the output
registry and the set of context-group keywords. It is built once at
startup, frozen, and then shared (read-only) by every session.

Usage:

    registry = Registry()
    show = registry.group("show", help="Show information")

    @show.command("version", help="Show version")
    def show_version(session, match):
        session.output("1.0.0")

    @registry.output("hostname", "hostname {name}\\n", group="system")
    def emit_hostname(sink, template):
        write_fmt(sink, template, {"name": state.hostname})
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .dispatch import Direct, DispatchTable, Handler
from .grammar import Choice, Keyword, Node, Sequence, TokenGrammar, build_command
from .output import Emitter, OutputRegistry

logger = logging.getLogger(__name__)


class CommandGroup:
    """A keyword followed by a choice of sub-commands ("show ...")."""

    def __init__(self, registry: Registry, keyword: str,
                 help: str | None = None) -> None:
        self.registry = registry
        self.keyword = keyword
        self.choice = Choice()
        self.node = Sequence(Keyword(keyword, help=help), self.choice)

    def command(
        self, expr: str, *args: Node,
        callback: str | None = None, help: str | None = None,
    ) -> Callable[[Handler], Handler]:
        def decorator(fn: Handler) -> Handler:
            self.registry.add_command(
                expr, fn, *args, callback=callback, help=help,
                parent=self.choice,
            )
            return fn
        return decorator


class Registry:
    """Grammar, dispatch table and output registry for one process."""

    def __init__(self) -> None:
        self.root = Choice()
        self.dispatch = DispatchTable()
        self.outputs = OutputRegistry()
        self.context_groups: set[str] = set()
        self._groups: dict[str, CommandGroup] = {}
        self._frozen = False

    # -----------------------
    # Registration
    # -----------------------

    def _check_open(self, what: str) -> None:
        if self._frozen:
            raise RuntimeError(f"registry is frozen; cannot add {what!r}")

    def add_command(
        self, expr: str, handler: Handler, *args: Node,
        callback: str | None = None, help: str | None = None,
        parent: Choice | None = None,
    ) -> Node:
        """Bind ``handler`` to the command described by ``expr``.

        The handler is bound directly on the command node and also
        registered under its callback name (default: the function name),
        so an exported grammar can be loaded back in symbolic mode.
        """
        self._check_open(expr)
        name = callback or handler.__name__
        node = build_command(expr, *args, help=help)
        node.bind(Direct(handler), callback=name)
        self.dispatch.register(name, handler)
        (parent or self.root).add(node)
        return node

    def command(
        self, expr: str, *args: Node,
        callback: str | None = None, help: str | None = None,
    ) -> Callable[[Handler], Handler]:
        def decorator(fn: Handler) -> Handler:
            self.add_command(expr, fn, *args, callback=callback, help=help)
            return fn
        return decorator

    def alias(
        self, expr: str, target: str, *args: Node,
        help: str | None = None, parent: Choice | None = None,
    ) -> Node:
        """Add another spelling for an already registered callback."""
        self._check_open(expr)
        handler = self.dispatch.lookup(target)
        node = build_command(expr, *args, help=help)
        node.bind(Direct(handler), callback=target)
        (parent or self.root).add(node)
        return node

    def group(self, keyword: str, help: str | None = None,
              context: bool = True) -> CommandGroup:
        """Get or create the command group introduced by ``keyword``.

        With ``context`` set, typing the bare keyword enters it as a
        configuration context.
        """
        existing = self._groups.get(keyword)
        if existing is not None:
            return existing
        self._check_open(keyword)
        group = CommandGroup(self, keyword, help=help)
        self._groups[keyword] = group
        self.root.add(group.node)
        if context:
            self.context_groups.add(keyword)
        return group

    def output(
        self, name: str, template: str,
        group: str | None = None, priority: int = 0,
    ) -> Callable[[Emitter], Emitter]:
        """Register the decorated function as a configuration emitter."""
        def decorator(fn: Emitter) -> Emitter:
            self.outputs.register(
                name, template, fn, priority=priority, group=group
            )
            return fn
        return decorator

    def freeze(self) -> None:
        self._frozen = True
        self.dispatch.freeze()
        self.outputs.freeze()
        logger.debug(
            "registry frozen: %d callbacks, %d output bindings",
            len(self.dispatch), len(self.outputs),
        )

    def grammar(self) -> TokenGrammar:
        return TokenGrammar(self.root)
