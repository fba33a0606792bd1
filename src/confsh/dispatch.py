# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Dispatch table.

Two lookup paths coexist:
- DIRECT: matched grammar nodes carry the handler itself (compiled-in
  grammar built in Python).
- SYMBOLIC: matched nodes carry a callback name, resolved through the
  name -> handler table (grammar loaded from an external YAML definition).

A session picks one mode when its grammar is loaded and keeps it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from .errors import NoHandlerError

if TYPE_CHECKING:
    from .interfaces import Match  # pragma: no cover

logger = logging.getLogger(__name__)

# handler(session, match) -> False on failure, True/None on success
Handler = Callable[[Any, Any], Union[bool, None]]


@dataclass(frozen=True)
class Direct:
    """Handler bound directly on a grammar node."""

    fn: Handler


@dataclass(frozen=True)
class Symbolic:
    """Handler bound by callback name, resolved at dispatch time."""

    name: str


HandlerRef = Union[Direct, Symbolic]


class DispatchMode(Enum):
    DIRECT = "direct"
    SYMBOLIC = "symbolic"


class DispatchTable:
    """Name -> handler table, populated at startup and read-only after."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._frozen = False

    def register(self, name: str, handler: Handler) -> None:
        """Register a handler under a callback name (last one wins)."""
        if self._frozen:
            raise RuntimeError(
                f"dispatch table is frozen; cannot register {name!r}"
            )
        if not name:
            raise ValueError("callback name must not be empty")
        if name in self._handlers:
            logger.debug("callback %s re-registered, replacing handler", name)
        self._handlers[name] = handler

    def freeze(self) -> None:
        self._frozen = True

    def lookup(self, name: str) -> Handler:
        handler = self._handlers.get(name)
        if handler is None:
            raise NoHandlerError(
                f"No handler registered for callback: {name}"
            )
        return handler

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def resolve(self, match: Match, mode: DispatchMode) -> Handler:
        """Find the handler for a complete match.

        Walks the matched node chain innermost first; the first binding
        usable in ``mode`` wins.

        Raises:
            NoHandlerError: no node carries a usable binding, or the
                symbolic name is not registered.
        """
        for node in reversed(match.nodes):
            ref = node.binding
            if ref is None:
                continue
            if mode is DispatchMode.DIRECT:
                if isinstance(ref, Direct):
                    return ref.fn
            elif isinstance(ref, Symbolic):
                return self.lookup(ref.name)
        raise NoHandlerError("No handler for command")

    def dispatch(self, session: Any, match: Match, mode: DispatchMode) -> bool:
        """Invoke the bound handler once; return False on handler failure."""
        handler = self.resolve(match, mode)
        return handler(session, match) is not False
