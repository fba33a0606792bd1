# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the session engine independent of the grammar
engine that parses lines, of where configuration output is written, and
of the terminal library used to read lines.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .dispatch import HandlerRef  # pragma: no cover


class MatchedNode(Protocol):
    """A grammar node that took part in a match."""

    @property
    def binding(self) -> HandlerRef | None:
        """Handler reference attached to this node, if any."""
        ...


class Match(Protocol):
    """Result of parsing one line against a grammar."""

    @property
    def matches(self) -> bool:
        """True when the whole line was consumed by a grammar path."""
        ...

    @property
    def nodes(self) -> Sequence[MatchedNode]:
        """Matched node chain, outermost first."""
        ...


class Grammar(Protocol):
    """Protocol for the grammar/completion engine."""

    def parse(self, text: str) -> Match | None:
        """Parse a line; None when the line is malformed."""
        ...

    def complete(self, text: str) -> list[str]:
        """Ordered full/partial completion candidates for the last token."""
        ...

    def iter_commands(self) -> Iterator[tuple[str, str]]:
        """Yield (syntax, help) for every executable command."""
        ...

    def to_dict(self) -> dict[str, Any]:
        """Serializable form of the grammar tree (for YAML export)."""
        ...


class OutputSink(Protocol):
    """Protocol for configuration output targets."""

    def write(self, text: str) -> None:
        """Write text exactly as given."""
        ...


class LineUI(Protocol):
    """Protocol for the local line reader."""

    def read(self, prompt: str) -> str:
        """Read one line; raises EOFError at end of input."""
        ...

    def write(self, text: str) -> None:
        """Write text exactly as given."""
        ...
