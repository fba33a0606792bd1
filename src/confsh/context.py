# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Context stack.

A session's nested configuration contexts ("interface", "eth0", ...).
The stack is the only place context gets flattened into a command line
the grammar can match, and it owns the prompt derived from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ContextUnderflow

MODE_GLYPHS = (">", "#")


def context_prompt(base: str, frames: list[str]) -> str:
    """Derive the prompt for a given stack.

    Examples:
        context_prompt("cli> ", [])                   -> "cli> "
        context_prompt("cli> ", ["interface", "eth0"]) -> "cli(interface-eth0)> "
    """
    if not frames:
        return base

    stem = base
    if len(stem) >= 2 and stem[-2] in MODE_GLYPHS:
        stem = stem[:-2]
    elif stem and stem[-1] in MODE_GLYPHS:
        stem = stem[:-1]
    return f"{stem}({'-'.join(frames)})> "


@dataclass
class ContextStack:
    """Ordered context frames, outermost first."""

    base_prompt: str = "cli> "
    _frames: list[str] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> list[str]:
        return list(self._frames)

    @property
    def prompt(self) -> str:
        return context_prompt(self.base_prompt, self._frames)

    def enter(self, name: str) -> None:
        if not name:
            raise ValueError("context name must not be empty")
        self._frames.append(name)

    def exit_one(self) -> str:
        """Pop the innermost frame.

        Raises:
            ContextUnderflow: the stack is already empty.
        """
        if not self._frames:
            raise ContextUnderflow()
        return self._frames.pop()

    def exit_all(self) -> None:
        self._frames.clear()

    def build_full_command(self, line: str) -> str:
        """Prefix ``line`` with the frame names (unchanged at depth 0)."""
        if not self._frames:
            return line
        return " ".join(self._frames + [line])
