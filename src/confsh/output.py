# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration output registry.

Applications register one binding per piece of configuration state. A dump
walks the bindings group by group (groups in first-registration order,
bindings by ascending priority inside a group) and asks each emitter to
write its command text through a sink, so the same emitters serve both
"show running-config" and "write file".
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import IO, TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .interfaces import OutputSink  # pragma: no cover

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{([^}]*)\}")

# emitter(sink, template) writes zero or more complete lines
Emitter = Callable[["OutputSink", str], None]


# -----------------------
# Template substitution
# -----------------------


class FormatType(Enum):
    STR = "str"
    INT = "int"
    UINT = "uint"
    LONG = "long"
    ULONG = "ulong"


@dataclass(frozen=True)
class FormatValue:
    name: str
    type: FormatType
    value: Any

    def render(self) -> str:
        if self.type is FormatType.STR:
            return "(null)" if self.value is None else str(self.value)
        number = int(self.value)
        if self.type is FormatType.UINT:
            number %= 2**32
        elif self.type is FormatType.ULONG:
            number %= 2**64
        return str(number)


def _infer(name: str, value: Any) -> FormatValue:
    if isinstance(value, FormatValue):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return FormatValue(name, FormatType.INT, value)
    return FormatValue(name, FormatType.STR, value)


Values = Union[Iterable[FormatValue], Mapping[str, Any]]


def substitute(template: str, values: Values = ()) -> str:
    """Replace ``{name}`` placeholders with rendered values.

    ``values`` is either FormatValue items or a plain mapping (ints render
    as INT, everything else as STR). Placeholders with no value are left
    as they are.
    """
    if isinstance(values, Mapping):
        table = {k: _infer(k, v) for k, v in values.items()}
    else:
        table = {v.name: v for v in values}

    def _replace(m: re.Match[str]) -> str:
        fv = table.get(m.group(1))
        if fv is None:
            return m.group(0)
        return fv.render()

    return PLACEHOLDER_RE.sub(_replace, template)


def write_fmt(sink: OutputSink, template: str, values: Values = ()) -> None:
    sink.write(substitute(template, values))


# -----------------------
# Sinks
# -----------------------


class SessionSink:
    """Writes to a session's output channel."""

    def __init__(self, session: Any) -> None:
        self.session = session

    def write(self, text: str) -> None:
        self.session.write(text)


class FileSink:
    """Writes to an open text file."""

    def __init__(self, handle: IO[str]) -> None:
        self.handle = handle

    def write(self, text: str) -> None:
        self.handle.write(text)


# -----------------------
# Registry
# -----------------------


@dataclass
class OutputBinding:
    name: str
    template: str
    emitter: Emitter
    priority: int = 0
    group: str | None = None
    seq: int = 0


class OutputRegistry:
    """Ordered output bindings, populated at startup and read-only after."""

    def __init__(self) -> None:
        self._bindings: list[OutputBinding] = []
        self._group_rank: dict[str | None, int] = {}
        self._frozen = False

    def register(
        self,
        name: str,
        template: str,
        emitter: Emitter,
        priority: int = 0,
        group: str | None = None,
    ) -> OutputBinding:
        if self._frozen:
            raise RuntimeError(
                f"output registry is frozen; cannot register {name!r}"
            )
        if group not in self._group_rank:
            self._group_rank[group] = len(self._group_rank)

        binding = OutputBinding(
            name=name,
            template=template,
            emitter=emitter,
            priority=priority,
            group=group,
            seq=len(self._bindings),
        )
        self._bindings.append(binding)
        self._bindings.sort(
            key=lambda b: (self._group_rank[b.group], b.priority, b.seq)
        )
        logger.debug(
            "output binding %s registered (group=%s, priority=%d)",
            name, group, priority,
        )
        return binding

    def freeze(self) -> None:
        self._frozen = True

    def bindings(self) -> list[OutputBinding]:
        return list(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def dump(
        self,
        sink: OutputSink,
        overrides: Mapping[str, str] | None = None,
    ) -> None:
        """Write every binding's configuration text to ``sink``.

        Group changes are bracketed by ``! <group> configuration`` and
        ``! end <group>`` markers; the dump always ends with ``! end``.
        An override template replaces a binding's own template for this
        dump only.
        """
        overrides = overrides or {}
        current: str | None = None

        for binding in self._bindings:
            if binding.group != current:
                if current is not None:
                    sink.write(f"! end {current}\n")
                if binding.group is not None:
                    sink.write(f"! {binding.group} configuration\n")
                current = binding.group

            template = overrides.get(binding.name, binding.template)
            binding.emitter(sink, template)

        if current is not None:
            sink.write(f"! end {current}\n")
        sink.write("! end\n")
