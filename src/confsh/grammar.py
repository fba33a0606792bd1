# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Minimal grammar engine.

A grammar is a tree of nodes matched against shell-lexed tokens:
- Keyword: one literal token
- Argument: one token, optionally checked against a regular expression
- Sequence: children matched one after another
- Choice: any one child
- Option: the child, or nothing

The session engine only talks to this module through the Grammar
protocol (parse / complete / iter_commands / to_dict), so another engine
can be dropped in.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .dispatch import HandlerRef, Symbolic

HELP_ATTR = "help"
CALLBACK_ATTR = "callback"


class _State(NamedTuple):
    pos: int
    nodes: tuple[Node, ...]
    args: tuple[tuple[str, str], ...]


class Node:
    """Base grammar node."""

    type_name = "node"

    def __init__(
        self,
        id: str | None = None,
        help: str | None = None,
        attrs: dict[str, Any] | None = None,
    ) -> None:
        self.id = id
        self.attrs: dict[str, Any] = dict(attrs or {})
        if help:
            self.attrs[HELP_ATTR] = help
        self.binding: HandlerRef | None = None

    @property
    def help(self) -> str | None:
        return self.attrs.get(HELP_ATTR)

    @property
    def callback(self) -> str | None:
        return self.attrs.get(CALLBACK_ATTR)

    @property
    def children(self) -> list[Node]:
        return []

    def bind(self, ref: HandlerRef, callback: str | None = None) -> Node:
        self.binding = ref
        if callback:
            self.attrs[CALLBACK_ATTR] = callback
        return self

    def match(self, tokens: list[str], pos: int) -> Iterator[_State]:
        raise NotImplementedError

    def complete(
        self, tokens: list[str], pos: int, partial: str
    ) -> Iterator[str]:
        return iter(())

    def syntax(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type_name}
        if self.id:
            data["id"] = self.id
        self._dump_config(data)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        attrs = {
            k: v for k, v in self.attrs.items() if isinstance(v, str)
        }
        if attrs:
            data["attrs"] = attrs
        return data

    def _dump_config(self, data: dict[str, Any]) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.syntax()!r}>"


class Keyword(Node):
    type_name = "str"

    def __init__(self, string: str, id: str | None = None,
                 help: str | None = None,
                 attrs: dict[str, Any] | None = None) -> None:
        super().__init__(id=id, help=help, attrs=attrs)
        self.string = string

    def match(self, tokens: list[str], pos: int) -> Iterator[_State]:
        if pos < len(tokens) and tokens[pos] == self.string:
            args = ((self.id, self.string),) if self.id else ()
            yield _State(pos + 1, (self,), args)

    def complete(
        self, tokens: list[str], pos: int, partial: str
    ) -> Iterator[str]:
        if pos == len(tokens) and self.string.startswith(partial):
            yield self.string

    def syntax(self) -> str:
        return self.string

    def _dump_config(self, data: dict[str, Any]) -> None:
        data["string"] = self.string


class Argument(Node):
    """A single free-form token, captured under its id."""

    type_name = "re"

    def __init__(self, id: str, pattern: str | None = None,
                 help: str | None = None,
                 attrs: dict[str, Any] | None = None) -> None:
        if not id:
            raise ValueError("Argument nodes need an id")
        super().__init__(id=id, help=help, attrs=attrs)
        if pattern is not None and not isinstance(pattern, str):
            raise ValueError(f"pattern for <{id}> must be a string")
        self.pattern = pattern
        try:
            self._regex = re.compile(pattern) if pattern else None
        except re.error as e:
            raise ValueError(f"bad pattern for <{id}>: {e}") from e

    def match(self, tokens: list[str], pos: int) -> Iterator[_State]:
        if pos >= len(tokens):
            return
        token = tokens[pos]
        if self._regex is not None and not self._regex.fullmatch(token):
            return
        yield _State(pos + 1, (self,), ((self.id, token),))

    def syntax(self) -> str:
        return f"<{self.id}>"

    def _dump_config(self, data: dict[str, Any]) -> None:
        if self.pattern:
            data["pattern"] = self.pattern


class Sequence(Node):
    type_name = "seq"

    def __init__(self, *children: Node, id: str | None = None,
                 help: str | None = None,
                 attrs: dict[str, Any] | None = None) -> None:
        super().__init__(id=id, help=help, attrs=attrs)
        self._children = list(children)

    @property
    def children(self) -> list[Node]:
        return self._children

    def _match_from(
        self, i: int, tokens: list[str], pos: int,
        nodes: tuple[Node, ...], args: tuple[tuple[str, str], ...],
    ) -> Iterator[_State]:
        if i == len(self._children):
            yield _State(pos, nodes, args)
            return
        for st in self._children[i].match(tokens, pos):
            yield from self._match_from(
                i + 1, tokens, st.pos, nodes + st.nodes, args + st.args
            )

    def match(self, tokens: list[str], pos: int) -> Iterator[_State]:
        for st in self._match_from(0, tokens, pos, (), ()):
            yield _State(st.pos, (self,) + st.nodes, st.args)

    def _complete_from(
        self, i: int, tokens: list[str], pos: int, partial: str
    ) -> Iterator[str]:
        if i == len(self._children):
            return
        child = self._children[i]
        yield from child.complete(tokens, pos, partial)
        for st in child.match(tokens, pos):
            yield from self._complete_from(i + 1, tokens, st.pos, partial)

    def complete(
        self, tokens: list[str], pos: int, partial: str
    ) -> Iterator[str]:
        yield from self._complete_from(0, tokens, pos, partial)

    def syntax(self) -> str:
        return " ".join(c.syntax() for c in self._children)


class Choice(Node):
    type_name = "or"

    def __init__(self, *children: Node, id: str | None = None,
                 help: str | None = None,
                 attrs: dict[str, Any] | None = None) -> None:
        super().__init__(id=id, help=help, attrs=attrs)
        self._children = list(children)

    @property
    def children(self) -> list[Node]:
        return self._children

    def add(self, node: Node) -> Node:
        self._children.append(node)
        return node

    def match(self, tokens: list[str], pos: int) -> Iterator[_State]:
        for child in self._children:
            for st in child.match(tokens, pos):
                yield _State(st.pos, (self,) + st.nodes, st.args)

    def complete(
        self, tokens: list[str], pos: int, partial: str
    ) -> Iterator[str]:
        for child in self._children:
            yield from child.complete(tokens, pos, partial)

    def syntax(self) -> str:
        if len(self._children) == 1:
            return self._children[0].syntax()
        return "(" + "|".join(c.syntax() for c in self._children) + ")"


class Option(Node):
    type_name = "option"

    def __init__(self, child: Node, id: str | None = None,
                 help: str | None = None,
                 attrs: dict[str, Any] | None = None) -> None:
        super().__init__(id=id, help=help, attrs=attrs)
        self.child = child

    @property
    def children(self) -> list[Node]:
        return [self.child]

    def match(self, tokens: list[str], pos: int) -> Iterator[_State]:
        for st in self.child.match(tokens, pos):
            yield _State(st.pos, (self,) + st.nodes, st.args)
        yield _State(pos, (), ())

    def complete(
        self, tokens: list[str], pos: int, partial: str
    ) -> Iterator[str]:
        yield from self.child.complete(tokens, pos, partial)

    def syntax(self) -> str:
        return f"[{self.child.syntax()}]"


_NODE_TYPES: dict[str, type[Node]] = {
    "str": Keyword,
    "re": Argument,
    "seq": Sequence,
    "or": Choice,
    "option": Option,
}


def node_from_dict(data: dict[str, Any]) -> Node:
    """Build a node tree from its serialized form.

    Nodes carrying a ``callback`` attribute get a Symbolic binding, so a
    tree loaded this way always dispatches by name.
    """
    if not isinstance(data, dict):
        raise ValueError(f"grammar node must be a mapping, got {data!r}")
    type_name = data.get("type")
    if type_name not in _NODE_TYPES:
        raise ValueError(f"unknown grammar node type: {type_name!r}")

    attrs = data.get("attrs") or {}
    if not isinstance(attrs, dict):
        raise ValueError("grammar node attrs must be a mapping")
    node_id = data.get("id")
    raw_children = data.get("children") or []
    if not isinstance(raw_children, list):
        raise ValueError("grammar node children must be a list")
    children = [node_from_dict(c) for c in raw_children]

    node: Node
    if type_name == "str":
        string = data.get("string")
        if not isinstance(string, str) or not string:
            raise ValueError("str node requires a non-empty 'string'")
        node = Keyword(string, id=node_id, attrs=attrs)
    elif type_name == "re":
        node = Argument(node_id, pattern=data.get("pattern"), attrs=attrs)
    elif type_name == "seq":
        node = Sequence(*children, id=node_id, attrs=attrs)
    elif type_name == "or":
        node = Choice(*children, id=node_id, attrs=attrs)
    else:
        if len(children) != 1:
            raise ValueError("option node requires exactly one child")
        node = Option(children[0], id=node_id, attrs=attrs)

    callback = attrs.get(CALLBACK_ATTR)
    if isinstance(callback, str) and callback:
        node.binding = Symbolic(callback)
    return node


def build_command(expr: str, *args: Node, help: str | None = None) -> Node:
    """Build a command node from a space-separated expression.

    Words naming the id of one of ``args`` become that argument node; the
    other words become keywords. Id-less extra nodes (options) are appended.
    A single bare word yields a plain Keyword.
    """
    words = expr.split()
    if not words:
        raise ValueError("command expression must not be empty")
    by_id = {a.id: a for a in args if a.id}
    if len(words) == 1 and not args:
        return Keyword(words[0], help=help)

    parts: list[Node] = []
    used: set[str] = set()
    for word in words:
        if word in by_id:
            parts.append(by_id[word])
            used.add(word)
        else:
            parts.append(Keyword(word))
    parts.extend(a for a in args if not a.id or a.id not in used)
    return Sequence(*parts, help=help)


@dataclass
class MatchResult:
    """Outcome of parsing one line."""

    line: str
    tokens: list[str]
    nodes: tuple[Node, ...] = ()
    args: dict[str, str] = field(default_factory=dict)
    matches: bool = False

    def arg_str(self, id: str) -> str | None:
        return self.args.get(id)

    def arg_int(self, id: str, default: int = 0) -> int:
        value = self.args.get(id)
        if value is None:
            return default
        for base in (10, 0):
            try:
                return int(value, base)
            except ValueError:
                continue
        return default


class TokenGrammar:
    """Grammar over a node tree, implementing the Grammar protocol."""

    def __init__(self, root: Node) -> None:
        self.root = root

    def parse(self, text: str) -> MatchResult | None:
        try:
            tokens = shlex.split(text)
        except ValueError:
            return None
        for st in self.root.match(tokens, 0):
            if st.pos == len(tokens):
                return MatchResult(
                    line=text, tokens=tokens, nodes=st.nodes,
                    args=dict(st.args), matches=True,
                )
        return MatchResult(line=text, tokens=tokens)

    def complete(self, text: str) -> list[str]:
        try:
            tokens = shlex.split(text)
        except ValueError:
            return []
        if not text or text[-1].isspace() or not tokens:
            partial = ""
        else:
            partial = tokens.pop()

        seen: list[str] = []
        for candidate in self.root.complete(tokens, 0, partial):
            if candidate not in seen:
                seen.append(candidate)
        return seen

    def iter_commands(self) -> Iterator[tuple[str, str]]:
        yield from _walk_commands(self.root, [])

    def to_dict(self) -> dict[str, Any]:
        return self.root.to_dict()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenGrammar:
        return cls(node_from_dict(data))


def _walk_commands(
    node: Node, prefix: list[str]
) -> Iterator[tuple[str, str]]:
    if node.binding is not None or node.callback:
        yield " ".join(prefix + [node.syntax()]), node.help or ""
        return
    if isinstance(node, Sequence):
        local = list(prefix)
        for child in node.children:
            if isinstance(child, (Sequence, Choice)):
                yield from _walk_commands(child, local)
            else:
                local.append(child.syntax())
        return
    for child in node.children:
        yield from _walk_commands(child, prefix)
