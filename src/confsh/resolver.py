# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command resolution.

Per input line:
1. blank -> nothing
2. "end" -> leave every context; "exit" inside a context -> leave one
3. prefix the context path and parse
4. unparseable -> "Parse error"
5. incomplete -> try abbreviation expansion, then context-group entry,
   then "Unknown command"
6. complete -> dispatch, "Command failed" if the handler says so

Abbreviation expansion is greedy and strictly left to right: each token is
completed on its own against the text accepted so far, so a line can be
accepted even when the whole line would complete differently.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from .errors import AmbiguousToken, NoHandlerError, NoMatchError, ParseError

if TYPE_CHECKING:
    from .interfaces import Grammar  # pragma: no cover

logger = logging.getLogger(__name__)

END_KEYWORD = "end"
EXIT_KEYWORD = "exit"


class Outcome(Enum):
    NOOP = "noop"
    CONTEXT = "context"
    DISPATCHED = "dispatched"
    FAILED = "failed"
    PARSE_ERROR = "parse_error"
    NO_MATCH = "no_match"
    NO_HANDLER = "no_handler"


# -----------------------
# Abbreviation expansion
# -----------------------


def _expand_token(grammar: Grammar, partial: str, token: str) -> str:
    candidates = grammar.complete(partial)
    if len(candidates) != 1:
        raise AmbiguousToken(
            f"{token!r} has {len(candidates)} completions"
        )
    return candidates[0]


def expand_prefixes(grammar: Grammar, command: str) -> str | None:
    """Expand abbreviated keywords in ``command``.

    Returns:
        The rebuilt command, or None when no token changed.
    """
    result = ""
    changed = False
    for token in command.split():
        partial = f"{result} {token}" if result else token
        try:
            adopted = _expand_token(grammar, partial, token)
        except AmbiguousToken as e:
            logger.debug("no expansion for %s: %s", token, e)
            adopted = token
        if adopted != token:
            changed = True
        result = f"{result} {adopted}" if result else adopted
    return result if changed else None


# -----------------------
# Resolve + dispatch
# -----------------------


def _match(grammar: Grammar, full: str) -> Any:
    """Parse ``full``, falling back to its abbreviation expansion.

    Raises:
        ParseError: the line cannot be tokenized.
        NoMatchError: neither the line nor its expansion is a complete match.
    """
    result = grammar.parse(full)
    if result is None:
        raise ParseError("Parse error")
    if result.matches:
        return result

    expanded = expand_prefixes(grammar, full)
    if expanded is not None:
        retry = grammar.parse(expanded)
        if retry is not None and retry.matches:
            logger.debug("expanded %r -> %r", full, expanded)
            return retry
    raise NoMatchError(full)


def _resolve(session: Any, full: str, line: str, interactive: bool) -> Outcome:
    try:
        result = _match(session.grammar, full)
    except ParseError as e:
        session.err(str(e))
        return Outcome.PARSE_ERROR
    except NoMatchError:
        if (
            interactive
            and len(line.split()) == 1
            and line in session.registry.context_groups
        ):
            session.context.enter(line)
            return Outcome.CONTEXT
        session.err(f"Unknown command: {line}")
        return Outcome.NO_MATCH

    try:
        ok = session.registry.dispatch.dispatch(session, result, session.mode)
    except NoHandlerError as e:
        logger.warning("%s (line: %s)", e, full)
        session.err("No handler for command")
        return Outcome.NO_HANDLER

    if not ok:
        session.err("Command failed")
        return Outcome.FAILED
    return Outcome.DISPATCHED


def process_line(session: Any, line: str) -> Outcome:
    """Resolve one interactive line against ``session``."""
    line = line.strip()
    if not line:
        return Outcome.NOOP

    context = session.context
    if line == END_KEYWORD:
        context.exit_all()
        return Outcome.CONTEXT
    if line == EXIT_KEYWORD and context.depth > 0:
        context.exit_one()
        return Outcome.CONTEXT

    return _resolve(
        session, context.build_full_command(line), line, interactive=True
    )


def execute(session: Any, line: str) -> Outcome:
    """Resolve one replayed line: no end/exit handling, no context entry."""
    line = line.strip()
    if not line:
        return Outcome.NOOP
    return _resolve(
        session,
        session.context.build_full_command(line),
        line,
        interactive=False,
    )
