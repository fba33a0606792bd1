# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
External grammar definitions (YAML).

- export_grammar(): write the compiled grammar as an editable template
- load_grammar(): read such a file back (nodes bound by callback name)
- load_formats(): read the companion "<stem>_formats<ext>" override file
- select_grammar(): pick the grammar a session runs with, falling back to
  the compiled grammar on any load failure
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .dispatch import DispatchMode, Symbolic
from .errors import ConfshError, FileIOError
from .grammar import Node, TokenGrammar, node_from_dict
from .registry import Registry

logger = logging.getLogger(__name__)

DEFAULT_GRAMMAR_ENV = "CONFSH_GRAMMAR"
FORMATS_KEY = "output_formats"

GRAMMAR_HEADER = """\
# {app} CLI Grammar Template
#
# This file defines the CLI grammar in YAML format.
# You can customize this file to create an alternate CLI interface.
#
# USAGE:
#   1. Export this template:  write yaml grammar.yaml
#   2. Edit the file to customize command names and help strings
#   3. Set environment: {env}=grammar.yaml
#   4. Restart the application; it will use the edited grammar
#
# TRANSLATION EXAMPLE:
#   To translate the CLI to French:
#     - Change 'string: help' to 'string: aide'
#     - Change 'string: quit' to 'string: quitter'
#     - Change 'string: show' to 'string: afficher'
#     - Translate all 'help:' strings to French
#
# IMPORTANT:
#   - Keep all 'attrs: callback:' values unchanged (they select the handler)
#   - Keep 'id:' values unchanged (they are used for argument extraction)
#   - Only modify 'string:', 'help:', and 'pattern:' values
#
# OUTPUT FORMATS:
#   Create a companion file 'grammar_formats.yaml' with:
#     output_formats:
#       set_name: "set name {{value}}\\n"
#   These override the default output for 'write terminal'.
#
# =============================================================================
"""


@dataclass
class GrammarSelection:
    """The grammar a session runs with, and how it dispatches."""

    grammar: Any
    mode: DispatchMode
    overrides: dict[str, str] = field(default_factory=dict)
    source: Path | None = None


def formats_path(grammar_path: Path) -> Path:
    """grammar.yaml -> grammar_formats.yaml"""
    return grammar_path.with_name(
        f"{grammar_path.stem}_formats{grammar_path.suffix}"
    )


def _read_yaml(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except OSError as e:
        raise FileIOError(f"Cannot read {path}: {e}") from e


def load_grammar(path: Path) -> TokenGrammar:
    """Load a grammar definition written by export_grammar().

    Raises:
        FileIOError: the file cannot be read.
        ValueError: the content is not a valid grammar tree.
        yaml.YAMLError: the file is not valid YAML.
    """
    data = _read_yaml(path)
    if not isinstance(data, dict):
        raise ValueError(f"Grammar file {path} must load to a mapping.")
    return TokenGrammar(node_from_dict(data))


def load_formats(path: Path) -> dict[str, str]:
    """Load output format overrides; a missing file means no overrides."""
    if not path.exists():
        return {}
    data = _read_yaml(path) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Formats file {path} must load to a mapping.")
    formats = data.get(FORMATS_KEY) or {}
    if not isinstance(formats, dict):
        raise ValueError(f"'{FORMATS_KEY}' in {path} must be a mapping.")

    out: dict[str, str] = {}
    for name, template in formats.items():
        if not isinstance(template, str):
            raise ValueError(
                f"Output format for {name!r} must be a string."
            )
        out[str(name)] = template
    return out


def export_grammar(
    grammar: Any,
    path: Path,
    app_name: str = "confsh",
    env_var: str = DEFAULT_GRAMMAR_ENV,
) -> None:
    """Write ``grammar`` as a YAML template with an explanatory header.

    Raises:
        FileIOError: the file cannot be written.
    """
    body = yaml.safe_dump(
        grammar.to_dict(),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    header = GRAMMAR_HEADER.format(app=app_name, env=env_var)
    try:
        with path.open("w", encoding="utf-8") as f:
            f.write(header)
            f.write(body)
    except OSError as e:
        raise FileIOError(f"Cannot write {path}: {e}") from e


def _iter_nodes(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from _iter_nodes(child)


def unbound_callbacks(grammar: TokenGrammar, registry: Registry) -> list[str]:
    """Callback names used by ``grammar`` that no handler is registered for."""
    missing: list[str] = []
    for node in _iter_nodes(grammar.root):
        ref = node.binding
        if isinstance(ref, Symbolic) and ref.name not in registry.dispatch:
            if ref.name not in missing:
                missing.append(ref.name)
    return missing


def select_grammar(
    registry: Registry,
    env_var: str = DEFAULT_GRAMMAR_ENV,
    environ: Mapping[str, str] | None = None,
) -> GrammarSelection:
    """Choose the compiled grammar or the one named by ``env_var``.

    A grammar loaded from file runs in symbolic mode together with its
    format overrides. Any failure while loading either file is logged and
    the compiled grammar is used in direct mode instead.
    """
    environ = os.environ if environ is None else environ
    compiled = GrammarSelection(registry.grammar(), DispatchMode.DIRECT)

    raw = environ.get(env_var)
    if not raw:
        return compiled

    path = Path(raw)
    try:
        grammar = load_grammar(path)
        overrides = load_formats(formats_path(path))
    except (ConfshError, ValueError, yaml.YAMLError) as e:
        logger.warning(
            "Failed to load grammar from %s (%s); using built-in grammar",
            path, e,
        )
        return compiled

    for name in unbound_callbacks(grammar, registry):
        logger.warning("Grammar %s references unknown callback %s", path, name)

    logger.info(
        "Loaded grammar from %s (%d output format overrides)",
        path, len(overrides),
    )
    return GrammarSelection(grammar, DispatchMode.SYMBOLIC, overrides, path)
