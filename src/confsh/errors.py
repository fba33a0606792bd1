# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Error taxonomy for confsh.

Every error is handled where it is detected and turned into a message on
the session's output channel. None of them is process-fatal.
"""

from __future__ import annotations


class ConfshError(Exception):
    """Base class for all confsh errors."""


class ParseError(ConfshError):
    """Input could not be tokenized or parsed at all."""


class NoMatchError(ConfshError):
    """Input is well formed but no grammar path matches it."""


class AmbiguousToken(ConfshError):
    """A token has zero or several completions during expansion.

    Internal to abbreviation expansion; never reaches the user.
    """


class ContextUnderflow(ConfshError):
    """exit was requested with an empty context stack."""

    def __init__(self, message: str = "Already at top level") -> None:
        super().__init__(message)


class NoHandlerError(ConfshError):
    """A matched grammar leaf has no bound or resolvable handler."""


class DuplicateClientRejected(ConfshError):
    """A second remote client tried to attach while one is active."""

    def __init__(self, active_address: str) -> None:
        self.active_address = active_address
        super().__init__(f"Another session is active from {active_address}")


class FileIOError(ConfshError):
    """Config load/save or grammar export failed on the filesystem."""
