# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import print_formatted_text


class PromptToolkitUI:
    """
    Terminal line reader for the local session.

    - Line editing and history (kept in a file when a path is given)
    - Keeps terminal scrollback + copy/select (no full-screen app)
    """

    def __init__(self, history_path: Path | None = None) -> None:
        self.history_path = history_path
        self.session: PromptSession[str] | None = None

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

    def _history(self) -> History:
        if self.history_path is None:
            return InMemoryHistory()
        self.history_path.parent.mkdir(parents=True, exist_ok=True)
        return FileHistory(str(self.history_path))

    def _ensure_session(self) -> None:
        if self.session is not None:
            return
        self.session = PromptSession(history=self._history())

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        if self._needs_newline_before_prompt:
            print_formatted_text(ANSI("\n"), end="")
            self._needs_newline_before_prompt = False

        with patch_stdout():
            return self.session.prompt(prompt)

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline).

        Track prompt safety.
        """
        if not text:
            return
        print_formatted_text(ANSI(text), end="")
        self._needs_newline_before_prompt = not text.endswith("\n")
