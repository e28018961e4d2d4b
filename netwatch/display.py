"""Terminal output: a live single status line on a TTY, plain lines otherwise."""

from __future__ import annotations

import sys
from typing import TextIO

_RED = "\033[31m"
_GREEN = "\033[32m"
_RESET = "\033[0m"
_CLEAR_LINE = "\r\033[2K"


class StatusLine:
    """Rewrites one line in place when live updates are possible.

    ``live`` is only honored when the stream is a terminal; redirected output
    always gets one line per update.
    """

    def __init__(self, stream: TextIO | None = None, live: bool = True):
        self.stream = stream if stream is not None else sys.stderr
        isatty = getattr(self.stream, "isatty", None)
        self.is_tty = bool(isatty and isatty())
        self.live = live and self.is_tty
        self._pending = False

    def update(self, msg: str) -> None:
        if self.live:
            self.stream.write(f"{_CLEAR_LINE}{msg}")
            self._pending = True
        else:
            self.stream.write(f"{msg}\n")
        self.stream.flush()

    def clear(self) -> None:
        """Wipe the live line so the next write starts on a clean line."""
        if self._pending:
            self.stream.write(_CLEAR_LINE)
            self.stream.flush()
            self._pending = False

    def finish(self) -> None:
        """Move off the live line, keeping its text visible."""
        if self._pending:
            self.stream.write("\n")
            self.stream.flush()
            self._pending = False

    def emit(self, msg: str) -> None:
        """Print a permanent line without losing the live line's position."""
        self.clear()
        self.stream.write(f"{msg}\n")
        self.stream.flush()

    def color(self, text: str, code: str) -> str:
        if not self.is_tty:
            return text
        return f"{code}{text}{_RESET}"

    def up(self, text: str) -> str:
        return self.color(text, _GREEN)

    def down(self, text: str) -> str:
        return self.color(text, _RED)
