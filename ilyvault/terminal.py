"""A minimal ANSI terminal: clearing, cursor placement, boxes and line input."""

from __future__ import annotations

import sys
from typing import TextIO

CLEAR = "\033c"


class Terminal:
    """Writes ANSI-positioned text to ``stdout`` and reads lines from ``stdin``."""

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self.stdin = sys.stdin if stdin is None else stdin
        self.stdout = sys.stdout if stdout is None else stdout

    def write(self, text: str) -> None:
        """Write ``text`` at the cursor."""
        self.stdout.write(text)
        self.stdout.flush()

    def clear(self) -> None:
        """Reset the screen."""
        self.write(CLEAR)

    def move_to(self, x: int, y: int) -> None:
        """Put the cursor at column ``x``, row ``y`` (both 1-based)."""
        self.write(f"\033[{y};{x}H")

    def write_at(self, x: int, y: int, text: str) -> None:
        """Write ``text`` starting at column ``x``, row ``y``."""
        self.move_to(x, y)
        self.write(text)

    def draw_box(self, x: int, y: int, text: str) -> None:
        """Draw ``text`` inside a double-lined frame whose top-left corner is at ``(x, y)``."""
        bar = "═" * len(text)
        self.write_at(x, y, f"╔{bar}╗")
        self.write_at(x, y + 1, f"║{text}║")
        self.write_at(x, y + 2, f"╚{bar}╝")

    def read_line(self) -> str:
        """Read one line with surrounding whitespace removed; raise ``EOFError`` at end of input."""
        line = self.stdin.readline()
        if not line:
            raise EOFError("end of input")
        return line.strip()