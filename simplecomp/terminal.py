"""ANSI terminal output helpers."""

from __future__ import annotations

import enum
import os
import sys
from typing import TextIO


class Color(enum.IntEnum):
    """SGR colour codes; NOTHING leaves the colour unchanged."""

    NOTHING = -1
    RESET = 0
    INVERSE = 7
    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37
    DEFAULT = 39
    BRIGHT_BLACK = 90
    BRIGHT_RED = 91
    BRIGHT_GREEN = 92
    BRIGHT_YELLOW = 93
    BRIGHT_BLUE = 94
    BRIGHT_MAGENTA = 95
    BRIGHT_CYAN = 96
    BRIGHT_WHITE = 97


DEFAULT_SCREEN_SIZE = (24, 80)


class Terminal:
    """Writes text and control sequences to a text stream."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream if stream is not None else sys.stdout

    def write(self, text: str) -> int:
        written = self.stream.write(text)
        self.stream.flush()
        return written

    def alt(self) -> int:
        """Switch to the line-drawing character set."""
        return self.write("\033(0")

    def dealt(self) -> int:
        """Switch back to the normal character set."""
        return self.write("\033(B")

    def clear_screen(self) -> int:
        return self.write("\033[H\033[2J")

    def delete_line(self) -> int:
        return self.write("\r\033[2K")

    def goto(self, x: int, y: int) -> int:
        """Move the cursor to column x, row y."""
        if not 0 <= x < 1000 or not 0 <= y < 1000:
            raise ValueError(f"cursor position ({x}, {y}) out of range")
        return self.write(f"\033[{y};{x}H")

    def set_fg(self, color: int) -> int:
        if color <= Color.NOTHING:
            return 0
        return self.write(f"\033[{int(color)}m")

    def set_bg(self, color: int) -> int:
        if color <= Color.NOTHING:
            return 0
        return self.write(f"\033[{int(color) + 10}m")

    def set_default_color(self) -> int:
        return self.write("\033[0m")

    def set_cursor_visible(self, visible: bool) -> int:
        return self.write("\033[?25h" if visible else "\033[?25l")

    def screen_size(self) -> tuple[int, int]:
        """Return (rows, columns); falls back to 24x80 when unknown."""
        try:
            size = os.get_terminal_size(self.stream.fileno())
        except (OSError, ValueError, AttributeError):
            return DEFAULT_SCREEN_SIZE
        return size.lines, size.columns