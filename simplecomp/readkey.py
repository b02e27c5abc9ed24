"""Keyboard input: raw terminal mode, key decoding and line editing."""

from __future__ import annotations

import contextlib
import enum
import os
import sys
from typing import Iterator, TextIO

from .cell import parse_cell

try:
    import termios
except ImportError:  # pragma: no cover - non-POSIX platforms
    termios = None

_ESC = 0x1B
_MAX_KEY_BYTES = 5
_KEY_MASK = 0xFFFFFFFF


class Key(enum.IntEnum):
    """Key codes: the bytes a key sends, read as a little-endian integer."""

    NUM_1 = ord("1")
    NUM_2 = ord("2")
    NUM_3 = ord("3")
    NUM_4 = ord("4")
    NUM_5 = ord("5")
    NUM_6 = ord("6")
    NUM_7 = ord("7")
    NUM_8 = ord("8")
    NUM_9 = ord("9")
    NUM_0 = ord("0")
    A = ord("a")
    I = ord("i")  # noqa: E741
    L = ord("l")
    R = ord("r")
    S = ord("s")
    T = ord("t")
    Z = ord("z")
    UPPER_A = ord("A")
    UPPER_Z = ord("Z")
    PLUS = ord("+")
    MINUS = ord("-")
    ESC = 27
    LEFT = 4479771
    UP = 4283163
    DOWN = 4348699
    RIGHT = 4414235
    F5 = 892427035
    F6 = 925981467
    ENTER = 10
    BACKSPACE = 127


def decode_key(data: bytes) -> int:
    """Turn the bytes of one key press into a Key, or a plain int if unknown."""
    value = int.from_bytes(data[:_MAX_KEY_BYTES], "little") & _KEY_MASK
    if value >= 1 << 31:
        value -= 1 << 32
    try:
        return Key(value)
    except ValueError:
        return value


def _key_length(data: bytes) -> int:
    """Length of the first key press in a chunk of input."""
    if data[0] != _ESC or len(data) == 1:
        return 1
    if data[1] == ord("O"):
        return min(3, len(data))
    if data[1] != ord("["):
        return 1
    for index in range(2, len(data)):
        if 0x40 <= data[index] <= 0x7E:
            return index + 1
    return len(data)


class KeyReader:
    """Reads key presses from a file descriptor and echoes edits to an output."""

    def __init__(self, fd: int | None = None, output: TextIO | None = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self.output = sys.stdout if output is None else output
        self._pending = b""

    def _is_tty(self) -> bool:
        return termios is not None and os.isatty(self.fd)

    def _echo(self, text: str) -> None:
        self.output.write(text)
        self.output.flush()

    @contextlib.contextmanager
    def raw_mode(
        self,
        canonical: bool = False,
        vtime: int = 2,
        vmin: int = 0,
        echo: bool = False,
    ) -> Iterator[None]:
        """Switch the terminal mode for the duration of the block, then restore it."""
        if not self._is_tty():
            yield
            return
        saved = termios.tcgetattr(self.fd)
        mode = [*saved[:6], list(saved[6])]
        lflag = mode[3]
        lflag = lflag | termios.ICANON if canonical else lflag & ~termios.ICANON
        lflag = lflag | termios.ECHO if echo else lflag & ~termios.ECHO
        mode[3] = lflag
        mode[6][termios.VTIME] = vtime
        mode[6][termios.VMIN] = vmin
        termios.tcsetattr(self.fd, termios.TCSANOW, mode)
        try:
            yield
        finally:
            termios.tcsetattr(self.fd, termios.TCSANOW, saved)

    def _fill(self) -> bytes:
        with self.raw_mode(False, 2, 0, False):
            while True:
                data = os.read(self.fd, _MAX_KEY_BYTES)
                if data:
                    return data
                if not self._is_tty():
                    raise EOFError("no more input")

    def read_key(self) -> int:
        """Wait for one key press and return its code."""
        if not self._pending:
            self._pending = self._fill()
        size = _key_length(self._pending)
        chunk, self._pending = self._pending[:size], self._pending[size:]
        return decode_key(chunk)

    def read_line(self, limit: int) -> str | None:
        """Read at most limit - 1 characters up to Enter; None if Esc cancels."""
        chars: list[str] = []
        while True:
            key = self.read_key()
            if key == Key.BACKSPACE:
                if chars:
                    chars.pop()
                    self._echo("\033[D \033[D")
                continue
            if key == Key.ESC:
                return None
            if key == Key.ENTER:
                return "".join(chars)
            if len(chars) >= limit - 1 or not 0 <= key <= 0xFF:
                continue
            char = chr(key)
            chars.append(char)
            self._echo(char)

    def read_value(self) -> int | None:
        """Read a cell in '+CCOO' notation; None if cancelled.

        Raises a CellError subclass when the text is not a valid cell.
        """
        self._echo("     \033[5D")
        text = self.read_line(6)
        if text is None:
            return None
        return parse_cell(text)