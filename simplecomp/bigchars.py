"""Big 8x8 glyphs, fonts of them and box drawing."""

from __future__ import annotations

import os
import struct
from typing import Iterable

from .terminal import Color, Terminal

BIGCHAR_WIDTH = 8
BIGCHAR_HEIGHT = 8
GLYPH_MAP = "0123456789abcdef+-"
NULL_GLYPH = bytes([0, 126, 66, 66, 66, 66, 126, 0])
MAX_TEXT_GLYPHS = 18

_COUNT = struct.Struct("<i")


class FontError(ValueError):
    """A font or its source text is malformed."""


def _check_position(x: int, y: int) -> None:
    if not 0 <= x < BIGCHAR_WIDTH or not 0 <= y < BIGCHAR_HEIGHT:
        raise ValueError(f"pixel ({x}, {y}) outside the glyph")


def get_pixel(glyph: bytes, x: int, y: int) -> int:
    """Return the pixel at column x, row y (0 or 1)."""
    _check_position(x, y)
    return (glyph[y] >> x) & 1


def set_pixel(glyph: bytes, x: int, y: int, value: int) -> bytes:
    """Return a copy of the glyph with one pixel set or cleared."""
    _check_position(x, y)
    rows = bytearray(glyph)
    if value:
        rows[y] |= 1 << x
    else:
        rows[y] &= ~(1 << x) & 0xFF
    return bytes(rows)


def char_to_glyph(char: str) -> int | None:
    """Map a hex digit or sign character to its glyph index."""
    if len(char) != 1:
        return None
    index = GLYPH_MAP.find(char)
    return index if index >= 0 else None


def visible_length(text: str) -> int:
    """Count characters as UTF-8 lead bytes."""
    return sum(1 for byte in text.encode("utf-8") if byte & 0xC0 != 0x80)


class Font:
    """An ordered set of 8x8 glyphs."""

    def __init__(self, glyphs: Iterable[bytes]):
        self._glyphs = tuple(bytes(glyph) for glyph in glyphs)
        for glyph in self._glyphs:
            if len(glyph) != BIGCHAR_HEIGHT:
                raise FontError(f"glyph must have {BIGCHAR_HEIGHT} rows")

    def __len__(self) -> int:
        return len(self._glyphs)

    def glyph(self, index: int) -> bytes:
        if not 0 <= index < len(self._glyphs):
            raise IndexError(f"no glyph {index}")
        return self._glyphs[index]

    @classmethod
    def from_text(cls, text: str) -> Font:
        """Build a font from rows of '#' pixels, each glyph ended by '-'."""
        glyphs: list[bytes] = []
        rows = bytearray(BIGCHAR_HEIGHT)
        y = 0
        for number, line in enumerate(text.splitlines(), start=1):
            if line.startswith("-"):
                if len(glyphs) >= MAX_TEXT_GLYPHS:
                    raise FontError(f"more than {MAX_TEXT_GLYPHS} glyphs")
                glyphs.append(bytes(rows))
                y = 0
                continue
            if y >= BIGCHAR_HEIGHT:
                raise FontError(f"line {number}: glyph has too many rows")
            rows[y] = sum(1 << i for i, ch in enumerate(line[:BIGCHAR_WIDTH]) if ch == "#")
            y += 1
        return cls(glyphs)

    @classmethod
    def load(cls, path: str | os.PathLike) -> Font:
        """Read a binary font file: glyph count then eight bytes per glyph."""
        with open(path, "rb") as fh:
            header = fh.read(_COUNT.size)
            count = _COUNT.unpack(header)[0] if len(header) == _COUNT.size else 0
            if count <= 0:
                return cls([])
            data = fh.read(count * BIGCHAR_HEIGHT)
        available = len(data) // BIGCHAR_HEIGHT
        return cls(
            data[i * BIGCHAR_HEIGHT:(i + 1) * BIGCHAR_HEIGHT] for i in range(available)
        )

    def save(self, path: str | os.PathLike) -> None:
        with open(path, "wb") as fh:
            fh.write(_COUNT.pack(len(self._glyphs)))
            fh.write(b"".join(self._glyphs))
        os.chmod(path, 0o606)


def draw_box(
    terminal: Terminal,
    x1: int,
    y1: int,
    x2: int,
    y2: int,
    header: str,
    box_fg: int = Color.NOTHING,
    box_bg: int = Color.NOTHING,
    header_fg: int = Color.NOTHING,
    header_bg: int = Color.NOTHING,
) -> None:
    """Draw a line-art frame with a centred header on its top edge."""
    if x2 - x1 < 2 or y2 - y1 < 2:
        raise ValueError("box is too small")
    if header is None:
        raise ValueError("box needs a header")
    if y1 == 0:
        y1 += 1
        y2 += 1
    inner = x2 - x1 - 2

    terminal.goto(x1, y1)
    terminal.alt()
    terminal.set_bg(box_bg)
    terminal.set_fg(box_fg)
    terminal.write("l" + "q" * inner + "k")
    for i in range(1, y2 - y1):
        terminal.goto(x1, y1 + i)
        terminal.write("x" + " " * inner + "x")
    terminal.goto(x1, y2 - 1)
    terminal.write("m" + "q" * inner + "j")
    terminal.set_default_color()
    terminal.dealt()

    center = x1 + (x2 - x1) // 2
    terminal.goto(center - visible_length(header) // 2, y1)
    terminal.set_bg(header_bg)
    terminal.set_fg(header_fg)
    terminal.write(header)
    terminal.set_default_color()


def print_big_char(
    terminal: Terminal,
    font: Font | None,
    index: int | None,
    x: int,
    y: int,
    fg: int = Color.NOTHING,
    bg: int = Color.NOTHING,
) -> bool:
    """Draw a glyph at (x, y); draws the null glyph and returns False when missing."""
    glyph = NULL_GLYPH
    found = font is not None and index is not None and 0 <= index < len(font)
    if found:
        glyph = font.glyph(index)
    terminal.set_fg(fg)
    terminal.set_bg(bg)
    terminal.alt()
    for row in range(BIGCHAR_HEIGHT):
        terminal.goto(x, y + row)
        terminal.write(
            "".join("a" if get_pixel(glyph, col, row) else " " for col in range(BIGCHAR_WIDTH))
        )
    terminal.dealt()
    terminal.set_default_color()
    return found