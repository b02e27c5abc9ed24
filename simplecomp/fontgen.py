"""Command that compiles a text font description into a binary font file."""

from __future__ import annotations

import sys

from .bigchars import Font, FontError
from .terminal import Color, Terminal


def _error(terminal: Terminal, message: str) -> None:
    terminal.set_fg(Color.RED)
    terminal.write(message)
    terminal.set_default_color()


def main(argv=None) -> int:
    """Run the font generator: font <source> <destination>."""
    args = sys.argv[1:] if argv is None else list(argv)
    terminal = Terminal()
    if len(args) < 2:
        terminal.write("Usage: font <source> <destination>\n")
        return 1
    source, destination = args[0], args[1]

    try:
        with open(source, encoding="utf-8", errors="replace") as fh:
            text = fh.read()
    except OSError:
        _error(terminal, "Sources not found.\n")
        return 1

    try:
        font = Font.from_text(text)
    except FontError as exc:
        _error(terminal, f"Error during parsing font source: {exc}\n")
        return 1

    try:
        font.save(destination)
    except OSError as exc:
        _error(terminal, f"Error happened during saving: {exc}\n")
        return 1

    terminal.write("Font generated successfully (◕▿◕✿)\n")
    terminal.write(f"Loaded {len(font)} glyphs.\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())