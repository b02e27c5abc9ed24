"""An educational simple computer: emulator, terminal console, assembler and font tools."""

__version__ = "0.1.0"
__all__ = [
    "app",
    "assembler",
    "bigchars",
    "cell",
    "computer",
    "fontgen",
    "navigation",
    "readkey",
    "screen",
    "terminal",
]