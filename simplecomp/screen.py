"""Drawing the console: memory grid, registers, big cell view and I/O log."""

from __future__ import annotations

from collections import deque
from typing import Iterator, NamedTuple

from .bigchars import Font, char_to_glyph, draw_box, print_big_char
from .cell import (
    BITS_PER_CELL,
    MEMORY_SIZE,
    CellError,
    CellFormatError,
    CommandOverflowError,
    NegativeZeroError,
    OperandOverflowError,
    SignError,
    decode,
    format_cell,
    is_valid_command,
)
from .computer import AddressError, Flag, SimpleComputer
from .terminal import Color, Terminal

SCREEN_WIDTH = 23 + 23 + 61
SCREEN_HEIGHT = 15 + 3 + 7 + 1

MINI_BLOCK_WIDTH = 23
MINI_BLOCK_HEIGHT = 3

RAM_WIDTH = 61
RAM_HEIGHT = 16
RAM_COLUMNS = 10

ACCUMULATOR_OFFSET_X = RAM_WIDTH + 1
FLAGS_OFFSET_X = ACCUMULATOR_OFFSET_X + MINI_BLOCK_WIDTH + 1
INCOUNTER_OFFSET_Y = 4
TERM_OFFSET_X = RAM_WIDTH + 5
KEYBINDS_OFFSET_X = RAM_WIDTH + 16
LOW_OFFSET_Y = RAM_HEIGHT + 3
COMMAND_LINE_Y = LOW_OFFSET_Y + 7

TERM_HISTORY_SIZE = 5
INVALID_COMMAND_TEXT = "! + FF : FF"

_ERROR_TEXTS = {
    CellFormatError: "Illegal cell format and/or illegal symbols.",
    SignError: "Illegal sign. Allowed only '+' or '-'.",
    CommandOverflowError: "Command field overflow.",
    OperandOverflowError: "Operand field overflow.",
    NegativeZeroError: "Invalid value 'negative zero' ",
}

_FLAG_LETTERS = (
    ("P", Flag.OVERFLOW),
    ("0", Flag.ZERO_DIV),
    ("M", Flag.OUT_OF_BOUNDS),
    ("T", Flag.TICK_IGNORE),
    ("E", Flag.INVALID_COMMAND),
)

_KEYBINDS = (
    "l - load  s - save  i - reset",
    "r - run  t - step",
    "ESC - выход",
    "F5 - accumulator",
    "F6 - instruction counter",
)


def format_bin(value: int, bits: int) -> str:
    """Render the lowest `bits` bits of value, most significant first."""
    if bits <= 0:
        return ""
    return format(value & ((1 << bits) - 1), f"0{bits}b")


def explain_error(error: BaseException) -> str:
    """Human-readable explanation of an invalid cell entry."""
    for cls in type(error).__mro__:
        if cls in _ERROR_TEXTS:
            return _ERROR_TEXTS[cls]
    return "Unknown error"


class TermEntry(NamedTuple):
    address: int
    value: int
    is_input: bool


class TermHistory:
    """Ring of the most recent READ/WRITE exchanges."""

    def __init__(self, size: int = TERM_HISTORY_SIZE):
        if size <= 0:
            raise ValueError("history size must be positive")
        self.size = size
        self._entries: deque[TermEntry] = deque(maxlen=size)

    def push(self, address: int, value: int, is_input: bool) -> None:
        self._entries.append(TermEntry(address, value, bool(is_input)))

    def set_last_value(self, value: int) -> None:
        """Replace the value of the most recent entry."""
        if not self._entries:
            raise IndexError("history is empty")
        self._entries[-1] = self._entries[-1]._replace(value=value)

    def __iter__(self) -> Iterator[TermEntry | None]:
        """Display slots from oldest to newest; unused slots are None."""
        yield from [None] * (self.size - len(self._entries))
        yield from self._entries


class Screen:
    """Draws the state of a computer onto a terminal."""

    def __init__(
        self,
        terminal: Terminal,
        computer: SimpleComputer,
        font: Font | None = None,
    ):
        self.terminal = terminal
        self.computer = computer
        self.font = font
        self.selected_cell = 0
        self.incounter_cell = 0
        self.incounter_idle = 0
        self.history = TermHistory()
        self._last_incounter_cell = 0

    # frame

    def draw_accumulator_box(
        self, header_color: int = Color.RED, background: int = Color.NOTHING
    ) -> None:
        draw_box(
            self.terminal, ACCUMULATOR_OFFSET_X, 0,
            ACCUMULATOR_OFFSET_X + MINI_BLOCK_WIDTH, 3,
            " Аккумулятор ", Color.NOTHING, Color.NOTHING, header_color, background,
        )

    def draw_incounter_box(
        self, header_color: int = Color.RED, background: int = Color.NOTHING
    ) -> None:
        draw_box(
            self.terminal, ACCUMULATOR_OFFSET_X, INCOUNTER_OFFSET_Y,
            ACCUMULATOR_OFFSET_X + MINI_BLOCK_WIDTH, INCOUNTER_OFFSET_Y + 3,
            " Счетчик  команд ", Color.NOTHING, Color.NOTHING, header_color, background,
        )

    def draw_frame(self) -> None:
        """Clear the screen and draw every panel with its header."""
        t = self.terminal
        t.write("\n" * (SCREEN_HEIGHT * 2))
        t.clear_screen()
        t.goto(0, 0)

        def box(x1, y1, x2, y2, header, color=Color.RED):
            draw_box(t, x1, y1, x2, y2, header, Color.NOTHING, Color.NOTHING,
                     color, Color.NOTHING)

        box(0, 0, RAM_WIDTH, RAM_HEIGHT - 1, " Оперативная память ")
        self.draw_accumulator_box(Color.RED, Color.NOTHING)
        box(FLAGS_OFFSET_X, 0, FLAGS_OFFSET_X + MINI_BLOCK_WIDTH, 3, " Регистр  флагов ")
        self.draw_incounter_box(Color.RED, Color.NOTHING)
        box(FLAGS_OFFSET_X, INCOUNTER_OFFSET_Y, FLAGS_OFFSET_X + MINI_BLOCK_WIDTH,
            INCOUNTER_OFFSET_Y + 3, " Команда ")
        box(ACCUMULATOR_OFFSET_X, INCOUNTER_OFFSET_Y + 3,
            ACCUMULATOR_OFFSET_X + 2 * MINI_BLOCK_WIDTH + 1, RAM_HEIGHT + 3,
            " Редактируемая ячейка (увеличено) ")
        box(0, RAM_HEIGHT, 61, RAM_HEIGHT + 3, " Редактируемая ячейка (формат) ")
        box(0, LOW_OFFSET_Y, 65, LOW_OFFSET_Y + 7, " Кеш процессора ", Color.GREEN)
        box(TERM_OFFSET_X, LOW_OFFSET_Y, TERM_OFFSET_X + 11, LOW_OFFSET_Y + 7,
            " IN--OUT ", Color.GREEN)
        box(KEYBINDS_OFFSET_X, LOW_OFFSET_Y, KEYBINDS_OFFSET_X + 32, LOW_OFFSET_Y + 7,
            " Клавиши ", Color.GREEN)

        for row, text in enumerate(_KEYBINDS, start=1):
            t.goto(KEYBINDS_OFFSET_X + 1, LOW_OFFSET_Y + row)
            t.write(text)
        t.goto(KEYBINDS_OFFSET_X + 1, LOW_OFFSET_Y + len(_KEYBINDS) + 1)

    # registers

    def print_flags(self) -> None:
        flags = self.computer.get_flags(Flag.ALL)
        self.terminal.goto(FLAGS_OFFSET_X + 5, 2)
        self.terminal.write(
            "  ".join(letter if flags & flag else "_" for letter, flag in _FLAG_LETTERS)
        )

    def print_accumulator(self) -> None:
        value = self.computer.accumulator
        self.terminal.goto(RAM_WIDTH + 3, 2)
        self.terminal.write("sc: ")
        self.print_cell_value(value)
        self.terminal.write(f" hex: {value:04x}")

    def print_counters(self) -> None:
        self.terminal.goto(RAM_WIDTH + 3, INCOUNTER_OFFSET_Y + 1)
        self.terminal.write("T: 00     IC: ")
        self.print_cell_value(self.computer.incounter)

    def print_command(self) -> None:
        """Show the instruction the counter points at, or a marker if it is invalid."""
        self.terminal.goto(FLAGS_OFFSET_X + 6, INCOUNTER_OFFSET_Y + 1)
        try:
            value = self.computer.memory_get(self.computer.incounter)
        except AddressError:
            value = None
        if value is None or not is_valid_command(value):
            self.terminal.write(INVALID_COMMAND_TEXT)
            return
        sign, command, operand = decode(value)
        self.terminal.write(f"  {'-' if sign == 1 else '+'} {command:02x} : {operand:02x}")

    # memory

    def print_cell_value(
        self, value: int, fg: int = Color.NOTHING, bg: int = Color.NOTHING
    ) -> None:
        try:
            text = format_cell(value)
        except CellError:
            self.terminal.write(f"Invalid cell value: 0x{value:x}.\n")
            return
        self.terminal.set_fg(fg)
        self.terminal.set_bg(bg)
        self.terminal.write(text)
        self.terminal.set_default_color()

    def print_cell(
        self, address: int, fg: int = Color.NOTHING, bg: int = Color.NOTHING
    ) -> None:
        try:
            value = self.computer.memory_get(address)
        except AddressError:
            self.terminal.set_fg(Color.BRIGHT_WHITE)
            self.terminal.set_bg(Color.RED)
            self.terminal.write(f"INV:{address}")
            self.terminal.set_default_color()
            return
        self.terminal.goto(2 + (address % RAM_COLUMNS) * 6, 2 + address // RAM_COLUMNS)
        self.print_cell_value(value, fg, bg)

    def print_memory(self) -> None:
        for address in range(MEMORY_SIZE):
            self.print_cell(address, Color.DEFAULT, Color.DEFAULT)
        self.terminal.write("\n")

    def print_decoded_command(self) -> None:
        try:
            value = self.computer.memory_get(self.selected_cell)
        except AddressError:
            value = -1
        self.terminal.goto(2, RAM_HEIGHT + 1)
        self.terminal.write(
            f"dec: {value:05d} | oct: {value:05o} | hex: {value:04x}    bin: "
            + format_bin(value, BITS_PER_CELL)
            + "\n"
        )

    def print_big_cell(self) -> None:
        """Draw the selected cell in big glyphs with its address below."""
        try:
            text = format_cell(self.computer.memory_get(self.selected_cell))
        except (AddressError, CellError):
            return
        x = ACCUMULATOR_OFFSET_X + 3
        y = INCOUNTER_OFFSET_Y + 3 + 1
        for char in text:
            print_big_char(self.terminal, self.font, char_to_glyph(char), x, y)
            x += 8
        self.terminal.goto(ACCUMULATOR_OFFSET_X + 1, y + 9)
        self.terminal.set_fg(Color.BLUE)
        self.terminal.write(f"Номер редактируемой ячейки: {self.selected_cell:03d}")
        self.terminal.set_default_color()

    # input/output log

    def update_term(self) -> None:
        for row, entry in enumerate(self.history):
            self.terminal.goto(TERM_OFFSET_X + 1, LOW_OFFSET_Y + 1 + row)
            if entry is None:
                continue
            self.terminal.write(f"{entry.address:02x}{'<' if entry.is_input else '>'} ")
            self.print_cell_value(entry.value)

    def print_term(self, address: int, is_input: bool) -> None:
        """Record an exchange with a memory cell and redraw the log."""
        try:
            value = self.computer.memory_get(address)
        except AddressError:
            value = 0
        self.history.push(address, value, is_input)
        self.update_term()

    # selection and instruction counter

    def _force_print_incounter_cell(self) -> None:
        if not 0 <= self.incounter_cell < MEMORY_SIZE:
            return
        bg = Color.RED if self.incounter_idle else Color.GREEN
        self.print_cell(self.incounter_cell, Color.BLACK, bg)

    def print_incounter_cell(self) -> None:
        if self.incounter_cell == self.selected_cell:
            return
        self._force_print_incounter_cell()

    def move_incounter_cell(self) -> None:
        last = self._last_incounter_cell
        if last != self.selected_cell and 0 <= last < MEMORY_SIZE:
            self.print_cell(last, Color.RESET, Color.RESET)
        self.print_incounter_cell()
        self._last_incounter_cell = self.incounter_cell

    def print_selected_cell(self) -> None:
        self.print_cell(self.selected_cell, Color.INVERSE, Color.NOTHING)
        self.print_big_cell()
        self.print_decoded_command()

    def hide_selected_cell(self) -> None:
        self.print_cell(self.selected_cell, Color.RESET, Color.RESET)
        if self.selected_cell == self.incounter_cell:
            self._force_print_incounter_cell()

    def move_selected_cell(self, to: int) -> None:
        self.hide_selected_cell()
        self.selected_cell = to
        self.print_selected_cell()

    def show_error(self, error: BaseException) -> None:
        self.terminal.goto(0, COMMAND_LINE_Y)
        self.terminal.set_fg(Color.RED)
        self.terminal.write(explain_error(error))
        self.terminal.set_default_color()