"""Interactive console for the simple computer."""

from __future__ import annotations

import sys

from .bigchars import Font, FontError
from .cell import CellError, command_by_code, decode
from .computer import AddressError, ComputerError, Event, Flag, SimpleComputer
from .navigation import move_down, move_left, move_right, move_up
from .readkey import Key, KeyReader
from .screen import (
    COMMAND_LINE_Y,
    INCOUNTER_OFFSET_Y,
    LOW_OFFSET_Y,
    RAM_COLUMNS,
    RAM_WIDTH,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    TERM_OFFSET_X,
    Screen,
)
from .terminal import Color, Terminal

COMMAND_NOT_FOUND = "<Command not found>"
CPUINFO_TEXT = "2 гига 2 ядра"
_YES = (ord("y"), ord("Y"))
_FILENAME_LIMIT = 300
_ACCUMULATOR_EDIT_POS = (RAM_WIDTH + 3 + 4, 2)
_INCOUNTER_EDIT_POS = (RAM_WIDTH + 3 + 14, INCOUNTER_OFFSET_Y + 1)
_TERM_INPUT_POS = (TERM_OFFSET_X + 5, LOW_OFFSET_Y + 5)


class ConsoleApp:
    """Ties the computer, the screen and the keyboard together."""

    def __init__(
        self,
        terminal: Terminal,
        keys: KeyReader,
        computer: SimpleComputer | None = None,
        font: Font | None = None,
    ):
        self.terminal = terminal
        self.keys = keys
        self.computer = computer if computer is not None else SimpleComputer()
        self.screen = Screen(terminal, self.computer, font)
        self._tick_last = 0
        self._incounter_last = 0
        self.computer.set_listener(self.handle_event)

    def _to_command_line(self) -> None:
        self.terminal.goto(0, COMMAND_LINE_Y)

    # listeners

    def handle_event(self, event: int, value: int) -> int:
        """React to a notification from the computer."""
        if event == Event.ACCUMULATOR_UPDATE:
            self.screen.print_accumulator()
        elif event == Event.INCOUNTER_UPDATE:
            self.incounter_update(value)
        elif event == Event.FLAG_UPDATE:
            self.screen.print_flags()
        elif event == Event.CELL_UPDATE:
            self.cell_update(value)
        elif event == Event.CPUINFO:
            self._to_command_line()
            self.terminal.write(CPUINFO_TEXT)
        elif event == Event.RESET:
            self.refresh()
            self._to_command_line()
        elif event == Event.READ_REQUEST:
            if not self.read_request(value):
                return -1
        elif event == Event.WRITE_REQUEST:
            self.screen.print_term(value, False)
        self._to_command_line()
        return 0

    def current_command_name(self) -> str:
        """Mnemonic of the instruction under the instruction counter."""
        try:
            _, command, _ = decode(self.computer.memory_get(self.computer.incounter))
        except (AddressError, CellError):
            return COMMAND_NOT_FOUND
        entry = command_by_code(command)
        return entry.name if entry is not None else COMMAND_NOT_FOUND

    def cell_update(self, cell: int) -> None:
        self.screen.print_cell(cell)
        if cell == self.screen.selected_cell:
            self.screen.print_selected_cell()
        elif cell == self.screen.incounter_cell:
            self.screen.print_incounter_cell()

    def incounter_update(self, idle: int) -> None:
        """Redraw the processor panel and the instruction counter marker."""
        computer = self.computer
        if self._incounter_last != computer.incounter:
            self._incounter_last = computer.incounter
            self._tick_last = computer.tick_counter
        t = self.terminal
        t.goto(3, LOW_OFFSET_Y + 2)
        t.write(f"TickCounter: {computer.tick_counter}      ")
        t.goto(3, LOW_OFFSET_Y + 3)
        t.write(f"Current instruction ticks: {computer.tick_counter - self._tick_last}     ")
        t.goto(3, LOW_OFFSET_Y + 4)
        t.write(f"Current command: {self.current_command_name()} Idle: {idle}      ")

        self.screen.print_counters()
        self.screen.print_command()
        self.screen.incounter_cell = computer.incounter
        self.screen.incounter_idle = idle
        self.screen.move_incounter_cell()

    def read_request(self, address: int) -> bool:
        """Ask the user for a value for a READ; False if cancelled.

        A negative address means the computer was stopped when the READ ran,
        so it is not resumed afterwards.
        """
        was_stopped = address < 0
        address = abs(address)
        self.screen.print_term(address, True)
        value = 0
        while True:
            self.terminal.goto(*_TERM_INPUT_POS)
            error = None
            try:
                entered = self.keys.read_value()
            except CellError as exc:
                entered, error = value, exc
            if entered is not None:
                value = entered
            self.screen.history.set_last_value(value)

            self._to_command_line()
            self.terminal.delete_line()
            if entered is None:
                self.terminal.goto(*_TERM_INPUT_POS)
                self.terminal.write("cncld")
                self._to_command_line()
                return False
            if error is not None:
                self.screen.show_error(error)
                continue
            self.computer.memory_set(address, value)
            if not was_stopped:
                self.computer.set_flags(Flag.TICK_IGNORE, 0)
            self.screen.update_term()
            self.cell_update(address)
            return True

    def refresh(self) -> None:
        """Redraw every value on the screen."""
        self.incounter_update(0)
        self.screen.print_memory()
        self.screen.print_accumulator()
        self.screen.print_counters()
        self.screen.print_flags()
        self.screen.print_command()
        self.screen.print_incounter_cell()
        self.screen.print_selected_cell()

    # editing

    def _read_value(self) -> tuple[int | None, CellError | None]:
        self.terminal.set_bg(Color.BLACK)
        try:
            return self.keys.read_value(), None
        except CellError as exc:
            return None, exc
        finally:
            self.terminal.set_default_color()

    def edit_cell(self) -> None:
        """Let the user type a new value for the selected cell."""
        screen = self.screen
        cell = screen.selected_cell
        screen.print_cell(cell, Color.GREEN, Color.GREEN)
        self.terminal.goto(2 + (cell % RAM_COLUMNS) * 6, 2 + cell // RAM_COLUMNS)
        value, error = self._read_value()
        self._to_command_line()
        self.terminal.delete_line()

        if error is None and value is not None:
            self.computer.memory_set(cell, value)
            screen.move_selected_cell(cell)
            self.incounter_update(0)
            screen.print_cell(cell, Color.BLACK, Color.GREEN)
            return

        screen.print_cell(cell, Color.BLACK, Color.RED)
        if error is None:
            screen.move_selected_cell(cell)
        else:
            screen.show_error(error)

    def _register_loop(self, draw_box, redraw, write) -> None:
        self.screen.hide_selected_cell()
        draw_box(Color.BLACK, Color.RED)
        redraw()
        while True:
            self._to_command_line()
            key = self.keys.read_key()
            if key == Key.ESC:
                break
            if key == Key.ENTER:
                write()
        draw_box(Color.RED, Color.NOTHING)
        redraw()
        self.screen.print_selected_cell()
        self._to_command_line()
        self.terminal.delete_line()

    def _write_accumulator(self) -> None:
        screen = self.screen
        screen_pos = _ACCUMULATOR_EDIT_POS
        self.terminal.goto(*screen_pos)
        screen.print_cell_value(self.computer.accumulator, Color.GREEN, Color.GREEN)
        self.terminal.goto(*screen_pos)
        value, error = self._read_value()
        if error is None and value is not None:
            self.computer.accumulator = value
            screen.print_accumulator()
            self.terminal.goto(*screen_pos)
            screen.print_cell_value(value, Color.BLACK, Color.GREEN)
            return
        self.terminal.goto(*screen_pos)
        screen.print_cell_value(0, Color.BLACK, Color.RED)
        self._to_command_line()
        self.terminal.delete_line()
        if error is None:
            screen.print_accumulator()
            return
        screen.show_error(error)

    def edit_accumulator(self) -> None:
        """Accumulator editing mode: Enter edits, Esc leaves."""
        self._register_loop(
            self.screen.draw_accumulator_box,
            self.screen.print_accumulator,
            self._write_accumulator,
        )

    def _write_incounter(self) -> None:
        screen = self.screen
        screen_pos = _INCOUNTER_EDIT_POS
        self.terminal.goto(*screen_pos)
        screen.print_cell_value(self.computer.incounter, Color.GREEN, Color.GREEN)
        self.terminal.goto(*screen_pos)
        value, error = self._read_value()
        if error is None and value is not None:
            self.computer.incounter = value
            screen.incounter_cell = value
            screen.move_incounter_cell()
            screen.print_counters()
            self.terminal.goto(*screen_pos)
            screen.print_cell_value(value, Color.BLACK, Color.GREEN)
            screen.print_command()
            return
        self.terminal.goto(*screen_pos)
        screen.print_cell_value(0, Color.BLACK, Color.RED)
        self._to_command_line()
        self.terminal.delete_line()
        if error is None:
            screen.print_counters()
            return
        screen.show_error(error)

    def edit_incounter(self) -> None:
        """Instruction counter editing mode: Enter edits, Esc leaves."""
        self._register_loop(
            self.screen.draw_incounter_box,
            self.screen.print_counters,
            self._write_incounter,
        )

    # files and confirmations

    def _ask_filename(self, prompt: str) -> str | None:
        self.terminal.delete_line()
        self.terminal.write(prompt)
        name = self.keys.read_line(_FILENAME_LIMIT)
        if name is None:
            self.terminal.delete_line()
            return None
        self._to_command_line()
        self.terminal.delete_line()
        return name

    def save_memory(self) -> None:
        name = self._ask_filename("Введите имя файла для сохранения: ")
        if name is None:
            return
        try:
            self.computer.memory_save(name)
        except OSError:
            self.terminal.write("Can't open file. Is path valid?")
            return
        self.terminal.write("Saved successfully.")

    def load_memory(self) -> None:
        name = self._ask_filename("Введите имя файла для загрузки: ")
        if name is None:
            return
        try:
            self.computer.memory_load(name)
        except OSError:
            self.terminal.write("Can't open file. Is path valid?")
            return
        except ComputerError:
            self.terminal.write("Unexpected I/O error.")
            return
        self.terminal.write("Loaded successfully.")
        self.refresh()

    def confirm_reset(self) -> bool:
        """Ask before resetting the computer; True if it was reset."""
        self._to_command_line()
        self.terminal.delete_line()
        self.terminal.write("Вы действительно хотите сбросить машину? [y/n]")
        key = self.keys.read_key()
        self.terminal.delete_line()
        if key not in _YES:
            return False
        self.computer.reset()
        return True

    def confirm_exit(self) -> bool:
        """Ask before leaving; True if the user confirmed."""
        self.terminal.delete_line()
        self.terminal.write("Вы действительно хотите выйти? [y/n]\n")
        key = self.keys.read_key()
        if key not in _YES:
            self._to_command_line()
            self.terminal.delete_line()
            return False
        return True

    # main loop

    def handle_key(self, key: int) -> bool:
        """Act on one key press; False when the console should exit."""
        idle = not self.computer.is_running
        screen = self.screen
        if key == Key.ESC:
            return not self.confirm_exit()
        if key == Key.LEFT:
            screen.move_selected_cell(move_left(screen.selected_cell))
        elif key == Key.RIGHT:
            screen.move_selected_cell(move_right(screen.selected_cell))
        elif key == Key.UP:
            screen.move_selected_cell(move_up(screen.selected_cell))
        elif key == Key.DOWN:
            screen.move_selected_cell(move_down(screen.selected_cell))
        elif not idle:
            return True
        elif key == Key.S:
            self.save_memory()
        elif key == Key.L:
            self.load_memory()
        elif key == Key.T:
            self.computer.force_tick()
        elif key == Key.I:
            self.confirm_reset()
        elif key == Key.R:
            self.computer.set_flags(Flag.TICK_IGNORE, 0)
        elif key == Key.ENTER:
            self.edit_cell()
        elif key == Key.F5:
            self.edit_accumulator()
        elif key == Key.F6:
            self.edit_incounter()
        return True

    def run(self) -> int:
        """Draw the console and process keys until the user exits."""
        self.screen.draw_frame()
        self.refresh()
        self.screen.move_selected_cell(0)
        stop = self.computer.start()
        try:
            while True:
                self._to_command_line()
                try:
                    key = self.keys.read_key()
                except EOFError:
                    break
                if not self.handle_key(key):
                    break
        finally:
            stop.set()
            self._to_command_line()
        return 0


def _fail(terminal: Terminal, message: str) -> int:
    terminal.set_fg(Color.RED)
    terminal.write(message)
    terminal.set_default_color()
    return 1


def main(argv=None) -> int:
    """Start the console: console [font-file]."""
    args = sys.argv[1:] if argv is None else list(argv)
    terminal = Terminal()
    if not sys.stdout.isatty():
        return _fail(terminal, "Not opened in terminal.\n")
    rows, columns = terminal.screen_size()
    if columns <= SCREEN_WIDTH:
        return _fail(terminal, "Screen width is too small.\n")
    if rows <= SCREEN_HEIGHT:
        return _fail(terminal, "Screen height is too small.\n")

    try:
        font = Font.load(args[0] if args else "font.bin")
    except FileNotFoundError:
        return _fail(terminal, "No font file found.\n")
    except (OSError, FontError, ValueError):
        return _fail(terminal, "Error during parsing font file.\n")

    app = ConsoleApp(terminal, KeyReader(), SimpleComputer(), font)
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())