"""The simple computer: memory, registers, control unit and ALU."""

from __future__ import annotations

import enum
import os
import struct
import threading
from typing import Callable, Optional

from .cell import (
    BITS_PER_CELL,
    MAX_ABSOLUTE_VALUE,
    MAX_CELL_VALUE,
    MEMORY_SIZE,
    NEGATIVE_ZERO,
    SIGN_MASK,
    CellOverflowError,
    NegativeZeroError,
    decode,
    is_valid_command,
)


class Flag(enum.IntFlag):
    """Bits of the flag register."""

    OVERFLOW = 0x1
    ZERO_DIV = 0x2
    OUT_OF_BOUNDS = 0x4
    TICK_IGNORE = 0x8
    INVALID_COMMAND = 0x10
    ALL = 0x1F


class Event(enum.IntEnum):
    """Notifications sent to the state listener."""

    MEMORY_UPDATE = 0
    ACCUMULATOR_UPDATE = 1
    INCOUNTER_UPDATE = 2
    CELL_UPDATE = 3
    FLAG_UPDATE = 4
    READ_REQUEST = 5
    WRITE_REQUEST = 6
    RESET = 7
    CPUINFO = 8
    TICK = 9
    POST_TICK = 10
    IS_RUNNING = 11


class ComputerError(Exception):
    """An operation on the computer failed."""


class AddressError(ComputerError, IndexError):
    """A memory address lies outside the memory."""


Listener = Callable[[int, int], Optional[int]]

_NOP = 0
_CPUINFO = 1
_READ = 10
_WRITE = 11
_LOAD = 20
_STORE = 21
_ADD = 30
_SUB = 31
_DIVIDE = 32
_MUL = 33
_JUMP = 40
_JNEG = 41
_JZ = 42
_HALT = 43
_RCCR = 70
_MOVA = 71

_ALU_COMMANDS = frozenset({_ADD, _SUB, _DIVIDE, _MUL, _RCCR})
_IDLE_PER_ACCESS = 10
_DEFAULT_DELAY = 0.5
_IMAGE = struct.Struct(f"<{MEMORY_SIZE}i")


def _to_signed(value: int) -> int:
    if value & SIGN_MASK:
        return -(value & ~SIGN_MASK)
    return value


def _from_signed(value: int) -> int:
    if value < 0:
        return (-value) | SIGN_MASK
    return value


def _truncating_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def _check_register_value(value: int) -> None:
    if value < 0 or value > MAX_CELL_VALUE:
        raise CellOverflowError(f"value {value} does not fit in a cell")
    if value == NEGATIVE_ZERO:
        raise NegativeZeroError("negative zero is not a valid register value")


class SimpleComputer:
    """Memory, accumulator, instruction counter, flags and the tick machinery."""

    def __init__(self, listener: Listener | None = None):
        self._listener = listener
        self._lock = threading.RLock()
        self._memory = [0] * MEMORY_SIZE
        self._flags = int(Flag.TICK_IGNORE)
        self._accumulator = 0
        self._incounter = 0
        self._tick_counter = 0
        self._idle = 0
        self._idle_just_completed = False
        self._running = False
        self._force = False
        self._tick_command_stage = 0
        self._command_stage = 0
        self._delay = _DEFAULT_DELAY

    # listener

    def set_listener(self, listener: Listener | None) -> None:
        self._listener = listener

    def _notify(self, event: Event, value: int) -> int:
        if self._listener is None:
            return 0
        return self._listener(event, value) or 0

    # registers

    @property
    def accumulator(self) -> int:
        return self._accumulator

    @accumulator.setter
    def accumulator(self, value: int) -> None:
        _check_register_value(value)
        with self._lock:
            self._accumulator = value

    @property
    def incounter(self) -> int:
        return self._incounter

    @incounter.setter
    def incounter(self, value: int) -> None:
        _check_register_value(value)
        with self._lock:
            self._incounter = value

    @property
    def tick_counter(self) -> int:
        return self._tick_counter

    @property
    def idle(self) -> int:
        """Ticks the processor still has to wait for memory."""
        return self._idle

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def memory(self) -> tuple[int, ...]:
        return tuple(self._memory)

    # memory

    def memory_get(self, address: int) -> int:
        if not 0 <= address < MEMORY_SIZE:
            raise AddressError(f"address {address} out of memory")
        return self._memory[address]

    def memory_set(self, address: int, value: int) -> None:
        if not 0 <= address < MEMORY_SIZE:
            raise AddressError(f"address {address} out of memory")
        if value == NEGATIVE_ZERO:
            raise NegativeZeroError("negative zero is not a valid cell value")
        with self._lock:
            self._memory[address] = value

    def memory_load(self, path: str | os.PathLike) -> None:
        """Load a memory image of MEMORY_SIZE little-endian 32-bit cells."""
        with open(path, "rb") as fh:
            data = fh.read(_IMAGE.size)
        if len(data) < _IMAGE.size:
            raise ComputerError(f"memory image {os.fspath(path)!r} is truncated")
        with self._lock:
            self._memory = list(_IMAGE.unpack(data))
            self._notify(Event.MEMORY_UPDATE, 0)
            self._notify(Event.INCOUNTER_UPDATE, 0)

    def memory_save(self, path: str | os.PathLike) -> None:
        with open(path, "wb") as fh:
            fh.write(_IMAGE.pack(*self._memory))

    # flags

    def get_flags(self, mask: int = Flag.ALL) -> Flag:
        if mask < 0 or mask > Flag.ALL:
            raise ValueError(f"invalid flag mask {mask}")
        return Flag(self._flags & mask)

    def set_flags(self, mask: int, value: int) -> None:
        """Set the flags selected by mask to the bits of value."""
        if mask < 0 or mask > Flag.ALL:
            raise ValueError(f"invalid flag mask {mask}")
        if value < 0 or value > Flag.ALL:
            raise ValueError(f"invalid flag value {value}")
        if value & ~mask:
            raise ValueError("value sets flags outside the mask")
        with self._lock:
            self._flags = (self._flags & ~mask) | value
            self._notify(Event.FLAG_UPDATE, 0)

    def _enable(self, flags: int) -> None:
        self.set_flags(flags, flags)

    def reset(self) -> None:
        with self._lock:
            self._tick_counter = 0
            self._command_stage = 0
            self._memory = [0] * MEMORY_SIZE
            self._flags = int(Flag.TICK_IGNORE)
            self._accumulator = 0
            self._incounter = 0
            self._notify(Event.RESET, 0)

    # memory controller

    def _stalled(self) -> bool:
        if self._command_stage <= self._tick_command_stage and not self._idle_just_completed:
            self._idle += _IDLE_PER_ACCESS
            return True
        self._idle_just_completed = False
        self._tick_command_stage += 1
        return False

    def _mc_get(self, address: int) -> int | None:
        if not 0 <= address < MEMORY_SIZE:
            self._enable(Flag.OUT_OF_BOUNDS | Flag.TICK_IGNORE)
            return None
        if self._stalled():
            return None
        return self._memory[address]

    def _mc_set(self, address: int, value: int) -> bool:
        if not 0 <= address < MEMORY_SIZE:
            self._enable(Flag.OUT_OF_BOUNDS | Flag.TICK_IGNORE)
            return False
        if value < 0 or value > MAX_CELL_VALUE:
            self._enable(Flag.OVERFLOW | Flag.TICK_IGNORE)
            return False
        if self._stalled():
            return False
        self._memory[address] = value
        return True

    # arithmetic and logic unit

    def _alu(self, command: int, operand: int) -> bool:
        operand_value = self._mc_get(operand)
        if operand_value is None:
            return False
        acc = self._accumulator

        if command == _RCCR:
            if acc & SIGN_MASK:
                self._enable(Flag.INVALID_COMMAND | Flag.TICK_IGNORE)
                return False
            shift = acc % BITS_PER_CELL
            left = (operand_value << shift) & MAX_CELL_VALUE
            acc = (operand_value >> (BITS_PER_CELL - shift)) | left
        else:
            a = _to_signed(acc)
            b = _to_signed(operand_value)
            if command == _ADD:
                a += b
            elif command == _SUB:
                a -= b
            elif command == _DIVIDE:
                if b == 0:
                    self._enable(Flag.ZERO_DIV | Flag.TICK_IGNORE)
                    return False
                a = _truncating_div(a, b)
            elif command == _MUL:
                a *= b
            else:
                return False
            if a > MAX_ABSOLUTE_VALUE or a < -MAX_ABSOLUTE_VALUE:
                self._enable(Flag.OVERFLOW | Flag.TICK_IGNORE)
                return False
            acc = _from_signed(a)

        self._accumulator = acc
        self._notify(Event.ACCUMULATOR_UPDATE, 0)
        return True

    # control unit

    def _cu(self) -> None:
        if not 0 <= self._incounter < MEMORY_SIZE:
            self._enable(Flag.OUT_OF_BOUNDS | Flag.TICK_IGNORE)
            return
        self._notify(Event.INCOUNTER_UPDATE, 0)

        cell = self._memory[self._incounter]
        if not is_valid_command(cell):
            self._enable(Flag.INVALID_COMMAND | Flag.TICK_IGNORE)
            return
        _, command, operand = decode(cell)

        if command == _CPUINFO:
            self._notify(Event.CPUINFO, 0)
        elif command == _READ:
            was_stopped = bool(self._flags & Flag.TICK_IGNORE)
            self._enable(Flag.TICK_IGNORE)
            request = -operand if was_stopped else operand
            if self._notify(Event.READ_REQUEST, request) != 0:
                return
        elif command == _WRITE:
            if self._mc_get(operand) is None:
                return
            self._notify(Event.WRITE_REQUEST, operand)
        elif command == _LOAD:
            value = self._mc_get(operand)
            if value is None:
                return
            self._accumulator = value
            self._notify(Event.ACCUMULATOR_UPDATE, 0)
        elif command == _STORE:
            if not self._mc_set(operand, self._accumulator):
                return
            self._notify(Event.CELL_UPDATE, operand)
        elif command in _ALU_COMMANDS:
            if not self._alu(command, operand):
                return
        elif command == _JUMP:
            self._incounter = operand - 1
        elif command == _JNEG:
            try:
                negative = decode(self._accumulator).sign == 1
            except ValueError:
                negative = False
            if negative:
                self._incounter = operand - 1
        elif command == _JZ:
            if self._accumulator == 0:
                self._incounter = operand - 1
        elif command == _HALT:
            self._enable(Flag.TICK_IGNORE)
            return
        elif command == _MOVA:
            value = self._mc_get(operand)
            if value is None:
                return
            if not self._mc_set(self._accumulator, value):
                return

        self._command_stage = 0
        self._incounter += 1
        self._notify(Event.INCOUNTER_UPDATE, 0)

    # clock

    def tick(self) -> bool:
        """Process one clock tick; return False if the tick was ignored."""
        with self._lock:
            self._tick_command_stage = 0
            if self._flags & Flag.TICK_IGNORE and not self._force:
                if self._running:
                    self._notify(Event.IS_RUNNING, 1)
                self._running = False
                return False

            if not self._running:
                self._notify(Event.IS_RUNNING, 0)
            self._running = True

            self._tick_counter += 1
            self._notify(Event.TICK, self._idle)

            if self._idle > 0:
                self._idle_just_completed = True
                self._idle -= 1
                self._notify(Event.INCOUNTER_UPDATE, self._idle)
                self._notify(Event.POST_TICK, self._idle)
                if self._idle > 0:
                    return True
                self._command_stage += 1

            self._cu()

            if self._idle == 0:
                self._force = False
            self._notify(Event.POST_TICK, self._idle)
            self._idle_just_completed = False
            return True

    def force_tick(self) -> None:
        """Let the next instruction run even while ticks are ignored."""
        with self._lock:
            self._force = True

    def set_simulation_delay(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("simulation delay cannot be negative")
        self._delay = seconds

    def start(self) -> threading.Event:
        """Tick now and then periodically in the background; set the returned event to stop."""
        stop = threading.Event()

        def clock() -> None:
            while not stop.wait(self._delay):
                self.tick()

        self.tick()
        threading.Thread(target=clock, name="simplecomp-clock", daemon=True).start()
        return stop

    def run(self, max_ticks: int | None = None) -> int:
        """Clear the tick-ignore flag and tick until the computer stops."""
        self.set_flags(Flag.TICK_IGNORE, 0)
        executed = 0
        while max_ticks is None or executed < max_ticks:
            if not self.tick():
                break
            executed += 1
        return executed