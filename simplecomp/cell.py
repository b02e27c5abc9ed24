"""Encoding, decoding and validation of the simple computer's memory cells.

A cell is a 15-bit word: one sign bit, a 7-bit command field and a
7-bit operand field.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import NamedTuple

BITS_PER_COMMAND = 7
BITS_PER_OPERAND = 7
BITS_PER_CELL = BITS_PER_COMMAND + BITS_PER_OPERAND + 1
MAX_COMMAND_SIZE = 0x7F
MAX_OPERAND_SIZE = 0x7F
MAX_ABSOLUTE_VALUE = 0x3FFF
MAX_CELL_VALUE = 0x7FFF
SIGN_MASK = 1 << (BITS_PER_COMMAND + BITS_PER_OPERAND)
NEGATIVE_ZERO = SIGN_MASK
MEMORY_SIZE = 128


class OperandType(enum.IntEnum):
    """Whether an instruction takes an address operand."""

    NONE = 0
    ADDRESS = 1


@dataclass(frozen=True)
class Command:
    """One entry of the instruction set."""

    name: str
    code: int
    operand_type: OperandType


COMMANDS: tuple[Command, ...] = (
    Command("NOP", 0, OperandType.NONE),
    Command("CPUINFO", 1, OperandType.NONE),
    Command("READ", 10, OperandType.ADDRESS),
    Command("WRITE", 11, OperandType.ADDRESS),
    Command("LOAD", 20, OperandType.ADDRESS),
    Command("STORE", 21, OperandType.ADDRESS),
    Command("ADD", 30, OperandType.ADDRESS),
    Command("SUM", 31, OperandType.ADDRESS),
    Command("DIVIDE", 32, OperandType.ADDRESS),
    Command("MUL", 33, OperandType.ADDRESS),
    Command("JUMP", 40, OperandType.ADDRESS),
    Command("JNEG", 41, OperandType.ADDRESS),
    Command("JZ", 42, OperandType.ADDRESS),
    Command("HALT", 43, OperandType.NONE),
    Command("RCCR", 70, OperandType.ADDRESS),
    Command("MOVA", 71, OperandType.ADDRESS),
)

_BY_CODE = {command.code: command for command in COMMANDS}
_BY_NAME = {command.name: command for command in COMMANDS}


class CellError(ValueError):
    """Base class for invalid cell values."""

    code = -1


class SignError(CellError):
    """The sign is neither '+' nor '-' (or neither 0 nor 1)."""

    code = -10


class CommandOverflowError(CellError):
    """The command field does not fit in seven bits."""

    code = -2


class OperandOverflowError(CellError):
    """The operand field does not fit in seven bits."""

    code = -3


class CellOverflowError(CellError):
    """The value does not fit in a 15-bit cell."""

    code = -2


class NegativeZeroError(CellError):
    """The value would be the forbidden 'negative zero'."""

    code = -5


class CellFormatError(CellError):
    """The textual cell representation is malformed."""

    code = -20


class Decoded(NamedTuple):
    sign: int
    command: int
    operand: int


def _check_cell(value: int) -> None:
    if value < 0 or value > MAX_CELL_VALUE:
        raise CellOverflowError(f"value {value} does not fit in a cell")
    if value == NEGATIVE_ZERO:
        raise NegativeZeroError("negative zero is not a valid cell value")


def encode(sign: int, command: int, operand: int) -> int:
    """Pack sign, command and operand into a cell value."""
    if sign not in (0, 1):
        raise SignError(f"sign must be 0 or 1, got {sign}")
    if not 0 <= command <= MAX_COMMAND_SIZE:
        raise CommandOverflowError(f"command {command} out of range")
    if not 0 <= operand <= MAX_OPERAND_SIZE:
        raise OperandOverflowError(f"operand {operand} out of range")
    value = (((sign << BITS_PER_COMMAND) | command) << BITS_PER_OPERAND) | operand
    if value == NEGATIVE_ZERO:
        raise NegativeZeroError("negative zero is not a valid cell value")
    return value


def decode(value: int) -> Decoded:
    """Split a cell value into (sign, command, operand)."""
    _check_cell(value)
    operand = value & MAX_OPERAND_SIZE
    command = (value >> BITS_PER_OPERAND) & MAX_COMMAND_SIZE
    sign = (value >> (BITS_PER_OPERAND + BITS_PER_COMMAND)) & 1
    return Decoded(sign, command, operand)


def is_valid_command(value: int) -> bool:
    """Tell whether a cell holds a positive, known instruction."""
    if value < 0 or value > MAX_CELL_VALUE:
        return False
    if value >> (BITS_PER_COMMAND + BITS_PER_OPERAND):
        return False
    return ((value >> BITS_PER_OPERAND) & MAX_COMMAND_SIZE) in _BY_CODE


def command_by_code(code: int) -> Command | None:
    """Return the instruction with this numeric code, if any."""
    return _BY_CODE.get(code)


def command_by_name(name: str) -> Command | None:
    """Return the instruction with this mnemonic, if any."""
    return _BY_NAME.get(name)


def format_cell(value: int) -> str:
    """Render a cell as '+CCOO' / '-CCOO' with hexadecimal fields."""
    sign, command, operand = decode(value)
    return f"{'-' if sign == 1 else '+'}{command:02x}{operand:02x}"


_CELL_RE = re.compile(r"(.)\s*([0-9a-fA-F]{1,2})\s*([0-9a-fA-F]{1,2})", re.S)


def parse_cell(text: str) -> int:
    """Parse the '+CCOO' notation into a cell value."""
    match = _CELL_RE.match(text)
    if match is None:
        raise CellFormatError(f"malformed cell {text!r}")
    sign_char, command, operand = match.groups()
    if sign_char not in "+-":
        raise SignError(f"illegal sign {sign_char!r}")
    return encode(1 if sign_char == "-" else 0, int(command, 16), int(operand, 16))