"""Assembler for the simple computer's instruction mnemonics."""

from __future__ import annotations

import itertools
import os
import re
import struct
import sys
from pathlib import Path
from typing import Iterable

from .cell import (
    MEMORY_SIZE,
    CellFormatError,
    CommandOverflowError,
    NegativeZeroError,
    OperandOverflowError,
    OperandType,
    SignError,
    command_by_name,
    encode,
    format_cell,
    parse_cell,
)

_BLANK = " \t"
_HEX_RE = re.compile(r"\s*([+-]?)(?:0[xX](?=[0-9a-fA-F]))?([0-9a-fA-F]+)")
_IMAGE = struct.Struct(f"<{MEMORY_SIZE}i")
_MAX_LINE_ID = 2
_MAX_COMMAND = 8
_MAX_OPERAND = 6


class AssemblyError(Exception):
    """The source could not be assembled; messages holds the diagnostics."""

    def __init__(self, *messages: str):
        super().__init__("\n".join(messages))
        self.messages = list(messages)


def _scan_hex(text: str) -> int | None:
    match = _HEX_RE.match(text)
    if match is None:
        return None
    value = int(match.group(2), 16)
    return -value if match.group(1) == "-" else value


def encode_instruction(line: int, command: str, operand: str) -> int:
    """Encode one mnemonic (or '=' cell literal) with its operand."""
    if command == "=":
        try:
            return parse_cell(operand)
        except (CellFormatError, SignError):
            raise AssemblyError(f"{line:3d}: Unexpected symbols in cell value") from None
        except CommandOverflowError:
            raise AssemblyError(f"{line:3d}: command field overflow") from None
        except OperandOverflowError:
            raise AssemblyError(f"{line:3d}: operand field overflow") from None
        except NegativeZeroError:
            raise AssemblyError(f"{line:3d}: negative zero is not a valid cell value") from None

    entry = command_by_name(command)
    if entry is None:
        raise AssemblyError(f"{line:3d}: Unknown command '{command}'")
    if entry.operand_type is OperandType.NONE:
        value = 0
    else:
        value = _scan_hex(operand)
        if value is None:
            raise AssemblyError(f"{line:3d}: Unexpected symbols in operand")
    try:
        return encode(0, entry.code, value)
    except OperandOverflowError:
        raise AssemblyError(f"{line:3d}: operand field overflow") from None


def _translate(
    line: int, line_id: str, command: str, operand: str, memory: list[int]
) -> str:
    index = _scan_hex(line_id)
    if index is None:
        raise AssemblyError(f"{line:3d}: Unexpected symbols in lineId")
    if index != line - 1:
        raise AssemblyError(f"{line:3d}: Invalid lineId")
    encoded = encode_instruction(line, command, operand)
    memory[line - 1] = encoded
    return f"{line:3d}: {line_id}, {command}, {operand}  [{format_cell(encoded)}]"


def assemble(text: str) -> tuple[list[int], list[str]]:
    """Assemble source text into a memory image.

    Returns the memory cells and the report lines. Syntax errors raise
    AssemblyError carrying every diagnostic; errors in a single
    instruction are reported and leave its cell zero.
    """
    memory = [0] * MEMORY_SIZE
    log: list[str] = []
    fatal = False

    if text.endswith("\n"):
        text = text[:-1]

    line = 1
    pos = 0
    char: str | None = None
    stage = 0
    skip = False
    line_id = command = operand = ""

    for current in itertools.chain(text, [None]):
        pos += 1
        last, char = char, current
        if stage < 0:
            stage = -10

        if current is None or current == "\n":
            if (not line_id or not command) and not skip:
                log.append(f"{line:3d}:{pos}: Unexpected line break")
                fatal = True
                skip = True
            if not skip:
                if line > MEMORY_SIZE:
                    log.append(f"{line:3d}: Program exceeds memory size.")
                    fatal = True
                    break
                try:
                    log.append(_translate(line, line_id, command, operand, memory))
                except AssemblyError as exc:
                    log.extend(exc.messages)
            line += 1
            skip = False
            pos = 0
            stage = 0
            line_id = command = operand = ""
            continue

        if skip:
            continue

        if current in _BLANK:
            if last is None or last not in _BLANK:
                stage += 1
            continue

        error = None
        unexpected = f"{line:3d}:{pos}: Unexpected symbol '{current}'"
        if stage == 0:
            if len(line_id) >= _MAX_LINE_ID:
                error = unexpected
            elif current == ";":
                error = f"{line:3d}:{pos}: Expected line index"
            else:
                line_id += current
        elif stage == 1:
            if len(command) >= _MAX_COMMAND:
                error = f"{line:3d}:{pos - 5}: Unknown command"
            elif current == ";":
                error = f"{line:3d}:{pos}: Expected command"
            else:
                command += current
        elif stage == 2:
            if not operand and current == ";":
                stage = -10
            elif len(operand) >= _MAX_OPERAND:
                error = unexpected
            else:
                operand += current
        elif stage == 3:
            error = unexpected

        if error is not None:
            log.append(error)
            fatal = True
            skip = True

    if fatal:
        raise AssemblyError(*log)
    return memory, log


def write_image(memory: Iterable[int], path: str | os.PathLike) -> None:
    """Write memory as little-endian 32-bit cells."""
    cells = list(memory)
    with open(path, "wb") as fh:
        fh.write(_IMAGE.pack(*cells))
    os.chmod(path, 0o606)


def main(argv=None) -> int:
    """Run the assembler: trans <source> [-o] <output>."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        print("Usage: trans <source> -o <output>")
        return 1
    source = args[0]
    output = args[2] if args[1] == "-o" and len(args) > 2 else args[1]

    try:
        text = Path(source).read_text(encoding="utf-8", errors="replace")
    except OSError:
        print(f"Source '{source}' not found.")
        return 2

    try:
        memory, report = assemble(text)
    except AssemblyError as exc:
        print("\n".join(exc.messages))
        return 1
    if report:
        print("\n".join(report))

    try:
        write_image(memory, output)
    except OSError:
        print(f"Can't open or create file '{output}'.")
        return 3
    return 0


if __name__ == "__main__":
    raise SystemExit(main())