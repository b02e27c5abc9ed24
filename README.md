# simplecomp

An emulator of a small educational computer with 128 memory cells of 15 bits,
an accumulator, an instruction counter and a flag register. The package
provides:

- `simplecomp` – an interactive terminal console that shows memory, registers,
  the current command, an input/output log and the selected cell drawn in big
  characters;
- `simplecomp-asm` – an assembler that turns a text program into a memory image;
- `simplecomp-font` – a generator of the big-character font the console needs.

No font file comes with the package: build one with `simplecomp-font` before
starting the console.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Cells and commands

A cell holds a sign bit, a 7-bit command field and a 7-bit operand field. It
is written as `+CCOO` or `-CCOO` with hexadecimal fields, for example `+2b00`
(HALT). "Negative zero" (`-0000`) is not a valid value.

The instruction set (`simplecomp.cell.COMMANDS`):

| Mnemonic | Code | Operand |
| --- | --- | --- |
| NOP | 0 | – |
| CPUINFO | 1 | – |
| READ | 10 | address |
| WRITE | 11 | address |
| LOAD | 20 | address |
| STORE | 21 | address |
| ADD | 30 | address |
| SUM | 31 | address (subtracts) |
| DIVIDE | 32 | address |
| MUL | 33 | address |
| JUMP | 40 | address |
| JNEG | 41 | address |
| JZ | 42 | address |
| HALT | 43 | – |
| RCCR | 70 | address (cyclic left shift of the cell by the accumulator) |
| MOVA | 71 | address (copy the cell to the address in the accumulator) |

Arithmetic results beyond ±0x3FFF set the overflow flag; division by zero,
addresses outside memory and invalid commands set their own flags and stop
the machine. Each memory access by an instruction costs extra idle ticks.

## Assembler

```
simplecomp-asm program.sa -o program.bin
```

(`-o` may be left out.) Every line is `<index> <COMMAND> [operand]`, all
separated by blanks. The index is hexadecimal and must equal the line's
position: 00, 01, 02, ... with no gaps or empty lines. Operands are
hexadecimal. The pseudo-command `=` stores a literal cell value:

```
00 LOAD 08
01 ADD 07
02 STORE 08
03 SUM 09
04 JZ 06
05 JUMP 00
06 HALT
07 = +0001
08 = +0000
09 = +0005
```

The assembler prints each translated line. On a syntax error it prints every
diagnostic and writes nothing. The output is 128 little-endian 32-bit cells,
the format the console loads with the `l` key.

## Font generator

```
simplecomp-font font.txt font.bin
```

The source describes each glyph as up to eight rows, where `#` in the first
eight columns marks a lit pixel, followed by a line starting with `-`. At
most 18 glyphs are read; the console draws them as `0`–`9`, `a`–`f`, `+`
and `-`, in that order.

## Console

```
simplecomp [font.bin]
```

The console needs a real terminal of at least 108 columns by 27 rows and a
font file (`font.bin` by default). While a program runs, the machine ticks
every half second.

| Key | Action |
| --- | --- |
| arrows | move the selected cell |
| Enter | edit the selected cell (`+CCOO`, Esc cancels) |
| `l` / `s` | load / save memory |
| `r` | run |
| `t` | execute one step |
| `i` | reset the machine (asks first) |
| F5 | accumulator mode: Enter edits, Esc leaves |
| F6 | instruction counter mode: Enter edits, Esc leaves |
| Esc | exit (asks first) |

Apart from the arrows and Esc, keys are ignored while a program runs. A READ
instruction asks for a value in the IN--OUT panel; WRITE logs a cell there.

## Library use

```python
from simplecomp.assembler import assemble
from simplecomp.cell import format_cell
from simplecomp.computer import SimpleComputer

memory, report = assemble(
    "00 LOAD 03\n01 ADD 04\n02 HALT\n03 = +0002\n04 = +0003\n"
)
computer = SimpleComputer()
for address, value in enumerate(memory):
    computer.memory_set(address, value)
computer.run()
print(format_cell(computer.accumulator))  # +0005
```

`SimpleComputer` takes an optional listener `listener(event, value)` that
receives `simplecomp.computer.Event` notifications; `get_flags` returns the
`Flag` bits, and `memory_load` / `memory_save` read and write memory images.