import time

import pytest

from simplecomp.cell import (
    BITS_PER_CELL,
    MEMORY_SIZE,
    CellOverflowError,
    NegativeZeroError,
    encode,
    parse_cell,
)
from simplecomp.computer import (
    AddressError,
    ComputerError,
    Event,
    Flag,
    SimpleComputer,
)

NOP = 0
LOAD = 20
STORE = 21
ADD = 30
SUB = 31
DIVIDE = 32
MUL = 33
JUMP = 40
JNEG = 41
JZ = 42
HALT = 43
RCCR = 70
MOVA = 71

ERRORS = Flag.OVERFLOW | Flag.ZERO_DIV | Flag.OUT_OF_BOUNDS | Flag.INVALID_COMMAND


def run_program(cells, accumulator=None, incounter=None):
    computer = SimpleComputer()
    for address, value in cells.items():
        computer.memory_set(address, value)
    if accumulator is not None:
        computer.accumulator = accumulator
    if incounter is not None:
        computer.incounter = incounter
    computer.run(max_ticks=1000)
    return computer


def op(command, operand=0):
    return encode(0, command, operand)


def test_halt():
    c = run_program({0: op(HALT)})
    assert c.tick_counter == 1
    assert c.incounter == 0
    assert c.get_flags(ERRORS) == 0


def test_nop():
    c = run_program({0: op(NOP), 1: op(HALT)})
    assert c.tick_counter == 2
    assert c.incounter == 1
    assert c.accumulator == 0


def test_memory_cell_parse():
    c = run_program({0: op(HALT), 1: parse_cell("+0404")})
    assert c.memory_get(1) == encode(0, 4, 4)
    c = run_program({0: op(HALT), 1: 516})
    assert c.memory_get(1) == encode(0, 4, 4)


def test_out_of_bounds_incounter():
    c = run_program({0: op(HALT)}, incounter=244)
    assert c.tick_counter == 1
    assert c.get_flags(ERRORS) == Flag.OUT_OF_BOUNDS


def test_out_of_bounds_negative_incounter():
    c = run_program({0: op(HALT)}, incounter=parse_cell("-0001"))
    assert c.tick_counter == 1
    assert c.get_flags(ERRORS) == Flag.OUT_OF_BOUNDS


def test_invalid_command():
    c = run_program({0: encode(1, HALT, 0), 1: op(HALT)})
    assert c.tick_counter == 1
    assert c.incounter == 0
    assert c.get_flags(ERRORS) == Flag.INVALID_COMMAND


def test_load():
    c = run_program({0: op(LOAD, 1), 1: op(HALT)})
    assert c.tick_counter == 12
    assert c.accumulator == op(HALT)


def test_store():
    c = run_program({0: op(STORE, 2), 1: op(HALT)}, accumulator=parse_cell("+0404"))
    assert c.tick_counter == 12
    assert c.memory_get(2) == parse_cell("+0404")


def test_load_and_store():
    c = run_program({0: op(LOAD, 2), 1: op(STORE, 3), 2: op(HALT)})
    assert c.tick_counter == 23
    assert c.incounter == 2
    assert c.memory_get(3) == op(HALT)
    assert c.accumulator == op(HALT)


@pytest.mark.parametrize(
    "command, acc, operand, expected",
    [
        (ADD, "+0001", "+0001", "+0002"),
        (ADD, "+0001", "-0001", "+0000"),
        (ADD, "-0001", "-0001", "-0002"),
        (ADD, "-113F", "+2F11", "+1d52"),
        (SUB, "+0001", "+0001", "+0000"),
        (SUB, "+0001", "-0001", "+0002"),
        (SUB, "-0001", "-0001", "+0000"),
        (SUB, "-113F", "+2F11", "-4050"),
        (DIVIDE, "+0002", "+0002", "+0001"),
        (DIVIDE, "+0002", "-0002", "-0001"),
        (DIVIDE, "-0002", "-0002", "+0001"),
        (MUL, "+0002", "+0002", "+0004"),
        (MUL, "+0002", "-0002", "-0004"),
        (MUL, "-0002", "-0002", "+0004"),
    ],
)
def test_arithmetic(command, acc, operand, expected):
    c = run_program(
        {0: op(command, 2), 1: op(HALT), 2: parse_cell(operand)},
        accumulator=parse_cell(acc),
    )
    assert c.tick_counter == 12
    assert c.incounter == 1
    assert c.accumulator == parse_cell(expected)
    assert c.get_flags(ERRORS) == 0


def test_div_complex_truncates():
    c = run_program({0: op(DIVIDE, 2), 1: op(HALT), 2: parse_cell("-003C")}, accumulator=133)
    assert c.accumulator == parse_cell("-0002")


def test_div_zero():
    c = run_program({0: op(DIVIDE, 2), 1: op(HALT), 2: 0}, accumulator=133)
    assert c.tick_counter == 11
    assert c.accumulator == 133
    assert c.incounter == 0
    assert c.get_flags(ERRORS) == Flag.ZERO_DIV


def test_mul_complex_and_zero():
    c = run_program({0: op(MUL, 2), 1: op(HALT), 2: 5}, accumulator=21)
    assert c.accumulator == 105
    c = run_program({0: op(MUL, 2), 1: op(HALT), 2: 0}, accumulator=21)
    assert c.accumulator == 0


@pytest.mark.parametrize(
    "command, acc, operand",
    [
        (ADD, "+7f7f", "+0001"),
        (ADD, "-7f7f", "-0001"),
        (SUB, "+7f7f", "-0001"),
        (SUB, "-7f7f", "+0001"),
        (MUL, "+7f7f", "+7f7f"),
        (MUL, "-7f7f", "+7f7f"),
    ],
)
def test_overflow(command, acc, operand):
    c = run_program(
        {0: op(command, 2), 1: op(HALT), 2: parse_cell(operand)},
        accumulator=parse_cell(acc),
    )
    assert c.tick_counter == 11
    assert c.accumulator == parse_cell(acc)
    assert c.incounter == 0
    assert c.get_flags(ERRORS) == Flag.OVERFLOW


def test_jump():
    c = run_program({0: op(JUMP, 3), 1: op(HALT), 3: op(HALT), 5: op(HALT)})
    assert c.tick_counter == 2
    assert c.incounter == 3


def test_jneg():
    cells = {0: op(JNEG, 3), 1: op(HALT), 3: op(HALT), 5: op(HALT)}
    assert run_program(cells).incounter == 1
    assert run_program(cells, accumulator=parse_cell("-0010")).incounter == 3


def test_jz():
    cells = {0: op(JZ, 3), 1: op(HALT), 3: op(HALT), 5: op(HALT)}
    assert run_program(cells, accumulator=parse_cell("+0002")).incounter == 1
    assert run_program(cells, accumulator=parse_cell("-0002")).incounter == 1
    assert run_program(cells).incounter == 3


@pytest.mark.parametrize(
    "acc, expected",
    [(1, 24705), (1 + BITS_PER_CELL, 24705), (3 + 2 * BITS_PER_CELL, 519), (0, 28736)],
)
def test_rccr(acc, expected):
    c = run_program({0: op(RCCR, 2), 1: op(HALT), 2: 28736}, accumulator=acc)
    assert c.tick_counter == 12
    assert c.accumulator == expected
    assert c.get_flags(ERRORS) == 0


def test_rccr_negative():
    c = run_program({0: op(RCCR, 2), 1: op(HALT), 2: 28736}, accumulator=parse_cell("-0010"))
    assert c.tick_counter == 11
    assert c.accumulator == parse_cell("-0010")
    assert c.get_flags(ERRORS) == Flag.INVALID_COMMAND


def test_mova():
    c = run_program({0: op(MOVA, 2), 1: op(HALT), 2: 28736}, accumulator=3)
    assert c.tick_counter == 22
    assert c.memory_get(3) == 28736
    assert c.accumulator == 3


@pytest.mark.parametrize("acc", [129, parse_cell("-0001")])
def test_mova_out_of_bounds(acc):
    c = run_program({0: op(MOVA, 2), 1: op(HALT), 2: 28736}, accumulator=acc)
    assert c.tick_counter == 11
    assert c.incounter == 0
    assert c.get_flags(ERRORS) == Flag.OUT_OF_BOUNDS


def test_for_loop():
    cells = {
        0: op(LOAD, 8),
        1: op(ADD, 7),
        2: op(STORE, 8),
        3: op(SUB, 9),
        4: op(JZ, 6),
        5: op(JUMP, 0),
        6: op(HALT),
        7: parse_cell("+0001"),
        9: parse_cell("+0005"),
    }
    c = run_program(cells)
    assert c.tick_counter == 230
    assert c.incounter == 6
    assert c.memory_get(8) == parse_cell("+0005")
    assert c.get_flags(ERRORS) == 0


def test_ticks_ignored_while_stopped():
    c = SimpleComputer()
    c.memory_set(0, op(NOP))
    assert c.tick() is False
    assert c.tick_counter == 0
    assert c.incounter == 0


def test_force_tick_runs_one_instruction():
    c = SimpleComputer()
    c.memory_set(0, op(LOAD, 1))
    c.memory_set(1, op(HALT))
    c.force_tick()
    count = 0
    while c.tick():
        count += 1
    assert count == c.tick_counter
    assert c.incounter == 1
    assert c.accumulator == op(HALT)
    assert c.get_flags(Flag.TICK_IGNORE) == Flag.TICK_IGNORE


def test_run_respects_max_ticks():
    c = SimpleComputer()
    c.memory_set(0, op(JUMP, 0))
    assert c.run(max_ticks=5) == 5
    assert c.tick_counter == 5
    assert c.is_running is True


def test_listener_receives_events():
    events = []
    c = SimpleComputer(lambda event, value: events.append((event, value)))
    c.memory_set(0, op(HALT))
    c.run()
    kinds = [event for event, _ in events]
    assert Event.TICK in kinds
    assert Event.POST_TICK in kinds
    assert kinds.count(Event.IS_RUNNING) == 2
    assert c.is_running is False
    events.clear()
    c.reset()
    assert events == [(Event.RESET, 0)]


def test_store_notifies_cell_update():
    events = []
    c = SimpleComputer()
    c.set_listener(lambda event, value: events.append((event, value)))
    c.memory_set(0, op(STORE, 5))
    c.memory_set(1, op(HALT))
    c.run()
    assert (Event.CELL_UPDATE, 5) in events


def test_read_request_can_abort():
    requests = []

    def listener(event, value):
        if event == Event.READ_REQUEST:
            requests.append(value)
            return -1
        return 0

    c = SimpleComputer(listener)
    c.memory_set(0, op(10, 7))
    c.run()
    assert requests == [7]
    assert c.incounter == 0
    assert c.get_flags(Flag.TICK_IGNORE) == Flag.TICK_IGNORE


def test_reset_clears_state():
    c = run_program({0: op(LOAD, 1), 1: op(HALT)})
    c.reset()
    assert c.tick_counter == 0
    assert c.accumulator == 0
    assert c.incounter == 0
    assert c.memory == (0,) * MEMORY_SIZE
    assert c.get_flags() == Flag.TICK_IGNORE


def test_memory_address_errors():
    c = SimpleComputer()
    with pytest.raises(AddressError):
        c.memory_get(MEMORY_SIZE)
    with pytest.raises(AddressError):
        c.memory_set(-1, 0)
    with pytest.raises(NegativeZeroError):
        c.memory_set(0, encode(1, 0, 1) - 1)


def test_register_setters_validate():
    c = SimpleComputer()
    with pytest.raises(CellOverflowError):
        c.accumulator = -1
    with pytest.raises(NegativeZeroError):
        c.incounter = 1 << 14
    c.accumulator = 42
    assert c.accumulator == 42


def test_flag_errors():
    c = SimpleComputer()
    with pytest.raises(ValueError):
        c.set_flags(Flag.OVERFLOW, Flag.ZERO_DIV)
    with pytest.raises(ValueError):
        c.set_flags(0x40, 0)
    with pytest.raises(ValueError):
        c.get_flags(-1)
    c.set_flags(Flag.ALL, Flag.OVERFLOW | Flag.ZERO_DIV)
    assert c.get_flags(Flag.OVERFLOW) == Flag.OVERFLOW
    assert c.get_flags(Flag.TICK_IGNORE) == 0


def test_memory_save_load_round_trip(tmp_path):
    path = tmp_path / "image.bin"
    c = SimpleComputer()
    for address in range(MEMORY_SIZE):
        c.memory_set(address, address * 3)
    c.memory_save(path)
    assert path.stat().st_size == MEMORY_SIZE * 4
    events = []
    other = SimpleComputer(lambda event, value: events.append(event))
    other.memory_load(path)
    assert other.memory == c.memory
    assert events == [Event.MEMORY_UPDATE, Event.INCOUNTER_UPDATE]


def test_memory_load_errors(tmp_path):
    short = tmp_path / "short.bin"
    short.write_bytes(b"\x00" * 10)
    c = SimpleComputer()
    with pytest.raises(ComputerError):
        c.memory_load(short)
    with pytest.raises(FileNotFoundError):
        c.memory_load(tmp_path / "missing.bin")


def test_start_ticks_immediately():
    c = SimpleComputer()
    c.set_simulation_delay(0.001)
    c.memory_set(0, op(HALT))
    c.set_flags(Flag.TICK_IGNORE, 0)
    stop = c.start()
    try:
        assert c.tick_counter == 1
        time.sleep(0.02)
        assert c.tick_counter == 1
    finally:
        stop.set()


def test_negative_delay_rejected():
    with pytest.raises(ValueError):
        SimpleComputer().set_simulation_delay(-1)