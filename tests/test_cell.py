import pytest

from simplecomp.cell import (
    MAX_CELL_VALUE,
    MAX_COMMAND_SIZE,
    MAX_OPERAND_SIZE,
    NEGATIVE_ZERO,
    CellFormatError,
    CellOverflowError,
    CommandOverflowError,
    NegativeZeroError,
    OperandOverflowError,
    OperandType,
    SignError,
    command_by_code,
    command_by_name,
    decode,
    encode,
    format_cell,
    is_valid_command,
    parse_cell,
)


def test_encode_known_value():
    assert encode(0, 4, 4) == 516


def test_decode_known_value():
    assert decode(516) == (0, 4, 4)


@pytest.mark.parametrize("sign", [0, 1])
@pytest.mark.parametrize("command", [0, 1, 43, MAX_COMMAND_SIZE])
@pytest.mark.parametrize("operand", [1, 17, MAX_OPERAND_SIZE])
def test_encode_decode_round_trip(sign, command, operand):
    value = encode(sign, command, operand)
    assert 0 <= value <= MAX_CELL_VALUE
    assert tuple(decode(value)) == (sign, command, operand)


def test_encode_negative_zero_rejected():
    with pytest.raises(NegativeZeroError):
        encode(1, 0, 0)


@pytest.mark.parametrize(
    "args, error",
    [
        ((2, 0, 0), SignError),
        ((-1, 0, 0), SignError),
        ((0, MAX_COMMAND_SIZE + 1, 0), CommandOverflowError),
        ((0, -1, 0), CommandOverflowError),
        ((0, 0, MAX_OPERAND_SIZE + 1), OperandOverflowError),
    ],
)
def test_encode_errors(args, error):
    with pytest.raises(error):
        encode(*args)


@pytest.mark.parametrize("value", [-1, MAX_CELL_VALUE + 1])
def test_decode_overflow(value):
    with pytest.raises(CellOverflowError):
        decode(value)


def test_decode_negative_zero():
    with pytest.raises(NegativeZeroError):
        decode(NEGATIVE_ZERO)


def test_is_valid_command():
    assert is_valid_command(encode(0, 43, 0)) is True
    assert is_valid_command(encode(0, 2, 0)) is False
    assert is_valid_command(encode(1, 43, 0)) is False
    assert is_valid_command(MAX_CELL_VALUE + 1) is False


def test_command_lookup():
    halt = command_by_code(43)
    assert halt.name == "HALT"
    assert halt.operand_type is OperandType.NONE
    assert command_by_name("JUMP").code == 40
    assert command_by_name("JUMP").operand_type is OperandType.ADDRESS
    assert command_by_code(99) is None
    assert command_by_name("SUB") is None


def test_parse_known_cell():
    assert parse_cell("+0404") == 516


@pytest.mark.parametrize("text", ["+2f11", "-113f", "+7f7f", "-0001", "+0000"])
def test_parse_format_round_trip(text):
    assert format_cell(parse_cell(text)) == text


def test_parse_is_case_insensitive():
    assert parse_cell("+2F11") == parse_cell("+2f11")


def test_parse_bad_format():
    with pytest.raises(CellFormatError) as info:
        parse_cell("+zz")
    assert info.value.code == -20


def test_parse_empty():
    with pytest.raises(CellFormatError):
        parse_cell("")


def test_parse_bad_sign():
    with pytest.raises(SignError) as info:
        parse_cell("x0101")
    assert info.value.code == -10


def test_parse_command_overflow():
    with pytest.raises(CommandOverflowError):
        parse_cell("+8000")


def test_parse_negative_zero():
    with pytest.raises(NegativeZeroError):
        parse_cell("-0000")