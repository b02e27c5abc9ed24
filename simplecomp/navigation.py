"""Moving the selection around the memory grid, wrapping at the edges."""

from __future__ import annotations

from .cell import MEMORY_SIZE

RAM_COLUMNS = 10
RAM_ROWS = MEMORY_SIZE // RAM_COLUMNS
RAM_LAST_ROW_LEN = MEMORY_SIZE - RAM_ROWS * RAM_COLUMNS


def move_left(cell: int) -> int:
    """Cell to the left, wrapping to the end of the row."""
    if cell // RAM_COLUMNS == RAM_ROWS and cell % RAM_LAST_ROW_LEN == 0:
        return cell + RAM_LAST_ROW_LEN - 1
    if cell % RAM_COLUMNS == 0:
        return cell + RAM_COLUMNS - 1
    return cell - 1


def move_right(cell: int) -> int:
    """Cell to the right, wrapping to the start of the row."""
    if (
        cell // RAM_COLUMNS == RAM_ROWS
        and cell % RAM_LAST_ROW_LEN == RAM_LAST_ROW_LEN - 1
    ):
        return cell - RAM_LAST_ROW_LEN + 1
    if cell % RAM_COLUMNS == RAM_COLUMNS - 1:
        return cell - RAM_COLUMNS + 1
    return cell + 1


def move_up(cell: int) -> int:
    """Cell above, wrapping to the bottom of the column."""
    column = cell % RAM_COLUMNS
    if cell // RAM_COLUMNS == 0:
        if column >= RAM_LAST_ROW_LEN:
            return (RAM_ROWS - 1) * RAM_COLUMNS + column
        return RAM_ROWS * RAM_COLUMNS + column
    return cell - RAM_COLUMNS


def move_down(cell: int) -> int:
    """Cell below, wrapping to the top of the column."""
    column = cell % RAM_COLUMNS
    row = cell // RAM_COLUMNS
    if column >= RAM_LAST_ROW_LEN and row == RAM_ROWS - 1:
        return column
    if row == RAM_ROWS:
        return column
    return cell + RAM_COLUMNS