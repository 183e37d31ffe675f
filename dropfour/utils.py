"""
utils.py - Constants, enumerations and helpers shared by the whole package

The board is a numpy array of shape (ROWS, COLS). Row 0 is the top of the
board and row ROWS - 1 the bottom, so pieces fall towards higher row indices.
"""

from enum import Enum, auto
from typing import List, Tuple

import numpy as np

ROWS = 6
COLS = 7
CONNECT_N = 4
CELLS = ROWS * COLS

# Returned by drop_row for a full column and by the search on a full board
NO_ROW = -1
NO_MOVE = -1

# Stored as the winner of a game that filled the board
DRAW = -1

# Columns ordered from the center outwards
CENTER_ORDER = (3, 2, 4, 1, 5, 0, 6)
CENTER_COL = COLS // 2

Cell = Tuple[int, int]


class Player(Enum):
    """Cell contents and seats."""
    EMPTY = 0
    ONE = 1
    TWO = 2

    def other(self) -> 'Player':
        if self == Player.ONE:
            return Player.TWO
        elif self == Player.TWO:
            return Player.ONE
        return Player.EMPTY

    def __str__(self):
        if self == Player.EMPTY:
            return " "
        elif self == Player.ONE:
            return "X"
        return "O"


class Direction(Enum):
    HORIZONTAL = auto()
    VERTICAL = auto()
    DIAGONAL_DOWN = auto()  # top-left to bottom-right
    DIAGONAL_UP = auto()    # top-right to bottom-left


# (row, col) step for each line through a cell, in the order win checks use
DIRECTION_VECTORS = {
    Direction.HORIZONTAL: (0, 1),
    Direction.VERTICAL: (1, 0),
    Direction.DIAGONAL_DOWN: (1, 1),
    Direction.DIAGONAL_UP: (1, -1),
}


def is_valid_position(row: int, col: int) -> bool:
    return 0 <= row < ROWS and 0 <= col < COLS


def render_board_ascii(board: np.ndarray, highlight: List[Cell] = None) -> str:
    """
    Render the board for a terminal.

    Args:
        board: The game board
        highlight: Cells to draw as "*" (a winning line)

    Returns:
        Multi-line string with column numbers underneath
    """
    marked = set(tuple(cell) for cell in (highlight or []))
    lines = ["|" + "-" * (COLS * 2 - 1) + "|"]

    for row in range(ROWS):
        cells = []
        for col in range(COLS):
            symbol = str(Player(int(board[row, col])))
            if (row, col) in marked:
                symbol = "*"
            cells.append(symbol)
        lines.append("|" + " ".join(cells) + "|")

    lines.append("|" + "-" * (COLS * 2 - 1) + "|")
    lines.append("|" + " ".join(str(col) for col in range(COLS)) + "|")
    return "\n".join(lines)
