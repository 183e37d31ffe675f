"""
board.py - Board representation and win detection

Stateless functions over a numpy grid. Nothing here performs I/O or knows
whose turn it is; callers track turns and move counts themselves.

Win detection is local: check_win only looks at lines through the piece that
was just placed. Callers (the search engine and the room manager) always call
it immediately after a drop, which is what makes the local check sufficient.
find_any_win scans the whole board and is only used to inspect arbitrary
positions.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from dropfour.debug import debug
from dropfour.utils import (ROWS, COLS, CONNECT_N, CENTER_ORDER, NO_ROW,
                            DIRECTION_VECTORS, Cell, Player, is_valid_position)


def create_board() -> np.ndarray:
    """Return a fresh, empty ROWS x COLS board."""
    return np.zeros((ROWS, COLS), dtype=int)


def drop_row(board: np.ndarray, col: int) -> int:
    """
    Find the row a piece dropped into ``col`` would land in.

    ``col`` must be within [0, COLS); range checking is the caller's job.

    Returns:
        The lowest empty row of the column, or NO_ROW if the column is full
    """
    for row in range(ROWS - 1, -1, -1):
        if board[row, col] == Player.EMPTY.value:
            return row
    return NO_ROW


def valid_columns(board: np.ndarray) -> List[int]:
    """Columns that still have room, center column first."""
    return [col for col in CENTER_ORDER if board[0, col] == Player.EMPTY.value]


def is_full(board: np.ndarray) -> bool:
    return not np.any(board[0] == Player.EMPTY.value)


def apply_drop(board: np.ndarray, col: int, player: Player) -> Tuple[np.ndarray, int]:
    """
    Drop a piece on a copy of the board.

    Returns:
        (new_board, row). ``row`` is NO_ROW and the copy unchanged if the
        column is full.
    """
    new_board = board.copy()
    row = drop_row(new_board, col)
    if row != NO_ROW:
        new_board[row, col] = player.value
    return new_board, row


def check_win(board: np.ndarray, row: int, col: int) -> Optional[List[Cell]]:
    """
    Look for four in a row through the piece at (row, col).

    Each direction starts from the placed piece, walks up to three cells
    forwards and then up to three cells backwards while the colour matches.

    Returns:
        The first four cells of the first qualifying line, in the order they
        were collected, or None
    """
    value = board[row, col]
    if value == Player.EMPTY.value:
        return None

    for dr, dc in DIRECTION_VECTORS.values():
        cells = [(row, col)]
        for sign in (1, -1):
            for step in range(1, CONNECT_N):
                r = row + dr * step * sign
                c = col + dc * step * sign
                if not is_valid_position(r, c) or board[r, c] != value:
                    break
                cells.append((r, c))
        if len(cells) >= CONNECT_N:
            return cells[:CONNECT_N]
    return None


def find_any_win(board: np.ndarray) -> Optional[List[Cell]]:
    """Full-board scan; slower than check_win but needs no last move."""
    for row in range(ROWS):
        for col in range(COLS):
            line = check_win(board, row, col)
            if line:
                return line
    return None


def count_pieces(board: np.ndarray) -> int:
    return int(np.count_nonzero(board != Player.EMPTY.value))


def is_gravity_consistent(board: np.ndarray) -> bool:
    """True if no column has an empty cell below an occupied one."""
    for col in range(COLS):
        seen_empty = False
        for row in range(ROWS - 1, -1, -1):
            if board[row, col] == Player.EMPTY.value:
                seen_empty = True
            elif seen_empty:
                return False
    return True


def board_from_rows(rows: Iterable[Sequence[int]]) -> np.ndarray:
    """Build a board from nested lists (the JSON wire format)."""
    board = np.array(list(rows), dtype=int)
    if board.shape != (ROWS, COLS):
        raise ValueError(f"Board must be {ROWS}x{COLS}, got {board.shape}")
    if not np.isin(board, [p.value for p in Player]).all():
        raise ValueError("Board contains values other than 0, 1 and 2")
    return board


def board_to_rows(board: np.ndarray) -> List[List[int]]:
    return [[int(cell) for cell in row] for row in board]


def board_from_position(position: str) -> np.ndarray:
    """Parse a comma separated string of ROWS * COLS cell values, top row first."""
    values = [int(v) for v in position.split(',') if v.strip() != '']
    if len(values) != ROWS * COLS:
        raise ValueError(f"Position string must have {ROWS * COLS} values, got {len(values)}")
    board = board_from_rows(np.array(values).reshape(ROWS, COLS))
    debug.trace(f"Parsed position with {count_pieces(board)} pieces", "board")
    return board
