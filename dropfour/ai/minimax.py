"""
minimax.py - Time-bounded minimax with alpha-beta pruning for the computer opponent

Move selection happens in three stages:
1. Play a column that wins immediately.
2. Otherwise block a column where the opponent would win immediately.
3. Otherwise search, with depth and wall-clock budget set by the difficulty.

The search visits columns center first (3, 2, 4, 1, 5, 0, 6), which prunes
better than left-to-right order. Terminal positions score 1000 plus the
remaining depth, so quicker wins and slower losses are preferred. Leaves and
branches cut off by the deadline fall back to a static evaluation over every
four-cell window on the board.
"""

import math
import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from dropfour.debug import debug
from dropfour.game.board import check_win, drop_row, valid_columns
from dropfour.utils import ROWS, COLS, CONNECT_N, CENTER_COL, NO_MOVE, Player

WIN_SCORE = 1000
CENTER_BONUS = 3


@dataclass(frozen=True)
class SearchTier:
    depth: int
    time_budget: float          # seconds
    search_probability: float   # chance of searching instead of a random column


DIFFICULTIES: Dict[str, SearchTier] = {
    "easy": SearchTier(depth=2, time_budget=0.120, search_probability=0.3),
    "medium": SearchTier(depth=4, time_budget=0.120, search_probability=1.0),
    "hard": SearchTier(depth=6, time_budget=0.250, search_probability=1.0),
}


def get_tier(difficulty: str) -> SearchTier:
    try:
        return DIFFICULTIES[difficulty]
    except KeyError:
        raise ValueError(f"Unknown difficulty {difficulty!r}; "
                         f"expected one of {sorted(DIFFICULTIES)}")


def _build_windows() -> List[Tuple[int, ...]]:
    """Flat indices of every run of four cells (rows, columns, both diagonals)."""
    windows = []
    for row in range(ROWS):
        for col in range(COLS):
            for dr, dc in ((0, 1), (1, 0), (1, 1), (1, -1)):
                end_row = row + dr * (CONNECT_N - 1)
                end_col = col + dc * (CONNECT_N - 1)
                if not (0 <= end_row < ROWS and 0 <= end_col < COLS):
                    continue
                windows.append(tuple((row + dr * i) * COLS + (col + dc * i)
                                     for i in range(CONNECT_N)))
    return windows


WINDOWS = _build_windows()


def score_window(window: List[int], own: int, opp: int) -> int:
    own_count = window.count(own)
    opp_count = window.count(opp)
    empty_count = window.count(Player.EMPTY.value)

    if own_count == 4:
        return 100
    if opp_count == 4:
        return -100
    if own_count == 3 and empty_count == 1:
        return 5
    if own_count == 2 and empty_count == 2:
        return 2
    if opp_count == 3 and empty_count == 1:
        return -4
    return 0


def evaluate_board(board: np.ndarray, player: Player) -> int:
    """
    Static evaluation from ``player``'s point of view.

    Sum of window scores plus CENTER_BONUS for each of the player's pieces
    in the center column.
    """
    cells = board.ravel().tolist()
    own = player.value
    opp = player.other().value

    score = CENTER_BONUS * sum(1 for row in range(ROWS)
                               if cells[row * COLS + CENTER_COL] == own)
    for window in WINDOWS:
        score += score_window([cells[i] for i in window], own, opp)
    return score


def find_winning_column(board: np.ndarray, player: Player) -> int:
    """First column (center order) where ``player`` wins at once, or NO_MOVE."""
    for col in valid_columns(board):
        row = drop_row(board, col)
        board[row, col] = player.value
        won = check_win(board, row, col) is not None
        board[row, col] = Player.EMPTY.value
        if won:
            return col
    return NO_MOVE


class MinimaxPlayer:
    """
    Computer opponent for one difficulty tier.

    get_move never modifies the board it is given. A full board yields
    NO_MOVE, which callers treat as a draw.
    """

    def __init__(self, difficulty: str = "hard", ai_player: Player = Player.TWO,
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.difficulty = difficulty
        self.tier = get_tier(difficulty)
        self.ai_player = ai_player
        self.rng = rng or random.Random()
        self.clock = clock or time.monotonic
        self.nodes_evaluated = 0
        self._deadline = math.inf

    def get_move(self, board: np.ndarray) -> int:
        grid = np.array(board, dtype=int, copy=True)
        self.nodes_evaluated = 0

        columns = valid_columns(grid)
        if not columns:
            debug.debug("No legal move on a full board", "search")
            return NO_MOVE

        winning = find_winning_column(grid, self.ai_player)
        if winning != NO_MOVE:
            debug.debug(f"Playing immediate win in column {winning}", "search")
            return winning

        blocking = find_winning_column(grid, self.ai_player.other())
        if blocking != NO_MOVE:
            debug.debug(f"Blocking opponent in column {blocking}", "search")
            return blocking

        if self.rng.random() >= self.tier.search_probability:
            column = self.rng.choice(columns)
            debug.debug(f"Random move in column {column} ({self.difficulty})", "search")
            return column

        started = self.clock()
        self._deadline = started + self.tier.time_budget
        column, score = self._search_root(grid, self.tier.depth)
        debug.debug(f"{self.difficulty} search chose column {column} "
                    f"(score {score}, {self.nodes_evaluated} nodes, "
                    f"{self.clock() - started:.3f}s)", "search")
        return column

    def _search_root(self, grid: np.ndarray, depth: int) -> Tuple[int, float]:
        columns = valid_columns(grid)
        best_column = self.rng.choice(columns)
        best_score = -math.inf
        alpha, beta = -math.inf, math.inf

        for col in columns:
            row = drop_row(grid, col)
            grid[row, col] = self.ai_player.value
            score = self._minimax(grid, depth - 1, alpha, beta, False, (row, col))
            grid[row, col] = Player.EMPTY.value

            if score > best_score:
                best_score = score
                best_column = col
            alpha = max(alpha, score)
            if alpha >= beta:
                break

        return best_column, best_score

    def _minimax(self, grid: np.ndarray, depth: int, alpha: float, beta: float,
                 maximizing: bool, last_cell: Tuple[int, int]) -> float:
        self.nodes_evaluated += 1
        row, col = last_cell

        if check_win(grid, row, col) is not None:
            if grid[row, col] == self.ai_player.value:
                return WIN_SCORE + depth
            return -(WIN_SCORE + depth)

        if self.clock() >= self._deadline:
            return evaluate_board(grid, self.ai_player)

        columns = valid_columns(grid)
        if depth == 0 or not columns:
            return evaluate_board(grid, self.ai_player)

        piece = self.ai_player.value if maximizing else self.ai_player.other().value
        best = -math.inf if maximizing else math.inf

        for next_col in columns:
            next_row = drop_row(grid, next_col)
            grid[next_row, next_col] = piece
            score = self._minimax(grid, depth - 1, alpha, beta, not maximizing,
                                  (next_row, next_col))
            grid[next_row, next_col] = Player.EMPTY.value

            if maximizing:
                best = max(best, score)
                alpha = max(alpha, score)
            else:
                best = min(best, score)
                beta = min(beta, score)
            if alpha >= beta:
                break

        return best


def choose_move(board: np.ndarray, difficulty: str, ai_player: Player = Player.TWO,
                rng: Optional[random.Random] = None,
                clock: Optional[Callable[[], float]] = None) -> int:
    """Pick a column for ``ai_player``; NO_MOVE only when the board is full."""
    return MinimaxPlayer(difficulty, ai_player, rng=rng, clock=clock).get_move(board)
