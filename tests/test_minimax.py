import itertools
import random

import numpy as np
import pytest

from dropfour.ai.minimax import (DIFFICULTIES, MinimaxPlayer, choose_move, evaluate_board,
                                 find_winning_column, get_tier, score_window)
from dropfour.game.board import create_board, drop_row
from dropfour.utils import COLS, NO_MOVE, ROWS, Player
from tests.conftest import DRAW_SEQUENCE, board_after


def _place(board, col, player, count=1):
    for _ in range(count):
        board[drop_row(board, col), col] = player.value


def test_tiers():
    assert get_tier("easy").depth == 2
    assert get_tier("medium").depth == 4
    assert get_tier("hard").depth == 6
    assert get_tier("hard").time_budget == pytest.approx(0.25)
    assert get_tier("easy").search_probability == pytest.approx(0.3)
    with pytest.raises(ValueError):
        get_tier("impossible")


@pytest.mark.parametrize("window,expected", [
    ([2, 2, 2, 2], 100),
    ([1, 1, 1, 1], -100),
    ([2, 2, 2, 0], 5),
    ([2, 0, 2, 0], 2),
    ([1, 1, 0, 1], -4),
    ([2, 1, 0, 0], 0),
    ([0, 0, 0, 0], 0),
])
def test_score_window(window, expected):
    assert score_window(window, 2, 1) == expected


def test_evaluate_board_center_bonus():
    board = create_board()
    assert evaluate_board(board, Player.TWO) == 0
    _place(board, 3, Player.TWO)
    assert evaluate_board(board, Player.TWO) == 3
    assert evaluate_board(board, Player.ONE) == 0


def test_find_winning_column_leaves_board_unchanged():
    board = board_after([0, 6, 0, 6, 0])
    before = board.copy()
    assert find_winning_column(board, Player.ONE) == 0
    assert find_winning_column(board, Player.TWO) == NO_MOVE
    assert np.array_equal(board, before)


@pytest.mark.parametrize("threat_col", range(COLS))
def test_hard_blocks_a_threat_in_every_column(threat_col):
    board = create_board()
    _place(board, threat_col, Player.ONE, 3)
    _place(board, (threat_col + 3) % COLS, Player.TWO, 2)
    player = MinimaxPlayer("hard", Player.TWO, rng=random.Random(threat_col))
    assert player.get_move(board) == threat_col


@pytest.mark.parametrize("difficulty", sorted(DIFFICULTIES))
def test_prefers_own_win_over_blocking(difficulty):
    board = create_board()
    _place(board, 0, Player.TWO, 3)
    _place(board, 6, Player.ONE, 3)
    _place(board, 3, Player.ONE)
    assert choose_move(board, difficulty, Player.TWO, rng=random.Random(1)) == 0


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("difficulty", sorted(DIFFICULTIES))
def test_only_open_column_is_chosen(difficulty, seed):
    board = board_after(DRAW_SEQUENCE[:36])
    assert choose_move(board, difficulty, rng=random.Random(seed)) == 6


@pytest.mark.parametrize("difficulty", sorted(DIFFICULTIES))
def test_full_board_has_no_move(difficulty):
    assert choose_move(board_after(DRAW_SEQUENCE), difficulty) == NO_MOVE


@pytest.mark.parametrize("seed", range(10))
def test_move_is_always_legal(seed):
    rng = random.Random(seed)
    board = create_board()
    player = Player.ONE
    for _ in range(rng.randint(0, 20)):
        col = rng.choice([c for c in range(COLS) if board[0, c] == 0])
        _place(board, col, player)
        player = player.other()
    col = choose_move(board, "medium", player, rng=random.Random(seed))
    assert 0 <= col < COLS
    assert board[0, col] == Player.EMPTY.value


def test_expired_deadline_still_returns_a_legal_column():
    clock = itertools.count(0, 10).__next__
    board = board_after([3, 3, 2])
    player = MinimaxPlayer("hard", Player.TWO, rng=random.Random(3), clock=clock)
    col = player.get_move(board)
    assert 0 <= col < COLS
    assert board[0, col] == Player.EMPTY.value


def test_search_does_not_modify_the_board():
    board = board_after([3, 2, 4, 4])
    before = board.copy()
    player = MinimaxPlayer("medium", Player.ONE, rng=random.Random(0))
    player.get_move(board)
    assert np.array_equal(board, before)
    assert player.nodes_evaluated > 0


def test_hard_sets_up_a_forced_win():
    # Only column 4 leaves TWO with two open ends on the bottom row
    board = create_board()
    board[ROWS - 1, 2] = Player.TWO.value
    board[ROWS - 1, 3] = Player.TWO.value
    board[ROWS - 2, 2] = Player.ONE.value
    board[ROWS - 2, 3] = Player.ONE.value
    board[ROWS - 1, 0] = Player.ONE.value
    board[ROWS - 1, 6] = Player.ONE.value
    player = MinimaxPlayer("hard", Player.TWO, rng=random.Random(0),
                           clock=itertools.repeat(0.0).__next__)
    assert player.get_move(board) == 4
