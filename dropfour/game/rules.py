"""
rules.py - Local game session against the computer

ConnectFourGame keeps one human-vs-computer match in memory: the board,
whose turn it is, the result of the current game, and the running score
across rematches. Online games keep the equivalent state in a Room instead
(see dropfour.rooms).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from dropfour.debug import debug
from dropfour.game.board import check_win, create_board, drop_row, valid_columns
from dropfour.utils import CELLS, COLS, DRAW, NO_ROW, Cell, Player, render_board_ascii


@dataclass
class MoveRecord:
    row: int
    col: int
    player: Player


class ConnectFourGame:
    """
    A local match: successive games with a shared score.

    The winner of a game opens the next one; player one opens after a draw
    and in the first game.
    """

    def __init__(self, first_player: Player = Player.ONE):
        debug.debug("Initializing ConnectFourGame", "game")
        self.scores: Dict[str, int] = {"p1": 0, "p2": 0, "draws": 0}
        self.last_winner: Optional[Player] = None
        self._last_winner_before: Optional[Player] = None
        self.game_number = 0
        self._start_game(first_player)

    def _start_game(self, first_player: Player):
        self.board = create_board()
        self.current_player = first_player
        self.move_count = 0
        self.winner: Optional[int] = None
        self.win_cells: List[Cell] = []
        self.history: List[MoveRecord] = []

    def reset(self):
        """Forget the whole match, scores included."""
        debug.debug("Resetting match", "game")
        self.scores = {"p1": 0, "p2": 0, "draws": 0}
        self.last_winner = None
        self.game_number = 0
        self._start_game(Player.ONE)

    def rematch(self) -> Player:
        """Start the next game, opened by the last winner. Returns the opener."""
        opener = self.last_winner or Player.ONE
        self.game_number += 1
        self._start_game(opener)
        debug.info(f"Game {self.game_number} started, {opener.name} opens", "game")
        return opener

    def is_game_over(self) -> bool:
        return self.winner is not None

    def get_valid_moves(self) -> List[int]:
        if self.is_game_over():
            return []
        return sorted(valid_columns(self.board))

    def make_move(self, column: int) -> Optional[MoveRecord]:
        """
        Drop a piece for the current player.

        Returns:
            The move, or None if it was illegal (game over, bad or full column)
        """
        if self.is_game_over() or not (0 <= column < COLS):
            debug.debug(f"Rejected move in column {column}", "game")
            return None

        row = drop_row(self.board, column)
        if row == NO_ROW:
            debug.debug(f"Column {column} is full", "game")
            return None

        player = self.current_player
        self.board[row, column] = player.value
        self.move_count += 1
        move = MoveRecord(row, column, player)
        self.history.append(move)
        self.current_player = player.other()

        line = check_win(self.board, row, column)
        if line:
            self._finish(player.value, line)
        elif self.move_count >= CELLS:
            self._finish(DRAW, [])
        return move

    def _finish(self, winner: int, line: List[Cell]):
        self._last_winner_before = self.last_winner
        self.winner = winner
        self.win_cells = line
        if winner == DRAW:
            self.scores["draws"] += 1
            debug.info("Game ends in a draw", "game")
        else:
            self.last_winner = Player(winner)
            self.scores["p1" if winner == Player.ONE.value else "p2"] += 1
            debug.info(f"{Player(winner).name} wins with {line}", "game")

    def undo_move(self) -> bool:
        """Take back the last move of the current game."""
        if not self.history:
            debug.debug("No moves to undo", "game")
            return False

        if self.winner is not None:
            if self.winner == DRAW:
                self.scores["draws"] -= 1
            else:
                self.scores["p1" if self.winner == Player.ONE.value else "p2"] -= 1
                self.last_winner = self._last_winner_before
            self.winner = None
            self.win_cells = []

        move = self.history.pop()
        self.board[move.row, move.col] = Player.EMPTY.value
        self.move_count -= 1
        self.current_player = move.player
        return True

    def get_winner(self) -> Optional[Player]:
        if self.winner in (Player.ONE.value, Player.TWO.value):
            return Player(self.winner)
        return None

    def state_token(self) -> Tuple[int, int]:
        """Identifies the current position for discarding stale searches."""
        return self.game_number, self.move_count

    def render(self) -> str:
        return render_board_ascii(self.board, self.win_cells)
