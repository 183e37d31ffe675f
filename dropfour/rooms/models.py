"""
models.py - The Room aggregate shared by two online players

A Room is the single authoritative copy of one online match. It is stored
as JSON (camelCase keys, see to_dict) so that the server, the file store
and HTTP clients all see the same shape.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from dropfour.game.board import board_from_rows, board_to_rows, create_board
from dropfour.utils import DRAW, Cell, Player

DEFAULT_PLAYER1_NAME = "PLAYER 1"
DEFAULT_PLAYER2_NAME = "PLAYER 2"


@dataclass
class LastMove:
    row: int
    col: int
    player: Player

    def to_dict(self) -> Dict[str, int]:
        return {"row": self.row, "col": self.col, "player": self.player.value}

    @classmethod
    def from_dict(cls, data: Dict[str, int]) -> 'LastMove':
        return cls(int(data["row"]), int(data["col"]), Player(int(data["player"])))


def empty_scores() -> Dict[str, int]:
    return {"p1": 0, "p2": 0, "draws": 0}


def empty_votes() -> Dict[str, bool]:
    return {"p1": False, "p2": False}


def seat_key(seat: Player) -> str:
    """"p1"/"p2", the key a seat uses in scores and rematch votes."""
    return "p1" if seat == Player.ONE else "p2"


@dataclass
class Room:
    room_code: str
    player1: str
    player1_name: str = DEFAULT_PLAYER1_NAME
    player2: Optional[str] = None
    player2_name: Optional[str] = None
    board: np.ndarray = field(default_factory=create_board)
    current_player: Player = Player.ONE
    move_count: int = 0
    winner: Optional[int] = None       # Player value or DRAW
    win_cells: List[Cell] = field(default_factory=list)
    last_move: Optional[LastMove] = None
    rematch: Dict[str, bool] = field(default_factory=empty_votes)
    game_number: int = 0
    scores: Dict[str, int] = field(default_factory=empty_scores)
    last_winner: Optional[Player] = None
    version: int = 0

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def is_draw(self) -> bool:
        return self.winner == DRAW

    def seat_of(self, player_id: str) -> Optional[Player]:
        """Seat held by ``player_id`` (exact identifier match), if any."""
        if player_id is None:
            return None
        if player_id == self.player1:
            return Player.ONE
        if self.player2 is not None and player_id == self.player2:
            return Player.TWO
        return None

    def name_of(self, seat: Player) -> Optional[str]:
        return self.player1_name if seat == Player.ONE else self.player2_name

    def ordering_key(self):
        """Later states compare greater: (gameNumber, moveCount)."""
        return self.game_number, self.move_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roomCode": self.room_code,
            "board": board_to_rows(self.board),
            "currentPlayer": self.current_player.value,
            "player1": self.player1,
            "player1Name": self.player1_name,
            "player2": self.player2,
            "player2Name": self.player2_name,
            "winner": self.winner,
            "winCells": [[r, c] for r, c in self.win_cells],
            "moveCount": self.move_count,
            "lastMove": self.last_move.to_dict() if self.last_move else None,
            "rematch": dict(self.rematch),
            "gameNumber": self.game_number,
            "scores": dict(self.scores),
            "lastWinner": self.last_winner.value if self.last_winner else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Room':
        """Parse the wire format; missing optional fields take their defaults."""
        last_move = data.get("lastMove")
        last_winner = data.get("lastWinner")
        winner = data.get("winner")
        rematch = empty_votes()
        rematch.update({k: bool(v) for k, v in (data.get("rematch") or {}).items()
                        if k in rematch})
        scores = empty_scores()
        scores.update({k: int(v) for k, v in (data.get("scores") or {}).items()
                       if k in scores})

        return cls(
            room_code=data["roomCode"],
            player1=data["player1"],
            player1_name=data.get("player1Name") or DEFAULT_PLAYER1_NAME,
            player2=data.get("player2"),
            player2_name=data.get("player2Name"),
            board=board_from_rows(data["board"]) if data.get("board") is not None
            else create_board(),
            current_player=Player(int(data.get("currentPlayer", Player.ONE.value))),
            move_count=int(data.get("moveCount") or 0),
            winner=int(winner) if winner is not None else None,
            win_cells=[(int(r), int(c)) for r, c in data.get("winCells") or []],
            last_move=LastMove.from_dict(last_move) if last_move else None,
            rematch=rematch,
            game_number=int(data.get("gameNumber") or 0),
            scores=scores,
            last_winner=Player(int(last_winner)) if last_winner not in (None, DRAW) else None,
            version=int(data.get("version") or 0),
        )
