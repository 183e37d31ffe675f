"""
reconciler.py - Keep a client's local view of an online game in step with the server

Each client holds an optimistic copy of the game (LocalGameState) and
periodically receives the authoritative Room. ClientReconciler.reconcile
compares the two and returns the changes the presentation layer should
react to, applying these rules in order:

1. adopt the opponent's display name once it is known
2. adopt the server's scores whenever they differ
3. leave the waiting screen once a second player has joined
4. a higher gameNumber means a rematch completed: reset to the new game
   (checked before moves, since a new game also resets moveCount to 0)
5. otherwise a higher moveCount means a move happened: adopt the board
6. surface a game result the first time it is seen
7. always take the latest rematch votes

Snapshots older than what has already been adopted, ordered by
(gameNumber, moveCount), are ignored. Feeding the same snapshot twice
produces no events the second time.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from dropfour.debug import debug
from dropfour.game.board import check_win, create_board, drop_row
from dropfour.rooms.models import LastMove, Room, empty_scores, empty_votes
from dropfour.utils import CELLS, DRAW, NO_ROW, Cell, Player


class Phase(Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    GAME_OVER = "game_over"


class EventKind(Enum):
    OPPONENT_NAMED = "opponent_named"
    SCORES_CHANGED = "scores_changed"
    OPPONENT_JOINED = "opponent_joined"
    NEW_GAME = "new_game"
    MOVE = "move"
    GAME_OVER = "game_over"
    REMATCH_CHANGED = "rematch_changed"


@dataclass
class ReconcileEvent:
    kind: EventKind
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LocalGameState:
    """What one client currently believes about the game."""
    seat: Player
    phase: Phase = Phase.WAITING
    board: np.ndarray = field(default_factory=create_board)
    current_player: Player = Player.ONE
    move_count: int = 0
    game_number: int = 0
    winner: Optional[int] = None
    win_cells: List[Cell] = field(default_factory=list)
    last_winner: Optional[Player] = None
    scores: Dict[str, int] = field(default_factory=empty_scores)
    rematch: Dict[str, bool] = field(default_factory=empty_votes)
    opponent_name: Optional[str] = None

    @property
    def is_my_turn(self) -> bool:
        return (self.phase == Phase.PLAYING and self.winner is None
                and self.current_player == self.seat)


def outcome_for(seat: Player, winner: int) -> str:
    if winner == DRAW:
        return "draw"
    return "win" if winner == seat.value else "loss"


class ClientReconciler:
    """Applies polled Room snapshots to one client's LocalGameState."""

    def __init__(self, seat: Player, state: LocalGameState = None):
        self.state = state or LocalGameState(
            seat=seat, phase=Phase.WAITING if seat == Player.ONE else Phase.PLAYING)
        self.consecutive_failures = 0
        self._adopted_key: Tuple[int, int] = (self.state.game_number, self.state.move_count)
        self._pending_move: Optional[LastMove] = None
        self._lock = threading.Lock()

    @property
    def seat(self) -> Player:
        return self.state.seat

    # ── Server snapshots ───────────────────────────────────────

    def reconcile(self, room: Room) -> List[ReconcileEvent]:
        """Fold one authoritative snapshot into the local state."""
        with self._lock:
            self.consecutive_failures = 0
            if room.ordering_key() < self._adopted_key:
                debug.debug(f"Ignoring stale snapshot {room.ordering_key()} "
                            f"(have {self._adopted_key})", "client")
                return []
            self._adopted_key = room.ordering_key()
            return self._apply(room)

    def _apply(self, room: Room) -> List[ReconcileEvent]:
        state = self.state
        events: List[ReconcileEvent] = []

        opponent_name = room.name_of(self.seat.other())
        if opponent_name and not state.opponent_name:
            state.opponent_name = opponent_name
            events.append(ReconcileEvent(EventKind.OPPONENT_NAMED, {"name": opponent_name}))

        if room.scores != state.scores:
            state.scores = dict(room.scores)
            events.append(ReconcileEvent(EventKind.SCORES_CHANGED, {"scores": dict(room.scores)}))

        if state.phase == Phase.WAITING and room.player2 is not None:
            state.phase = Phase.PLAYING
            events.append(ReconcileEvent(EventKind.OPPONENT_JOINED,
                                         {"name": room.player2_name}))

        if room.game_number > state.game_number:
            self._start_new_game(room)
            events.append(ReconcileEvent(EventKind.NEW_GAME, {
                "game_number": room.game_number,
                "current_player": room.current_player,
            }))
        elif room.move_count > state.move_count:
            self._adopt_position(room)
            self._pending_move = None
            if room.last_move is not None:
                events.append(ReconcileEvent(EventKind.MOVE, {
                    "row": room.last_move.row,
                    "col": room.last_move.col,
                    "player": room.last_move.player,
                }))
        elif room.move_count == state.move_count and self._pending_move is not None:
            # Server has caught up with our own optimistic move
            self._adopt_position(room)
            self._pending_move = None

        if room.winner is not None and state.winner is None:
            state.winner = room.winner
            state.win_cells = list(room.win_cells)
            if room.winner != DRAW:
                state.last_winner = Player(room.winner)
            state.phase = Phase.GAME_OVER
            events.append(ReconcileEvent(EventKind.GAME_OVER, {
                "winner": room.winner,
                "outcome": outcome_for(self.seat, room.winner),
                "win_cells": list(room.win_cells),
            }))

        if room.rematch != state.rematch:
            state.rematch = dict(room.rematch)
            events.append(ReconcileEvent(EventKind.REMATCH_CHANGED, {"rematch": dict(room.rematch)}))

        for event in events:
            debug.trace(f"Reconciled {event.kind.value}: {event.data}", "client")
        return events

    def _start_new_game(self, room: Room):
        state = self.state
        state.game_number = room.game_number
        state.board = room.board.copy()
        state.current_player = room.current_player
        state.move_count = room.move_count
        state.winner = None
        state.win_cells = []
        state.scores = dict(room.scores)
        state.phase = Phase.PLAYING
        self._pending_move = None
        debug.info(f"Game {room.game_number} started, {room.current_player.name} opens", "client")

    def _adopt_position(self, room: Room):
        state = self.state
        state.board = room.board.copy()
        state.current_player = room.current_player
        state.move_count = room.move_count

    # ── Local actions ──────────────────────────────────────────

    def apply_local_move(self, col: int) -> List[ReconcileEvent]:
        """
        Play ``col`` optimistically before the server confirms it.

        Returns:
            MOVE (and GAME_OVER if the move ends the game) events; empty if
            it is not this client's turn or the column is full
        """
        with self._lock:
            state = self.state
            if not state.is_my_turn:
                return []
            row = drop_row(state.board, col)
            if row == NO_ROW:
                return []

            state.board[row, col] = self.seat.value
            state.move_count += 1
            state.current_player = self.seat.other()
            self._pending_move = LastMove(row, col, self.seat)
            events = [ReconcileEvent(EventKind.MOVE, {"row": row, "col": col, "player": self.seat})]

            line = check_win(state.board, row, col)
            winner = self.seat.value if line else (DRAW if state.move_count >= CELLS else None)
            if winner is not None:
                state.winner = winner
                state.win_cells = line or []
                state.phase = Phase.GAME_OVER
                if winner != DRAW:
                    state.last_winner = self.seat
                events.append(ReconcileEvent(EventKind.GAME_OVER, {
                    "winner": winner,
                    "outcome": outcome_for(self.seat, winner),
                    "win_cells": list(state.win_cells),
                }))
            return events

    def local_move_rejected(self, room: Room = None):
        """
        Undo an optimistic move the server refused. With ``room`` the local
        state is reset to that snapshot instead.
        """
        with self._lock:
            pending = self._pending_move
            self._pending_move = None
            state = self.state
            if room is not None:
                self._adopted_key = room.ordering_key()
                self._adopt_position(room)
                state.winner = room.winner
                state.win_cells = list(room.win_cells)
                state.phase = Phase.GAME_OVER if room.winner is not None else Phase.PLAYING
                return
            if pending is None:
                return
            state.board[pending.row, pending.col] = Player.EMPTY.value
            state.move_count -= 1
            state.current_player = self.seat
            state.winner = None
            state.win_cells = []
            state.phase = Phase.PLAYING
            debug.debug(f"Rolled back local move in column {pending.col}", "client")

    def poll_failed(self, error: Exception):
        """Record a failed poll; the next poll simply tries again."""
        with self._lock:
            self.consecutive_failures += 1
        debug.debug(f"Poll failed ({self.consecutive_failures} in a row): {error}", "client")
