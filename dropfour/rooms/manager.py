"""
manager.py - Server-side state machine for online rooms

RoomSessionManager owns the authoritative game for each room. Every
mutating request follows the same cycle:

    read the room -> validate -> mutate the copy -> compare-and-set

Validation runs against the freshly read room, so a move is always checked
against the turn that is current at the moment of the write. If another
request wrote in between, the compare-and-set fails and the whole cycle is
repeated from a new read. Errors are raised before anything is written.
"""

import random
from typing import Callable, Optional

from dropfour import config
from dropfour.debug import debug
from dropfour.game.board import check_win, create_board, drop_row
from dropfour.rooms.errors import (ColumnFullError, ConflictError, ForbiddenError,
                                   GameOverError, InvalidRequestError,
                                   RoomFullError, RoomNotFoundError)
from dropfour.rooms.models import (DEFAULT_PLAYER1_NAME, DEFAULT_PLAYER2_NAME,
                                   LastMove, Room, empty_votes, seat_key)
from dropfour.rooms.store import MemoryRoomStore, RoomStore, room_key
from dropfour.utils import CELLS, COLS, DRAW, NO_ROW, Player

# No 0/O or 1/I, which are easy to misread
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 4
MAX_CODE_ATTEMPTS = 10
MAX_WRITE_ATTEMPTS = 5

PLAYER_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
PLAYER_ID_LENGTH = 8


def generate_room_code(rng: random.Random = None) -> str:
    rng = rng or random
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def generate_player_id(rng: random.Random = None) -> str:
    rng = rng or random
    return "".join(rng.choice(PLAYER_ID_ALPHABET) for _ in range(PLAYER_ID_LENGTH))


def canonical_code(code) -> str:
    """Room codes are case-insensitive; lookups use the upper-case form."""
    if not isinstance(code, str) or not code.strip():
        raise InvalidRequestError("Missing room code")
    return code.strip().upper()


def _require_player_id(player_id) -> str:
    if not isinstance(player_id, str) or not player_id:
        raise InvalidRequestError("Missing player id")
    return player_id


def _clean_name(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    name = str(name).strip()
    return name or None


class RoomSessionManager:
    """Create, join, move, rematch and read operations over a RoomStore."""

    def __init__(self, store: RoomStore = None, ttl: int = None,
                 rng: random.Random = None):
        self.store = store if store is not None else MemoryRoomStore()
        self.ttl = config.ROOM_TTL if ttl is None else ttl
        self.rng = rng or random.Random()

    # ── Requests ───────────────────────────────────────────────

    def create(self, player_id: str, display_name: str = None) -> Room:
        """Open a new room with the caller in seat one."""
        player_id = _require_player_id(player_id)
        name = _clean_name(display_name) or DEFAULT_PLAYER1_NAME

        room = None
        for attempt in range(MAX_CODE_ATTEMPTS):
            room = Room(room_code=generate_room_code(self.rng),
                        player1=player_id, player1_name=name)
            if self.store.compare_and_set(room_key(room.room_code), room, 0, self.ttl):
                debug.info(f"Room {room.room_code} created by {player_id}", "rooms")
                return room
            debug.debug(f"Room code {room.room_code} taken (attempt {attempt + 1})", "rooms")

        # The code space is large enough that this is practically unreachable
        debug.warning(f"No free room code after {MAX_CODE_ATTEMPTS} attempts, "
                      f"reusing {room.room_code}", "rooms")
        existing = self.store.get(room_key(room.room_code))
        room.version = (existing.version if existing else 0) + 1
        self.store.set(room_key(room.room_code), room, self.ttl)
        return room

    def join(self, code: str, player_id: str, display_name: str = None) -> Room:
        """Take seat two. Rejoining with the same identity is allowed."""
        player_id = _require_player_id(player_id)
        name = _clean_name(display_name)

        def take_seat(room: Room):
            if player_id == room.player1:
                # The creator opening their own link keeps seat one
                return
            if room.player2 is not None and room.player2 != player_id:
                raise RoomFullError(room_code=room.room_code)
            room.player2 = player_id
            room.player2_name = name or room.player2_name or DEFAULT_PLAYER2_NAME

        room = self._mutate(code, take_seat)
        debug.info(f"{player_id} joined room {room.room_code}", "rooms")
        return room

    def move(self, code: str, player_id: str, col: int) -> Room:
        """Drop a piece for the caller's seat."""
        player_id = _require_player_id(player_id)
        if isinstance(col, bool) or not isinstance(col, int) or not 0 <= col < COLS:
            raise InvalidRequestError(f"Column must be an integer from 0 to {COLS - 1}")

        def drop(room: Room):
            if room.is_over:
                raise GameOverError(room_code=room.room_code)

            seat = room.seat_of(player_id)
            if seat is None:
                raise ForbiddenError("Not a player in this room", room_code=room.room_code)
            if seat != room.current_player:
                raise ForbiddenError(room_code=room.room_code)

            row = drop_row(room.board, col)
            if row == NO_ROW:
                raise ColumnFullError(room_code=room.room_code)

            room.board[row, col] = seat.value
            room.move_count += 1
            room.last_move = LastMove(row, col, seat)
            room.current_player = seat.other()

            line = check_win(room.board, row, col)
            if line:
                room.winner = seat.value
                room.win_cells = line
                room.last_winner = seat
                room.scores[seat_key(seat)] += 1
            elif room.move_count >= CELLS:
                room.winner = DRAW
                room.scores["draws"] += 1

            # A new move withdraws any earlier rematch intent
            room.rematch = empty_votes()

        room = self._mutate(code, drop)
        debug.debug(f"Room {room.room_code}: {room.last_move.player.name} -> column {col} "
                    f"(move {room.move_count})", "rooms")
        if room.is_over:
            outcome = "draw" if room.is_draw else f"{Player(room.winner).name} wins"
            debug.info(f"Room {room.room_code} game {room.game_number}: {outcome}", "rooms")
        return room

    def rematch(self, code: str, player_id: str) -> Room:
        """Vote for a new game; the game restarts once both seats have voted."""
        player_id = _require_player_id(player_id)

        started = []

        def vote(room: Room):
            started.clear()
            seat = room.seat_of(player_id)
            if seat is None:
                raise ForbiddenError("Not a player in this room", room_code=room.room_code)
            room.rematch[seat_key(seat)] = True

            if room.rematch["p1"] and room.rematch["p2"]:
                room.board = create_board()
                room.current_player = room.last_winner or Player.ONE
                room.winner = None
                room.win_cells = []
                room.move_count = 0
                room.last_move = None
                room.rematch = empty_votes()
                room.game_number += 1
                started.append(room.game_number)

        room = self._mutate(code, vote)
        if started:
            debug.info(f"Room {room.room_code} started game {room.game_number}, "
                       f"{room.current_player.name} opens", "rooms")
        return room

    def read(self, code: str) -> Room:
        code = canonical_code(code)
        room = self.store.get(room_key(code))
        if room is None:
            raise RoomNotFoundError(room_code=code)
        return room

    # ── Internal ───────────────────────────────────────────────

    def _mutate(self, code: str, mutation: Callable[[Room], None]) -> Room:
        code = canonical_code(code)
        key = room_key(code)

        for attempt in range(MAX_WRITE_ATTEMPTS):
            room = self.store.get(key)
            if room is None:
                raise RoomNotFoundError(room_code=code)
            expected = room.version
            mutation(room)
            if self.store.compare_and_set(key, room, expected, self.ttl):
                return room
            debug.debug(f"Room {code} changed during write, retrying "
                        f"(attempt {attempt + 1})", "rooms")

        debug.warning(f"Giving up on room {code} after {MAX_WRITE_ATTEMPTS} conflicts", "rooms")
        raise ConflictError(room_code=code)
