"""Shared fixtures: a controllable clock, stores and a room manager."""

import random

import numpy as np
import pytest

from dropfour.game.board import create_board, drop_row
from dropfour.rooms.manager import RoomSessionManager
from dropfour.rooms.store import MemoryRoomStore
from dropfour.utils import Player

# Alternating moves that fill the board without four in a row anywhere
DRAW_SEQUENCE = [0, 1, 0, 1, 0, 1, 1, 0, 1, 0, 1, 0,
                 2, 3, 2, 3, 2, 3, 3, 2, 3, 2, 3, 2,
                 4, 5, 4, 5, 4, 5, 5, 4, 5, 4, 5, 4,
                 6, 6, 6, 6, 6, 6]


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def board_after(columns, first=Player.ONE) -> np.ndarray:
    """Board reached by dropping into ``columns`` with alternating players."""
    board = create_board()
    player = first
    for col in columns:
        board[drop_row(board, col), col] = player.value
        player = player.other()
    return board


def play_moves(manager, code, p1, p2, columns):
    """Play ``columns`` in order, each by whoever's turn it is."""
    room = manager.read(code)
    for col in columns:
        player_id = p1 if room.current_player == Player.ONE else p2
        room = manager.move(code, player_id, col)
    return room


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryRoomStore(clock=clock)


@pytest.fixture
def manager(store):
    return RoomSessionManager(store, ttl=3600, rng=random.Random(42))


@pytest.fixture
def room(manager):
    """A room with ALICE in seat one and BOB in seat two."""
    created = manager.create("alice-id", "ALICE")
    return manager.join(created.room_code, "bob-id", "BOB")
