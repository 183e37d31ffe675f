import threading
import time

import pytest

from dropfour.client.poller import RoomPoller
from dropfour.client.reconciler import ClientReconciler, EventKind
from dropfour.rooms.errors import RoomUnavailableError
from dropfour.utils import Player

ALICE = "alice-id"


def test_poll_once_applies_snapshot(manager, room):
    reconciler = ClientReconciler(Player.TWO)
    seen = []
    poller = RoomPoller(lambda: manager.read(room.room_code), reconciler, on_events=seen.append)

    events = poller.poll_once()
    assert [e.kind for e in events] == [EventKind.OPPONENT_NAMED]
    assert seen == [events]
    assert poller.poll_once() == []
    assert len(seen) == 1


def test_failed_poll_is_reported_and_retried(manager, room):
    reconciler = ClientReconciler(Player.TWO)
    responses = [RoomUnavailableError("timeout"), RoomUnavailableError("timeout")]

    def fetch():
        if responses:
            raise responses.pop(0)
        return manager.read(room.room_code)

    poller = RoomPoller(fetch, reconciler)
    assert poller.poll_once() == []
    assert poller.poll_once() == []
    assert reconciler.consecutive_failures == 2
    assert poller.poll_once()
    assert reconciler.consecutive_failures == 0


def test_unexpected_errors_propagate():
    def fetch():
        raise KeyError("bug")

    poller = RoomPoller(fetch, ClientReconciler(Player.TWO))
    with pytest.raises(KeyError):
        poller.poll_once()


def test_response_after_stop_is_dropped(manager, room):
    reconciler = ClientReconciler(Player.TWO)
    poller = RoomPoller(None, reconciler)

    def fetch():
        # The user leaves while this request is in flight
        poller.stop()
        return manager.read(room.room_code)

    poller.fetch = fetch
    assert poller.poll_once() == []
    assert reconciler.state.opponent_name is None


def test_background_polling_picks_up_moves(manager, room):
    reconciler = ClientReconciler(Player.TWO)
    moved = threading.Event()

    def on_events(events):
        if any(e.kind == EventKind.MOVE for e in events):
            moved.set()

    with RoomPoller(lambda: manager.read(room.room_code), reconciler,
                    on_events=on_events, interval=0.01) as poller:
        assert poller.running
        manager.move(room.room_code, ALICE, 3)
        assert moved.wait(2.0)
    assert not poller.running
    assert reconciler.state.is_my_turn


def test_requests_never_overlap(manager, room):
    lock = threading.Lock()
    active = [0]
    peak = [0]
    calls = [0]

    def fetch():
        with lock:
            active[0] += 1
            calls[0] += 1
            peak[0] = max(peak[0], active[0])
        time.sleep(0.02)
        with lock:
            active[0] -= 1
        return manager.read(room.room_code)

    poller = RoomPoller(fetch, ClientReconciler(Player.TWO), interval=0.001)
    poller.start()
    deadline = time.monotonic() + 2.0
    while calls[0] < 5 and time.monotonic() < deadline:
        time.sleep(0.01)
    poller.stop()
    assert calls[0] >= 5
    assert peak[0] == 1


def test_start_is_idempotent(manager, room):
    poller = RoomPoller(lambda: manager.read(room.room_code),
                        ClientReconciler(Player.TWO), interval=0.01)
    poller.start()
    thread = poller._thread
    poller.start()
    assert poller._thread is thread
    poller.stop()
    assert not thread.is_alive()
