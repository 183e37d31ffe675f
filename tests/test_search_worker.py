import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from dropfour.ai.search_worker import SearchWorker, SyncSearch, select_strategy
from dropfour.game.board import create_board
from dropfour.utils import Player
from tests.conftest import board_after


class RecordingSearch:
    """Stands in for minimax.choose_move and remembers which threads ran it."""

    def __init__(self, column=3):
        self.column = column
        self.calls = []

    def __call__(self, board, difficulty, ai_player):
        self.calls.append(threading.current_thread().name)
        return self.column


@pytest.fixture
def worker():
    search = SearchWorker(RecordingSearch(), watchdog=2.0)
    yield search
    search.close()


def test_sync_search_runs_inline():
    search_fn = RecordingSearch(5)
    with SyncSearch(search_fn) as search:
        search.request(create_board(), "easy", token=(0, 0))
        assert search.result((0, 0)) == 5
    assert search_fn.calls == [threading.current_thread().name]


def test_worker_runs_in_background(worker):
    worker.request(create_board(), "hard", token=(0, 1))
    assert worker.result((0, 1)) == 3
    assert worker._search_fn.calls[0].startswith("dropfour-search")


def test_superseded_request_is_discarded(worker):
    worker.request(create_board(), "hard", token=(0, 1))
    worker.request(create_board(), "hard", token=(0, 3))
    assert worker.result((0, 1)) is None
    assert worker.result((0, 3)) == 3


def test_cancelled_request_is_discarded(worker):
    worker.request(create_board(), "hard", token=(1, 0))
    worker.cancel((1, 0))
    assert worker.result((1, 0)) is None


def test_cancel_with_other_token_keeps_request(worker):
    worker.request(create_board(), "hard", token=(1, 0))
    worker.cancel((2, 0))
    assert worker.result((1, 0)) == 3


def test_result_is_only_returned_once(worker):
    worker.request(create_board(), "hard", token="a")
    assert worker.result("a") == 3
    assert worker.result("a") is None


def test_silent_worker_falls_back_to_inline_search():
    release = threading.Event()

    def search_fn(board, difficulty, ai_player):
        if threading.current_thread() is not threading.main_thread():
            release.wait(5)
            return 0
        return 6

    worker = SearchWorker(search_fn, watchdog=0.05)
    try:
        pending = worker.request(create_board(), "hard", token="t")
        assert worker.result("t") == 6
        assert pending.fallback_used
    finally:
        release.set()
        worker.close()


def test_failing_worker_falls_back_to_inline_search():
    def search_fn(board, difficulty, ai_player):
        if threading.current_thread() is not threading.main_thread():
            raise MemoryError("worker out of memory")
        return 2

    with SearchWorker(search_fn, watchdog=1.0) as worker:
        pending = worker.request(create_board(), "medium", token="t")
        assert worker.result("t") == 2
        assert pending.fallback_used


def test_shut_down_executor_falls_back_to_inline_search():
    executor = ThreadPoolExecutor(max_workers=1)
    executor.shutdown()
    search_fn = RecordingSearch(4)
    worker = SearchWorker(search_fn, executor=executor)
    pending = worker.request(create_board(), "easy", token="t")
    assert pending.future is None
    assert worker.result("t") == 4
    assert search_fn.calls == [threading.current_thread().name]


def test_worker_does_not_see_later_board_changes():
    seen = []
    proceed = threading.Event()

    def search_fn(board, difficulty, ai_player):
        proceed.wait(5)
        seen.append(board.copy())
        return 1

    board = create_board()
    with SearchWorker(search_fn, watchdog=2.0) as worker:
        worker.request(board, "easy", token="t")
        board[5, 0] = Player.ONE.value
        proceed.set()
        assert worker.result("t") == 1
    assert seen[0][5, 0] == Player.EMPTY.value


def test_choose_move_with_real_search():
    board = board_after([0, 6, 0, 6, 0, 6])
    with select_strategy() as search:
        assert isinstance(search, SearchWorker)
        assert search.choose_move(board, "hard", Player.ONE) == 0


def test_select_strategy_inline():
    search = select_strategy(prefer_background=False, watchdog=0.1)
    assert isinstance(search, SyncSearch)
    assert search.choose_move(board_after([0, 6, 0, 6, 0, 6]), "easy", Player.TWO) == 6
