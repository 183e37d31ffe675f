"""
search_worker.py - Run the computer opponent's search off the interactive thread

Two interchangeable strategies share one contract:

    strategy.request(board, difficulty, token)
    column = strategy.result(token)    # None if the request was discarded

SearchWorker runs the search on a background thread. If the thread pool is
unavailable, raises, or stays silent past the watchdog, the same search runs
synchronously instead, so a column is always produced within the search's
own deadline plus a small delay. SyncSearch always runs inline.

Each request carries a token describing the game state it was made for
(typically (game_number, move_count)). Requesting again or calling cancel()
discards the pending search; its column is never returned.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Optional

import numpy as np

from dropfour import config
from dropfour.ai.minimax import choose_move
from dropfour.debug import debug
from dropfour.utils import Player

SearchFn = Callable[[np.ndarray, str, Player], int]


@dataclass
class PendingSearch:
    token: Hashable
    board: np.ndarray
    difficulty: str
    ai_player: Player
    future: Optional[Future] = None
    cancelled: bool = False
    fallback_used: bool = field(default=False)


class SearchStrategy:
    """Token bookkeeping shared by both strategies."""

    name = "base"

    def __init__(self, search_fn: SearchFn = choose_move):
        self._search_fn = search_fn
        self._lock = threading.Lock()
        self._pending: Optional[PendingSearch] = None

    def request(self, board: np.ndarray, difficulty: str, token: Hashable,
                ai_player: Player = Player.TWO) -> PendingSearch:
        pending = PendingSearch(token=token,
                                board=np.array(board, dtype=int, copy=True),
                                difficulty=difficulty,
                                ai_player=ai_player)
        with self._lock:
            if self._pending is not None:
                self._pending.cancelled = True
                debug.debug(f"Superseded search for token {self._pending.token}", "search")
            self._pending = pending
        self._start(pending)
        return pending

    def cancel(self, token: Hashable = None):
        """Discard the pending search (only if it matches ``token``, when given)."""
        with self._lock:
            pending = self._pending
            if pending is None or (token is not None and pending.token != token):
                return
            pending.cancelled = True
            self._pending = None
        if pending.future is not None:
            pending.future.cancel()
        debug.debug(f"Cancelled search for token {pending.token}", "search")

    def result(self, token: Hashable) -> Optional[int]:
        """
        Wait for the search made for ``token``.

        Returns:
            The chosen column (NO_MOVE on a full board), or None if the search
            was cancelled or superseded
        """
        with self._lock:
            pending = self._pending
        if pending is None or pending.token != token or pending.cancelled:
            return None

        column = self._collect(pending)

        with self._lock:
            if pending.cancelled or self._pending is not pending:
                debug.debug(f"Discarded stale search result for token {token}", "search")
                return None
            self._pending = None
        return column

    def choose_move(self, board: np.ndarray, difficulty: str,
                    ai_player: Player = Player.TWO) -> int:
        """Blocking convenience wrapper with the same contract as minimax.choose_move."""
        token = object()
        self.request(board, difficulty, token, ai_player)
        column = self.result(token)
        if column is None:
            # Only reachable if another caller superseded this request
            column = self._run_inline(board, difficulty, ai_player)
        return column

    def close(self):
        self.cancel()

    def _start(self, pending: PendingSearch):
        pass

    def _collect(self, pending: PendingSearch) -> int:
        return self._run_inline(pending.board, pending.difficulty, pending.ai_player)

    def _run_inline(self, board: np.ndarray, difficulty: str, ai_player: Player) -> int:
        return self._search_fn(board, difficulty, ai_player)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: Any):
        self.close()


class SyncSearch(SearchStrategy):
    """Runs the search on the calling thread when the result is requested."""

    name = "sync"


class SearchWorker(SearchStrategy):
    """Runs the search on a single background thread with a watchdog."""

    name = "worker"

    def __init__(self, search_fn: SearchFn = choose_move,
                 watchdog: float = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        super().__init__(search_fn)
        self.watchdog = config.SEARCH_WATCHDOG if watchdog is None else watchdog
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="dropfour-search")

    def _start(self, pending: PendingSearch):
        try:
            pending.future = self._executor.submit(
                self._search_fn, pending.board.copy(), pending.difficulty, pending.ai_player)
        except RuntimeError as exc:
            # Executor already shut down; _collect falls back to inline search
            debug.warning(f"Background search unavailable: {exc}", "search")
            pending.future = None

    def _collect(self, pending: PendingSearch) -> int:
        if pending.future is not None:
            try:
                return pending.future.result(timeout=self.watchdog)
            except FutureTimeout:
                debug.warning(f"Background search silent for {self.watchdog}s, "
                              f"falling back to inline search", "search")
                pending.future.cancel()
            except Exception as exc:
                debug.warning(f"Background search failed ({exc!r}), "
                              f"falling back to inline search", "search")
        pending.fallback_used = True
        return self._run_inline(pending.board, pending.difficulty, pending.ai_player)

    def close(self):
        super().close()
        if self._owns_executor:
            self._executor.shutdown(wait=False)


def select_strategy(prefer_background: bool = True, **kwargs) -> SearchStrategy:
    """Background worker when threads can be started, inline search otherwise."""
    if prefer_background:
        try:
            return SearchWorker(**kwargs)
        except RuntimeError as exc:
            debug.warning(f"Cannot start search thread ({exc}), using inline search", "search")
    kwargs.pop("watchdog", None)
    kwargs.pop("executor", None)
    return SyncSearch(**kwargs)
