"""
poller.py - Background polling loop for an online room

RoomPoller fetches the room on a fixed interval on one background thread,
so requests never overlap and responses are applied in the order they were
requested. A failed fetch is reported to the reconciler and retried on the
next tick. stop() ends the loop and joins the thread; a response that
arrives after stop() is dropped.
"""

import threading
import time
from typing import Callable, List, Optional

from dropfour import config
from dropfour.client.reconciler import ClientReconciler, ReconcileEvent
from dropfour.debug import debug
from dropfour.rooms.errors import RoomError
from dropfour.rooms.models import Room

FetchFn = Callable[[], Room]
EventsCallback = Callable[[List[ReconcileEvent]], None]


class RoomPoller:

    def __init__(self, fetch: FetchFn, reconciler: ClientReconciler,
                 on_events: Optional[EventsCallback] = None,
                 interval: float = None):
        self.fetch = fetch
        self.reconciler = reconciler
        self.on_events = on_events
        self.interval = config.POLL_INTERVAL if interval is None else interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="dropfour-poller", daemon=True)
        self._thread.start()
        debug.debug(f"Polling every {self.interval}s", "client")

    def stop(self, timeout: float = None):
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        debug.debug("Polling stopped", "client")

    def poll_once(self) -> List[ReconcileEvent]:
        """Fetch and reconcile one snapshot on the calling thread."""
        try:
            room = self.fetch()
        except RoomError as exc:
            self.reconciler.poll_failed(exc)
            return []

        if self._stop.is_set():
            return []

        events = self.reconciler.reconcile(room)
        if events and self.on_events is not None:
            self.on_events(events)
        return events

    def _run(self):
        while not self._stop.is_set():
            started = time.monotonic()
            self.poll_once()
            remaining = self.interval - (time.monotonic() - started)
            if self._stop.wait(max(0.0, remaining)):
                break

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.stop()
