"""
store.py - Keyed room storage with expiry

Rooms live under a namespaced key (ROOM_KEY_PREFIX + room code) and expire
ROOM_TTL seconds after their last write. Expiry is the only way a room
disappears during normal play.

Besides plain get/set/delete, stores offer compare_and_set on the room's
``version`` so that two clients writing at the same moment cannot silently
overwrite each other.
"""

import json
import os
import shutil
import threading
import time
from typing import Callable, Dict, Optional, Tuple

import filelock

from dropfour import config
from dropfour.debug import debug
from dropfour.rooms.models import Room

Clock = Callable[[], float]


def room_key(code: str) -> str:
    return f"{config.ROOM_KEY_PREFIX}{code}"


class RoomStore:
    """Interface every store implements."""

    def get(self, key: str) -> Optional[Room]:
        raise NotImplementedError

    def set(self, key: str, room: Room, ttl: int = None):
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError

    def compare_and_set(self, key: str, room: Room, expected_version: int,
                        ttl: int = None) -> bool:
        """
        Write ``room`` only if the stored version equals ``expected_version``
        (0 for a key that does not exist). On success the stored room and
        ``room`` itself carry version expected_version + 1.
        """
        raise NotImplementedError


class MemoryRoomStore(RoomStore):
    """In-process store, used by tests and the single-process server."""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[float, dict]] = {}

    def _live(self, key: str) -> Optional[dict]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            debug.debug(f"Room {key} expired", "store")
            del self._data[key]
            return None
        return payload

    def _write(self, key: str, room: Room, ttl: Optional[int]):
        ttl = config.ROOM_TTL if ttl is None else ttl
        self._data[key] = (self._clock() + ttl, room.to_dict())

    def get(self, key: str) -> Optional[Room]:
        with self._lock:
            payload = self._live(key)
        return Room.from_dict(payload) if payload is not None else None

    def set(self, key: str, room: Room, ttl: int = None):
        with self._lock:
            self._write(key, room, ttl)

    def delete(self, key: str):
        with self._lock:
            self._data.pop(key, None)

    def compare_and_set(self, key: str, room: Room, expected_version: int,
                        ttl: int = None) -> bool:
        with self._lock:
            current = self._live(key)
            current_version = current.get("version", 0) if current is not None else 0
            if current_version != expected_version:
                debug.debug(f"Version conflict on {key}: expected {expected_version}, "
                            f"found {current_version}", "store")
                return False
            room.version = expected_version + 1
            self._write(key, room, ttl)
            return True

    def __len__(self):
        with self._lock:
            return sum(1 for key in list(self._data) if self._live(key) is not None)


class JsonFileRoomStore(RoomStore):
    """
    One JSON file per room in ``data_dir``.

    Every read and write holds a filelock on the room's file, so several
    server processes can share the directory. Writes go to a temporary file
    that then replaces the original.
    """

    def __init__(self, data_dir: str = None, clock: Clock = time.time,
                 lock_timeout: float = 5.0):
        self.data_dir = data_dir or config.DATA_DIR
        self._clock = clock
        self._lock_timeout = lock_timeout
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = "".join(ch if ch.isalnum() else "_" for ch in key)
        return os.path.join(self.data_dir, f"{safe}.json")

    def _lock(self, path: str) -> filelock.FileLock:
        return filelock.FileLock(f"{path}.lock", timeout=self._lock_timeout)

    def _read(self, path: str) -> Optional[dict]:
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r') as f:
                entry = json.load(f)
        except json.JSONDecodeError:
            debug.error(f"Error decoding JSON from {path}", "store")
            return None
        if self._clock() >= entry.get("expiresAt", 0):
            debug.debug(f"Room file {path} expired", "store")
            os.remove(path)
            return None
        return entry["room"]

    def _write(self, path: str, room: Room, ttl: Optional[int]):
        ttl = config.ROOM_TTL if ttl is None else ttl
        entry = {"expiresAt": self._clock() + ttl, "room": room.to_dict()}
        temp_file = f"{path}.tmp"
        with open(temp_file, 'w') as f:
            json.dump(entry, f, indent=2)
        shutil.move(temp_file, path)

    def get(self, key: str) -> Optional[Room]:
        path = self._path(key)
        with self._lock(path):
            payload = self._read(path)
        return Room.from_dict(payload) if payload is not None else None

    def set(self, key: str, room: Room, ttl: int = None):
        path = self._path(key)
        with self._lock(path):
            self._write(path, room, ttl)

    def delete(self, key: str):
        path = self._path(key)
        with self._lock(path):
            if os.path.exists(path):
                os.remove(path)

    def compare_and_set(self, key: str, room: Room, expected_version: int,
                        ttl: int = None) -> bool:
        path = self._path(key)
        with self._lock(path):
            current = self._read(path)
            current_version = current.get("version", 0) if current is not None else 0
            if current_version != expected_version:
                debug.debug(f"Version conflict on {key}: expected {expected_version}, "
                            f"found {current_version}", "store")
                return False
            room.version = expected_version + 1
            self._write(path, room, ttl)
            return True


def create_store(kind: str = "memory", **kwargs) -> RoomStore:
    if kind == "memory":
        return MemoryRoomStore(**kwargs)
    if kind == "file":
        return JsonFileRoomStore(**kwargs)
    raise ValueError(f"Unknown store kind {kind!r}; expected 'memory' or 'file'")
