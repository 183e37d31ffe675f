import os

import pytest

from dropfour.rooms.models import Room
from dropfour.rooms.store import (JsonFileRoomStore, MemoryRoomStore, create_store,
                                  room_key)
from tests.conftest import FakeClock


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path, clock):
    if request.param == "memory":
        return MemoryRoomStore(clock=clock)
    return JsonFileRoomStore(str(tmp_path / "rooms"), clock=clock)


def test_room_key_is_namespaced():
    assert room_key("ABCD") == "c4:ABCD"


def test_missing_key(any_store):
    assert any_store.get(room_key("NONE")) is None


def test_set_and_get(any_store):
    room = Room(room_code="ABCD", player1="alice")
    any_store.set(room_key("ABCD"), room, ttl=60)
    loaded = any_store.get(room_key("ABCD"))
    assert loaded.room_code == "ABCD"
    assert loaded.player1 == "alice"
    assert loaded is not room


def test_rooms_expire(any_store, clock):
    any_store.set(room_key("ABCD"), Room(room_code="ABCD", player1="alice"), ttl=60)
    clock.advance(59)
    assert any_store.get(room_key("ABCD")) is not None
    clock.advance(1)
    assert any_store.get(room_key("ABCD")) is None


def test_every_write_refreshes_expiry(any_store, clock):
    key = room_key("ABCD")
    room = Room(room_code="ABCD", player1="alice")
    assert any_store.compare_and_set(key, room, 0, ttl=60)
    clock.advance(50)
    assert any_store.compare_and_set(key, room, 1, ttl=60)
    clock.advance(50)
    assert any_store.get(key) is not None


def test_compare_and_set_versions(any_store):
    key = room_key("ABCD")
    room = Room(room_code="ABCD", player1="alice")

    assert any_store.compare_and_set(key, room, 0)
    assert room.version == 1
    assert any_store.get(key).version == 1

    stale = Room(room_code="ABCD", player1="mallory")
    assert not any_store.compare_and_set(key, stale, 0)
    assert stale.version == 0
    assert any_store.get(key).player1 == "alice"

    assert any_store.compare_and_set(key, room, 1)
    assert any_store.get(key).version == 2


def test_compare_and_set_on_expired_key(any_store, clock):
    key = room_key("ABCD")
    any_store.compare_and_set(key, Room(room_code="ABCD", player1="alice"), 0, ttl=10)
    clock.advance(10)
    assert any_store.compare_and_set(key, Room(room_code="ABCD", player1="bob"), 0, ttl=10)
    assert any_store.get(key).player1 == "bob"


def test_delete(any_store):
    key = room_key("ABCD")
    any_store.set(key, Room(room_code="ABCD", player1="alice"))
    any_store.delete(key)
    assert any_store.get(key) is None
    any_store.delete(key)


def test_memory_store_len_ignores_expired_rooms():
    clock = FakeClock()
    store = MemoryRoomStore(clock=clock)
    store.set(room_key("AAAA"), Room(room_code="AAAA", player1="a"), ttl=10)
    store.set(room_key("BBBB"), Room(room_code="BBBB", player1="b"), ttl=100)
    assert len(store) == 2
    clock.advance(50)
    assert len(store) == 1


def test_file_store_removes_expired_files(tmp_path):
    clock = FakeClock()
    store = JsonFileRoomStore(str(tmp_path), clock=clock)
    key = room_key("ABCD")
    store.set(key, Room(room_code="ABCD", player1="alice"), ttl=10)
    path = store._path(key)
    assert os.path.exists(path)
    clock.advance(11)
    assert store.get(key) is None
    assert not os.path.exists(path)


def test_file_store_survives_a_corrupt_file(tmp_path):
    store = JsonFileRoomStore(str(tmp_path))
    key = room_key("ABCD")
    with open(store._path(key), "w") as f:
        f.write("{not json")
    assert store.get(key) is None


def test_create_store(tmp_path):
    assert isinstance(create_store("memory"), MemoryRoomStore)
    assert isinstance(create_store("file", data_dir=str(tmp_path)), JsonFileRoomStore)
    with pytest.raises(ValueError):
        create_store("redis")
