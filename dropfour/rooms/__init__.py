"""
dropfour.rooms - Authoritative state for online two-player rooms
"""

from dropfour.rooms.errors import RoomError
from dropfour.rooms.manager import RoomSessionManager
from dropfour.rooms.models import Room
from dropfour.rooms.store import JsonFileRoomStore, MemoryRoomStore, create_store

__all__ = ['RoomError', 'RoomSessionManager', 'Room',
           'JsonFileRoomStore', 'MemoryRoomStore', 'create_store']
