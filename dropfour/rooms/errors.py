"""
Errors raised by room operations.

Each error carries a stable ``code`` (sent over the wire) and the HTTP status
the transport maps it to. A failed operation never persists anything.
"""

from typing import Dict, Type


class RoomError(Exception):
    code = "room_error"
    http_status = 400
    default_message = "Room request failed"

    def __init__(self, message: str = None, *, room_code: str = None):
        super().__init__(message or self.default_message)
        self.room_code = room_code

    @property
    def message(self) -> str:
        return str(self)


class RoomNotFoundError(RoomError):
    code = "not_found"
    http_status = 404
    default_message = "Room not found"


class RoomFullError(RoomError):
    code = "room_full"
    http_status = 409
    default_message = "Room is full"


class GameOverError(RoomError):
    code = "game_over"
    http_status = 400
    default_message = "Game over"


class ForbiddenError(RoomError):
    code = "forbidden"
    http_status = 403
    default_message = "Not your turn"


class ColumnFullError(RoomError):
    code = "column_full"
    http_status = 400
    default_message = "Column full"


class InvalidRequestError(RoomError):
    code = "invalid_request"
    http_status = 400
    default_message = "Invalid request"


class ConflictError(RoomError):
    """Concurrent writers kept invalidating the read; the caller may retry."""
    code = "conflict"
    http_status = 409
    default_message = "Room changed concurrently, try again"


class RoomUnavailableError(RoomError):
    """The room service could not be reached (client side only)."""
    code = "unavailable"
    http_status = 503
    default_message = "Room service unavailable"


ERRORS_BY_CODE: Dict[str, Type[RoomError]] = {
    cls.code: cls for cls in (
        RoomNotFoundError, RoomFullError, GameOverError, ForbiddenError,
        ColumnFullError, InvalidRequestError, ConflictError, RoomUnavailableError,
    )
}


def error_from_code(code: str, message: str = None) -> RoomError:
    """Rebuild an error received over the wire."""
    return ERRORS_BY_CODE.get(code, RoomError)(message)
