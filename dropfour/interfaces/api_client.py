"""
api_client.py - HTTP client for the room API

Mirrors the request surface of RoomSessionManager over HTTP. Error responses
are turned back into the matching RoomError subclass; connection problems
and unreadable responses raise RoomUnavailableError.

Example:
    client = RoomApiClient("http://localhost:5000")
    room = client.create(player_id, "ALICE")
    room = client.poll(room.room_code)
"""

from typing import Any, Dict, Optional

import requests

from dropfour import config
from dropfour.debug import debug
from dropfour.rooms.errors import RoomUnavailableError, error_from_code
from dropfour.rooms.models import Room


class RoomApiClient:

    def __init__(self, base_url: str = None, session: requests.Session = None,
                 timeout: float = None):
        self.base = (base_url or config.SERVER_URL).rstrip("/")
        self.url = f"{self.base}/api/room"
        self.session = session or requests.Session()
        self.timeout = config.REQUEST_TIMEOUT if timeout is None else timeout

    def _request(self, method: str, params: Optional[Dict[str, Any]] = None,
                 body: Optional[Dict[str, Any]] = None) -> Room:
        try:
            response = self.session.request(method, self.url, params=params,
                                            json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RoomUnavailableError(f"Cannot reach {self.base}: {exc}")

        try:
            data = response.json()
        except ValueError:
            raise RoomUnavailableError(f"Unexpected response ({response.status_code})")
        if not isinstance(data, dict):
            raise RoomUnavailableError(f"Unexpected response ({response.status_code})")

        if response.status_code >= 400:
            debug.debug(f"{method} {self.url} -> {response.status_code} {data}", "client")
            raise error_from_code(data.get("code"), data.get("error"))
        try:
            return Room.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise RoomUnavailableError(f"Malformed room in response: {exc!r}")

    def poll(self, code: str) -> Room:
        return self._request("GET", params={"code": code})

    def create(self, player_id: str, player_name: str = None) -> Room:
        return self._request("POST", body={"action": "create", "playerId": player_id,
                                           "playerName": player_name})

    def join(self, code: str, player_id: str, player_name: str = None) -> Room:
        return self._request("POST", body={"action": "join", "code": code,
                                           "playerId": player_id, "playerName": player_name})

    def move(self, code: str, player_id: str, col: int) -> Room:
        return self._request("POST", body={"action": "move", "code": code,
                                           "playerId": player_id, "col": col})

    def rematch(self, code: str, player_id: str) -> Room:
        return self._request("POST", body={"action": "rematch", "code": code,
                                           "playerId": player_id})

    def close(self):
        self.session.close()
