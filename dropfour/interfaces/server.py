"""
server.py - HTTP transport for online rooms

    GET  /api/room?code=XXXX                   poll a room
    POST /api/room {"action": "create", ...}   create / join / move / rematch

Room errors become JSON bodies {"error": message, "code": code} with the
status code defined on the error class.
"""

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from dropfour.debug import debug
from dropfour.rooms.errors import InvalidRequestError, RoomError
from dropfour.rooms.manager import RoomSessionManager
from dropfour.rooms.store import RoomStore

router = Blueprint("room_api", __name__)


def _manager() -> RoomSessionManager:
    return current_app.config["ROOM_MANAGER"]


def _column(value):
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


@router.errorhandler(RoomError)
def handle_room_error(error: RoomError):
    debug.debug(f"{request.method} {request.path} -> {error.code}: {error}", "server")
    return jsonify({"error": error.message, "code": error.code}), error.http_status


@router.route("/room", methods=["GET"])
def poll():
    code = request.args.get("code")
    if not code:
        raise InvalidRequestError("Missing code")
    return jsonify(_manager().read(code).to_dict())


@router.route("/room", methods=["POST"])
def room_action():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequestError("Expected a JSON object")

    manager = _manager()
    action = data.get("action")

    if action == "create":
        room = manager.create(data.get("playerId"), data.get("playerName"))
    elif action == "join":
        room = manager.join(data.get("code"), data.get("playerId"), data.get("playerName"))
    elif action == "move":
        room = manager.move(data.get("code"), data.get("playerId"), _column(data.get("col")))
    elif action == "rematch":
        room = manager.rematch(data.get("code"), data.get("playerId"))
    else:
        raise InvalidRequestError("Unknown action")

    return jsonify(room.to_dict())


def create_app(manager: RoomSessionManager = None, store: RoomStore = None,
               cors_origins="*") -> Flask:
    """Build the Flask application around one RoomSessionManager."""
    app = Flask(__name__)
    CORS(app, origins=cors_origins)
    app.config["ROOM_MANAGER"] = manager or RoomSessionManager(store)
    app.register_blueprint(router, url_prefix="/api")
    debug.info(f"Room API ready ({type(app.config['ROOM_MANAGER'].store).__name__})", "server")
    return app
