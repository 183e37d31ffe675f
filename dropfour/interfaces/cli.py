"""
cli.py - Terminal front end for dropfour

Play the computer, play a remote opponent through a room server, inspect a
board position, or time the search engine. run.py builds the argument
parser and hands the parsed arguments to GameCLI.
"""

import time
from typing import List, Optional

import numpy as np

from dropfour import config
from dropfour.ai.minimax import DIFFICULTIES, MinimaxPlayer
from dropfour.ai.search_worker import select_strategy
from dropfour.client.poller import RoomPoller
from dropfour.client.reconciler import (ClientReconciler, EventKind, LocalGameState,
                                        Phase, ReconcileEvent)
from dropfour.debug import debug
from dropfour.game.board import (board_from_position, check_win, count_pieces,
                                 create_board, drop_row, find_any_win,
                                 is_gravity_consistent, valid_columns)
from dropfour.game.rules import ConnectFourGame
from dropfour.interfaces.api_client import RoomApiClient
from dropfour.rooms.errors import RoomError
from dropfour.rooms.manager import generate_player_id
from dropfour.utils import COLS, DRAW, NO_MOVE, Player, render_board_ascii

QUIT = "q"
UNDO = "u"
REMATCH = "r"


class GameCLI:
    """Interactive commands; each method takes the argparse namespace."""

    def __init__(self, args):
        self.args = args

    # ── Input helpers ──────────────────────────────────────────

    def read_command(self, prompt: str, allowed: str = "") -> Optional[str]:
        """
        Read a column number or one of the single-letter commands in ``allowed``.

        Returns:
            The column as a string, a command letter, or None for bad input
        """
        try:
            user_input = input(prompt).strip().lower()
        except EOFError:
            return QUIT
        if user_input and user_input in allowed:
            return user_input
        if user_input.isdigit() and 0 <= int(user_input) < COLS:
            return user_input
        print(f"Enter a column from 0 to {COLS - 1}"
              + (f" or one of: {', '.join(allowed)}" if allowed else ""))
        return None

    # ── Against the computer ───────────────────────────────────

    def play_game(self):
        """Human (X) against the computer (O) with rematches."""
        difficulty = self.args.difficulty
        game = ConnectFourGame()
        print(f"Playing against the computer ({difficulty}).")
        print("Enter a column (0-6), 'u' to undo, 'q' to quit.")

        with select_strategy() as search:
            while True:
                print(game.render())
                while not game.is_game_over():
                    if game.current_player == Player.ONE:
                        command = self.read_command("Your move: ", QUIT + UNDO)
                        if command is None:
                            continue
                        if command == QUIT:
                            return
                        if command == UNDO:
                            # Take back the computer's reply and the human move
                            game.undo_move()
                            game.undo_move()
                            print(game.render())
                            continue
                        if game.make_move(int(command)) is None:
                            print(f"Column {command} is full.")
                            continue
                    else:
                        print("Computer is thinking...")
                        token = game.state_token()
                        search.request(game.board, difficulty, token, Player.TWO)
                        column = search.result(token)
                        if column is None or column == NO_MOVE:
                            break
                        game.make_move(column)
                        print(f"Computer plays column {column}")
                    print(game.render())

                self.print_result(game.winner, Player.ONE)
                scores = game.scores
                print(f"Score - you: {scores['p1']}  computer: {scores['p2']}  "
                      f"draws: {scores['draws']}")
                command = None
                while command not in (QUIT, REMATCH):
                    command = self.read_command("'r' for a rematch, 'q' to quit: ", QUIT + REMATCH)
                if command == QUIT:
                    return
                opener = game.rematch()
                print(f"New game. {'You open' if opener == Player.ONE else 'Computer opens'}.")

    @staticmethod
    def print_result(winner: Optional[int], me: Player):
        if winner == DRAW:
            print("It's a draw!")
        elif winner == me.value:
            print("You win!")
        elif winner is not None:
            print("You lose.")

    # ── Against a remote player ────────────────────────────────

    def play_online(self):
        client = RoomApiClient(self.args.server)
        player_id = self.args.player_id or generate_player_id()

        try:
            if self.args.action == "create":
                room = client.create(player_id, self.args.name)
                seat = Player.ONE
                print(f"Room code: {room.room_code} - waiting for an opponent...")
            else:
                room = client.join(self.args.code, player_id, self.args.name)
                seat = Player.TWO
                print(f"Joined room {room.room_code} against {room.player1_name}.")
        except RoomError as exc:
            print(f"Could not {self.args.action} room: {exc}")
            return

        code = room.room_code
        state = LocalGameState(seat=seat,
                               phase=Phase.WAITING if seat == Player.ONE else Phase.PLAYING)
        reconciler = ClientReconciler(seat, state)
        reconciler.reconcile(room)

        def show(events: List[ReconcileEvent]):
            self.print_events(events, reconciler)

        poller = RoomPoller(lambda: client.poll(code), reconciler, on_events=show)
        poller.start()
        try:
            self._online_loop(client, code, player_id, reconciler)
        except KeyboardInterrupt:
            print()
        finally:
            poller.stop()
            client.close()

    def _online_loop(self, client: RoomApiClient, code: str, player_id: str,
                     reconciler: ClientReconciler):
        state = reconciler.state
        while True:
            if state.phase == Phase.GAME_OVER:
                my_vote = state.rematch["p1" if reconciler.seat == Player.ONE else "p2"]
                if my_vote:
                    time.sleep(config.POLL_INTERVAL)
                    continue
                command = self.read_command("'r' for a rematch, 'q' to quit: ", QUIT + REMATCH)
                if command == QUIT:
                    return
                if command == REMATCH:
                    try:
                        reconciler.reconcile(client.rematch(code, player_id))
                    except RoomError as exc:
                        print(f"Rematch failed: {exc}")
                continue

            if not state.is_my_turn:
                time.sleep(config.POLL_INTERVAL)
                continue

            command = self.read_command("Your move: ", QUIT)
            if command == QUIT:
                return
            if command is None:
                continue
            events = reconciler.apply_local_move(int(command))
            if not events:
                print(f"Column {command} is not playable.")
                continue
            self.print_events(events, reconciler)
            try:
                client.move(code, player_id, int(command))
            except RoomError as exc:
                print(f"Move rejected: {exc}")
                try:
                    reconciler.local_move_rejected(client.poll(code))
                except RoomError:
                    reconciler.local_move_rejected()

    def print_events(self, events: List[ReconcileEvent], reconciler: ClientReconciler):
        state = reconciler.state
        for event in events:
            if event.kind == EventKind.OPPONENT_JOINED:
                print(f"{event.data.get('name') or 'Opponent'} joined.")
            elif event.kind == EventKind.NEW_GAME:
                print(f"Game {event.data['game_number'] + 1} starts.")
                print(render_board_ascii(state.board))
            elif event.kind == EventKind.MOVE:
                who = "You" if event.data["player"] == reconciler.seat else "Opponent"
                print(f"{who} played column {event.data['col']}")
                print(render_board_ascii(state.board, state.win_cells))
            elif event.kind == EventKind.GAME_OVER:
                self.print_result(event.data["winner"], reconciler.seat)
            elif event.kind == EventKind.REMATCH_CHANGED:
                votes = event.data["rematch"]
                if any(votes.values()):
                    print(f"Rematch votes - P1: {votes['p1']}  P2: {votes['p2']}")

    # ── Analysis ───────────────────────────────────────────────

    def test_position(self):
        """Describe a board given as a comma separated string of 42 values."""
        try:
            board = board_from_position(self.args.position)
        except ValueError as exc:
            print(f"Error parsing position: {exc}")
            return

        print("Loaded position:")
        print(render_board_ascii(board))
        print(f"Pieces: {count_pieces(board)}")
        if not is_gravity_consistent(board):
            print("Warning: some pieces are floating above empty cells")

        line = find_any_win(board)
        if line:
            r, c = line[0]
            print(f"Win for {Player(int(board[r, c])).name}: {line}")
        else:
            print("No win on the board")
        print(f"Valid moves: {sorted(valid_columns(board))}")

    def benchmark(self):
        """Time the search engine on random mid-game positions."""
        difficulties = [self.args.difficulty] if self.args.difficulty else list(DIFFICULTIES)
        rng = np.random.default_rng(self.args.seed)

        for difficulty in difficulties:
            player = MinimaxPlayer(difficulty)
            total_nodes = 0
            slowest = 0.0
            debug.start_timer(f"benchmark_{difficulty}")
            for _ in range(self.args.iterations):
                board = self._random_position(rng)
                started = time.perf_counter()
                player.get_move(board)
                slowest = max(slowest, time.perf_counter() - started)
                total_nodes += player.nodes_evaluated
            elapsed = debug.end_timer(f"benchmark_{difficulty}", "search") or 0.0
            print(f"{difficulty:>6}: {self.args.iterations} searches in {elapsed:.3f}s, "
                  f"slowest {slowest * 1000:.1f} ms, "
                  f"{total_nodes / max(1, self.args.iterations):.0f} nodes per search")

    @staticmethod
    def _random_position(rng: np.random.Generator, max_moves: int = 16) -> np.ndarray:
        """Random legal position without a finished line."""
        board = create_board()
        player = Player.ONE
        for _ in range(int(rng.integers(0, max_moves))):
            columns = valid_columns(board)
            col = int(rng.choice(columns))
            row = drop_row(board, col)
            board[row, col] = player.value
            if check_win(board, row, col):
                board[row, col] = Player.EMPTY.value
                break
            player = player.other()
        return board


def run_server(args):
    from dropfour.interfaces.server import create_app
    from dropfour.rooms.store import create_store

    kwargs = {"data_dir": args.data_dir} if args.store == "file" and args.data_dir else {}
    app = create_app(store=create_store(args.store, **kwargs))
    print(f"Serving rooms on http://{args.host}:{args.port}/api/room ({args.store} store)")
    app.run(host=args.host, port=args.port, debug=False, threaded=True)
    return 0

