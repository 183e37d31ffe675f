#!/usr/bin/env python3
"""
run.py - Main entry point for dropfour
"""

import argparse
import sys

from dropfour import config
from dropfour.ai.minimax import DIFFICULTIES
from dropfour.debug import debug, DebugLevel

# --- Utility Functions ---

def configure_debug(args):
    """Set the log level from --debug, --debug_level or DROPFOUR_DEBUG_LEVEL."""
    if getattr(args, 'debug', False):
        debug.configure(level=DebugLevel.DEBUG)
    elif getattr(args, 'debug_level', None):
        debug.set_from_string(args.debug_level)
    elif config.DEBUG_LEVEL:
        debug.set_from_string(config.DEBUG_LEVEL)
    if getattr(args, 'log_file', None):
        debug.configure(log_file=args.log_file)

# --- Command Handlers ---

def handle_play(args):
    from dropfour.interfaces.cli import GameCLI
    GameCLI(args).play_game()


def handle_online(args):
    from dropfour.interfaces.cli import GameCLI
    if args.action == 'join' and not args.code:
        print("Error: a room code is required to join")
        return 1
    GameCLI(args).play_online()


def handle_serve(args):
    from dropfour.interfaces.cli import run_server
    return run_server(args)


def handle_inspect(args):
    from dropfour.interfaces.cli import GameCLI
    GameCLI(args).test_position()


def handle_benchmark(args):
    from dropfour.interfaces.cli import GameCLI
    GameCLI(args).benchmark()

# --- Main Entry Point ---

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='dropfour - four in a row against the computer or a friend',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
    Examples:

    # Play the computer on the hardest setting
    python run.py play --difficulty hard

    # Start a room server backed by JSON files
    python run.py serve --store file --port 5000

    # Open a room and wait for a friend
    python run.py online create --name ALICE --server http://localhost:5000

    # Join a friend's room
    python run.py online join K7QX --name BOB --server http://localhost:5000

    # Analyse a position (42 comma separated values, top row first)
    python run.py inspect --position 0,0,0,0,0,0,0,...

    # Time the search engine
    python run.py benchmark --difficulty hard --iterations 50
    """
    )
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging (same as --debug_level debug)')
    parser.add_argument('--debug_level',
                        choices=[level.name.lower() for level in DebugLevel],
                        help='Log level: none, error, warning, info, debug, trace')
    parser.add_argument('--log_file', type=str, help='Also write logs to this file')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    play_parser = subparsers.add_parser('play', help='Play against the computer')
    play_parser.add_argument('--difficulty', choices=list(DIFFICULTIES), default='medium',
                             help='Computer strength (default: medium)')

    online_parser = subparsers.add_parser('online', help='Play a remote opponent')
    online_parser.add_argument('action', choices=['create', 'join'],
                               help='create a new room or join an existing one')
    online_parser.add_argument('code', nargs='?', help='Room code (join only)')
    online_parser.add_argument('--name', type=str, help='Display name')
    online_parser.add_argument('--player_id', type=str,
                               help='Reuse an identity, e.g. to rejoin a room')
    online_parser.add_argument('--server', type=str, default=config.SERVER_URL,
                               help=f'Room server URL (default: {config.SERVER_URL})')

    serve_parser = subparsers.add_parser('serve', help='Run the room server')
    serve_parser.add_argument('--host', type=str, default='127.0.0.1')
    serve_parser.add_argument('--port', type=int, default=5000)
    serve_parser.add_argument('--store', choices=['memory', 'file'], default='memory',
                              help='Where rooms are kept (default: memory)')
    serve_parser.add_argument('--data_dir', type=str,
                              help=f'Directory for the file store (default: {config.DATA_DIR})')

    inspect_parser = subparsers.add_parser('inspect', help='Analyse a board position')
    inspect_parser.add_argument('--position', type=str, required=True,
                                help='42 comma separated cell values, top row first')

    bench_parser = subparsers.add_parser('benchmark', help='Time the search engine')
    bench_parser.add_argument('--difficulty', choices=list(DIFFICULTIES),
                              help='Only benchmark this tier')
    bench_parser.add_argument('--iterations', type=int, default=20,
                              help='Searches per tier (default: 20)')
    bench_parser.add_argument('--seed', type=int, default=None,
                              help='Seed for the random positions')
    return parser


HANDLERS = {
    'play': handle_play,
    'online': handle_online,
    'serve': handle_serve,
    'inspect': handle_inspect,
    'benchmark': handle_benchmark,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_debug(args)

    handler = HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args) or 0


if __name__ == "__main__":
    sys.exit(main())
