"""
dropfour - Four in a row against the computer or a remote friend

The package contains the board and game rules, a time-bounded minimax
opponent, and the online room protocol: a server-side session manager and
a client-side reconciler that keeps each player's view in step.
"""

# Version number
__version__ = '0.1.0'
