"""
dropfour.game - Board representation and local game rules
"""

from dropfour.game.board import check_win, create_board, drop_row, valid_columns
from dropfour.game.rules import ConnectFourGame, MoveRecord

__all__ = ['check_win', 'create_board', 'drop_row', 'valid_columns',
           'ConnectFourGame', 'MoveRecord']
