"""
dropfour/ai/__init__.py - The computer opponent
"""

from dropfour.ai.minimax import DIFFICULTIES, MinimaxPlayer, choose_move
from dropfour.ai.search_worker import SearchWorker, SyncSearch, select_strategy

__all__ = ['DIFFICULTIES', 'MinimaxPlayer', 'choose_move',
           'SearchWorker', 'SyncSearch', 'select_strategy']
