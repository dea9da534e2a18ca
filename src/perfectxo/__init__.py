"""PerfectXO package exposing the board model, the minimax engine, and the web application."""

from .ai import MinimaxAI, SearchResult, TerminalBoardQueried, choose_move
from .game import Board, InvalidBoard, Mark, TicTacToeGame
from .ui import app

__all__ = [
    "Board",
    "InvalidBoard",
    "Mark",
    "MinimaxAI",
    "SearchResult",
    "TerminalBoardQueried",
    "TicTacToeGame",
    "app",
    "choose_move",
]
