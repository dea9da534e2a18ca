"""Exhaustive minimax with alpha-beta pruning for 3x3 tic-tac-toe."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .game import (
    Board,
    Mark,
    Move,
    empty_cells,
    has_winner,
    is_terminal,
    side_to_move,
    validate_board,
)

logger = logging.getLogger(__name__)


class TerminalBoardQueried(ValueError):
    """A move was requested for a board that is already won or full."""


@dataclass(frozen=True)
class SearchResult:
    value: int
    move: Optional[Move]


def utility(board: Board) -> int:
    """Score a terminal board.

    The sign comes from the side that would move next, not from the mark
    that formed the line: +1 when X is next (so O made the winning move),
    -1 when O is next, 0 for a draw.
    """
    if has_winner(board):
        return 1 if side_to_move(board) is Mark.X else -1
    return 0


@dataclass
class MinimaxAI:
    """Perfect player: searches every line to the end of the game.

      - MinimaxAI() -> plays whichever side is to move
      - MinimaxAI(player=Mark.O) -> refuses to move on X's turn
      - MinimaxAI(pruning=False) -> plain minimax, same answers, more nodes
    """

    player: Optional[Mark] = None
    pruning: bool = True
    nodes_visited: int = 0
    _orientation: int = field(default=1, init=False, repr=False)

    # ---- public API ----

    def choose(self, board: Board) -> Move:
        if self.player is not None and side_to_move(board) is not self.player:
            raise ValueError("It is not this AI player's turn")
        return self.search(board).move  # type: ignore[return-value]

    def search(self, board: Board) -> SearchResult:
        """Return the game value for the side to move and its best move."""
        validate_board(board)
        if is_terminal(board):
            raise TerminalBoardQueried("Game is already over; no legal move")

        scratch = board.copy()
        self.nodes_visited = 0

        # A line completed on the spot beats a slower forced win.
        win = _winning_cell(scratch)
        if win is not None:
            self.nodes_visited = 1
            return self._report(board, SearchResult(value=1, move=win))

        # utility() favours O; flip it so the root mover is always maximising.
        self._orientation = 1 if side_to_move(scratch) is Mark.O else -1
        value, move = self._max_node(scratch, -math.inf, math.inf)
        if move is None:
            raise RuntimeError("No valid moves available")
        return self._report(board, SearchResult(value=int(value), move=move))

    def _report(self, board: Board, result: SearchResult) -> SearchResult:
        logger.debug(
            "search: mover=%s value=%d move=%s nodes=%d pruning=%s",
            side_to_move(board).value,
            result.value,
            result.move,
            self.nodes_visited,
            self.pruning,
        )
        return result

    # ---- core search ----

    def _score(self, board: Board) -> int:
        return self._orientation * utility(board)

    def _max_node(
        self, board: Board, alpha: float, beta: float
    ) -> Tuple[float, Optional[Move]]:
        self.nodes_visited += 1
        if is_terminal(board):
            return self._score(board), None

        value = -math.inf
        best_move: Optional[Move] = None
        mark = side_to_move(board)
        for row, col in empty_cells(board):
            with board.placed(row, col, mark):
                score, _ = self._min_node(board, alpha, beta)
            if score > value:
                value, best_move = score, (row, col)
                alpha = max(alpha, value)
            if self.pruning and value >= beta:
                break
        return value, best_move

    def _min_node(
        self, board: Board, alpha: float, beta: float
    ) -> Tuple[float, Optional[Move]]:
        self.nodes_visited += 1
        if is_terminal(board):
            return self._score(board), None

        value = math.inf
        best_move: Optional[Move] = None
        mark = side_to_move(board)
        for row, col in empty_cells(board):
            with board.placed(row, col, mark):
                score, _ = self._max_node(board, alpha, beta)
            if score < value:
                value, best_move = score, (row, col)
                beta = min(beta, value)
            if self.pruning and value <= alpha:
                break
        return value, best_move


def _winning_cell(board: Board) -> Optional[Move]:
    """First empty cell, row-major, where the side to move completes a line."""
    mark = side_to_move(board)
    for row, col in empty_cells(board):
        with board.placed(row, col, mark):
            if has_winner(board):
                return row, col
    return None


def choose_move(board: Board, pruning: bool = True) -> Move:
    """Optimal move for the side to move on ``board``; the board is left untouched."""
    return MinimaxAI(pruning=pruning).choose(board)
