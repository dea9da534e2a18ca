"""Board model, terminal-state detection and the live game for PerfectXO."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple, Union

SIZE = 3

Move = Tuple[int, int]  # (row, col)


class Mark(str, Enum):
    # Server-internal: 'X', 'O', or ' ' (space) for empty
    EMPTY = " "
    X = "X"
    O = "O"

    @classmethod
    def parse(cls, value: Union["Mark", str]) -> "Mark":
        if isinstance(value, Mark):
            return value
        if value in ("", " "):
            return cls.EMPTY
        try:
            return cls(value.upper())
        except (AttributeError, ValueError) as exc:
            raise InvalidBoard(f"Unknown cell value {value!r}") from exc

    def opponent(self) -> "Mark":
        if self is Mark.EMPTY:
            raise ValueError("Empty cells have no opponent")
        return Mark.O if self is Mark.X else Mark.X


class InvalidBoard(ValueError):
    """Board is not 3x3, holds unknown values, or breaks X/O alternation."""


# ---------- Board ----------


@dataclass
class Board:
    cells: List[List[Mark]] = field(
        default_factory=lambda: [[Mark.EMPTY] * SIZE for _ in range(SIZE)]
    )

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Union[Mark, str]]]) -> "Board":
        """Build a board from three rows of marks ('X', 'O', '' or ' ')."""
        if isinstance(rows, str) or len(rows) != SIZE:
            raise InvalidBoard(f"Board must have {SIZE} rows")
        cells: List[List[Mark]] = []
        for row in rows:
            if isinstance(row, str) or len(row) != SIZE:
                raise InvalidBoard(f"Every row must have {SIZE} cells")
            cells.append([Mark.parse(value) for value in row])
        board = cls(cells=cells)
        validate_board(board)
        return board

    def __getitem__(self, pos: Move) -> Mark:
        row, col = pos
        return self.cells[row][col]

    def __setitem__(self, pos: Move, mark: Mark) -> None:
        row, col = pos
        self.cells[row][col] = mark

    def copy(self) -> "Board":
        return Board(cells=[row.copy() for row in self.cells])

    def count(self, mark: Mark) -> int:
        return sum(row.count(mark) for row in self.cells)

    def occupied(self) -> int:
        return SIZE * SIZE - self.count(Mark.EMPTY)

    def rows(self) -> List[List[str]]:
        """Serialisable rows, '' for empty cells."""
        return [[c.value if c is not Mark.EMPTY else "" for c in row] for row in self.cells]

    @contextmanager
    def placed(self, row: int, col: int, mark: Mark) -> Iterator["Board"]:
        """Temporarily put ``mark`` on an empty cell; the cell is emptied on exit."""
        if self.cells[row][col] is not Mark.EMPTY:
            raise ValueError("Cell already occupied")
        self.cells[row][col] = mark
        try:
            yield self
        finally:
            self.cells[row][col] = Mark.EMPTY


def validate_board(board: Board) -> None:
    if len(board.cells) != SIZE or any(len(row) != SIZE for row in board.cells):
        raise InvalidBoard(f"Board must be {SIZE}x{SIZE}")
    if any(not isinstance(c, Mark) for row in board.cells for c in row):
        raise InvalidBoard("Board cells must be Mark values")
    lead = board.count(Mark.X) - board.count(Mark.O)
    if lead not in (0, 1):
        raise InvalidBoard(
            f"X count minus O count must be 0 or 1, got {lead}"
        )


# ---------- Terminal-state detection ----------


def _line(a: Mark, b: Mark, c: Mark) -> bool:
    return a is not Mark.EMPTY and a == b == c


def row_win(board: Board) -> bool:
    return any(_line(*row) for row in board.cells)


def col_win(board: Board) -> bool:
    c = board.cells
    return any(_line(c[0][i], c[1][i], c[2][i]) for i in range(SIZE))


def diagonal_win(board: Board) -> bool:
    c = board.cells
    return _line(c[0][0], c[1][1], c[2][2]) or _line(c[0][2], c[1][1], c[2][0])


def has_winner(board: Board) -> bool:
    return row_win(board) or col_win(board) or diagonal_win(board)


def winner(board: Board) -> Optional[Mark]:
    """The mark owning a completed line, if any."""
    c = board.cells
    lines = [list(row) for row in c]
    lines += [[c[0][i], c[1][i], c[2][i]] for i in range(SIZE)]
    lines += [[c[0][0], c[1][1], c[2][2]], [c[0][2], c[1][1], c[2][0]]]
    for a, b, d in lines:
        if _line(a, b, d):
            return a
    return None


def is_draw(board: Board) -> bool:
    # Does not exclude a win: check has_winner first.
    return all(c is not Mark.EMPTY for row in board.cells for c in row)


def is_terminal(board: Board) -> bool:
    return has_winner(board) or is_draw(board)


def side_to_move(board: Board) -> Mark:
    return Mark.X if board.occupied() % 2 == 0 else Mark.O


def empty_cells(board: Board) -> List[Move]:
    """Empty cells in row-major order."""
    return [
        (r, c)
        for r in range(SIZE)
        for c in range(SIZE)
        if board.cells[r][c] is Mark.EMPTY
    ]


# ---------- Game ----------


@dataclass
class TicTacToeGame:
    board: Board = field(default_factory=Board)
    winner: Optional[Mark] = None
    drawn: bool = False

    @property
    def current_player(self) -> Mark:
        return side_to_move(self.board)

    @property
    def finished(self) -> bool:
        return self.winner is not None or self.drawn

    def available_moves(self) -> List[Move]:
        if self.finished:
            return []
        return empty_cells(self.board)

    def play_move(self, row: int, col: int) -> Mark:
        """Place the current player's mark and update the result. Returns the mark played."""
        if self.finished:
            raise ValueError("Game already finished")
        if not (0 <= row < SIZE and 0 <= col < SIZE):
            raise ValueError("Move is off the board")
        if self.board[row, col] is not Mark.EMPTY:
            raise ValueError("Cell already occupied")

        player = self.current_player
        self.board[row, col] = player
        self._update_state()
        return player

    def reset(self) -> None:
        self.board = Board()
        self.winner = None
        self.drawn = False

    def _update_state(self) -> None:
        self.winner = winner(self.board)
        self.drawn = self.winner is None and is_draw(self.board)
