# solver/puzzle.py
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from models import Connector, Direction, Neighborhood, Piece
from pieceset import PieceSet, filter_pieces, load_pieces_file, parse_pieces


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def __post_init__(self):
        if int(self.width) <= 0 or int(self.height) <= 0:
            raise ValueError(f"board dimensions must be positive, got {self.width} × {self.height}")

    @property
    def size(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class Square:
    """One board cell; ``piece_id is None`` means the cell is empty."""

    piece_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.piece_id is None


EMPTY = Square()


class Board:
    def __init__(self, dimensions: Dimensions):
        self.dimensions = dimensions
        self._squares: List[Square] = [EMPTY] * dimensions.size

    @property
    def size(self) -> int:
        return self.dimensions.size

    def _check(self, position: int) -> int:
        if not 0 <= position < self.size:
            raise IndexError(f"position {position} outside board of {self.size} squares")
        return position

    def square(self, position: int) -> Square:
        return self._squares[self._check(position)]

    def squares(self) -> Tuple[Square, ...]:
        return tuple(self._squares)

    def add_piece(self, position: int, piece_id: int) -> None:
        if not self.square(position).is_empty:
            raise ValueError(f"square {position} already holds piece {self._squares[position].piece_id}")
        self._squares[position] = Square(piece_id)

    def remove_piece(self, position: int) -> int:
        sq = self.square(position)
        if sq.is_empty:
            raise ValueError(f"square {position} is already empty")
        self._squares[position] = EMPTY
        return sq.piece_id

    def is_on_edge(self, position: int, direction: Direction) -> bool:
        w, h = self.dimensions.width, self.dimensions.height
        self._check(position)
        if direction is Direction.UP:
            return position < w
        if direction is Direction.DOWN:
            return position >= w * (h - 1)
        if direction is Direction.LEFT:
            return position % w == 0
        return position % w == w - 1

    def neighbor(self, position: int, direction: Direction) -> int:
        """Position next to ``position``; callers check :meth:`is_on_edge` first."""
        if self.is_on_edge(position, direction):
            raise IndexError(f"position {position} has no {direction.name.lower()} neighbour")
        w = self.dimensions.width
        step = {Direction.LEFT: -1, Direction.RIGHT: 1, Direction.UP: -w, Direction.DOWN: w}[direction]
        return position + step

    def coords(self, position: int) -> Tuple[int, int]:
        return divmod(self._check(position), self.dimensions.width)[::-1]

    def __str__(self) -> str:
        w = self.dimensions.width
        rows = []
        for y in range(self.dimensions.height):
            cells = []
            for sq in self._squares[y * w:(y + 1) * w]:
                cells.append("|  . |" if sq.is_empty else f"| {sq.piece_id:>2} |")
            rows.append("".join(cells))
        return "\n".join(rows)


class Puzzle:
    def __init__(self, dimensions: Dimensions, pieces: Sequence[Piece] = ()):
        self.board = Board(dimensions)
        self.pieces: List[Piece] = list(pieces)

    @property
    def dimensions(self) -> Dimensions:
        return self.board.dimensions

    def piece(self, piece_id: int) -> Piece:
        if not 0 <= piece_id < len(self.pieces):
            raise IndexError(f"piece id {piece_id} outside pool of {len(self.pieces)} pieces")
        return self.pieces[piece_id]

    def connector_towards(self, position: int, direction: Direction) -> Optional[Connector]:
        if self.board.is_on_edge(position, direction):
            # the outside edges must always be flat
            return Connector.flat()
        sq = self.board.square(self.board.neighbor(position, direction))
        if sq.is_empty:
            return None
        return self.piece(sq.piece_id).connector(direction.opposite)

    def connectors_around(self, position: int) -> Neighborhood:
        return tuple(self.connector_towards(position, d) for d in Direction)

    def placed_count(self) -> int:
        return sum(1 for sq in self.board.squares() if not sq.is_empty)

    def mismatches(self) -> List[Tuple[int, Optional[Direction]]]:
        """Every (position, direction) edge that does not mate; ``(position, None)`` for empty squares."""
        bad: List[Tuple[int, Optional[Direction]]] = []
        for position, sq in enumerate(self.board.squares()):
            if sq.is_empty:
                bad.append((position, None))
                continue
            piece = self.piece(sq.piece_id)
            for direction in Direction:
                other = self.connector_towards(position, direction)
                if other is None or not piece.connector(direction).fits(other):
                    bad.append((position, direction))
        return bad

    def __str__(self) -> str:
        return str(self.board)


class PuzzleBuilder:
    def __init__(self):
        self._dimensions: Optional[Dimensions] = None
        self._pieces: Optional[List[Piece]] = None
        self._piece_set: Optional[PieceSet] = None

    def with_dimensions(self, dimensions: Union[Dimensions, Tuple[int, int]]) -> "PuzzleBuilder":
        if not isinstance(dimensions, Dimensions):
            dimensions = Dimensions(int(dimensions[0]), int(dimensions[1]))
        self._dimensions = dimensions
        return self

    def with_piece_set(self, piece_set: Union[PieceSet, str]) -> "PuzzleBuilder":
        self._piece_set = PieceSet.coerce(piece_set)
        return self

    def with_pieces(self, pieces: Sequence[Piece]) -> "PuzzleBuilder":
        self._pieces = list(pieces)
        return self

    def with_pieces_from_json(self, text: Union[str, bytes]) -> "PuzzleBuilder":
        self._pieces = parse_pieces(text)
        return self

    def with_pieces_from_file(self, path: str) -> "PuzzleBuilder":
        self._pieces = load_pieces_file(path)
        return self

    def build(self) -> Puzzle:
        if self._dimensions is None:
            raise ValueError("PuzzleBuilder needs dimensions before build()")
        pieces = copy.deepcopy(self._pieces or [])
        if self._piece_set is not None:
            pieces = filter_pieces(pieces, self._piece_set)
        return Puzzle(self._dimensions, pieces)


__all__ = ["Dimensions", "Square", "EMPTY", "Board", "Puzzle", "PuzzleBuilder"]
