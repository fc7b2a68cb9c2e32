# solver/stepper.py: step-wise backtracking search
from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import List, Optional, Tuple

from models import Piece
from solver.puzzle import Dimensions, Puzzle, Square

logger = logging.getLogger(__name__)


class PuzzleState(Enum):
    IDLE = "Idle"
    PROGRESSING = "Progressing"
    BACKTRACK = "Backtrack"
    SOLVED = "Solved"
    UNSOLVABLE = "Unsolvable"

    @property
    def is_terminal(self) -> bool:
        return self in (PuzzleState.SOLVED, PuzzleState.UNSOLVABLE)


class Solver:
    """Depth-first search over (position, piece id, orientation), one step at a time.

    Squares are filled in row-major order.  Each :meth:`step` either places
    the next fitting piece at the cursor or takes the cursor back one square;
    a later step at that square removes the piece found there and resumes
    from the next piece id.  Nothing is recursive, so a UI can call
    :meth:`step` once per frame and a batch caller can use :meth:`run`.
    """

    def __init__(self, puzzle: Puzzle):
        self.puzzle = puzzle
        self.position = 0
        self.state = PuzzleState.IDLE
        self.steps = 0
        self.backtracks = 0
        self.placements = 0

    # ---------- read-only queries ----------

    @property
    def dimensions(self) -> Dimensions:
        return self.puzzle.dimensions

    def square(self, position: int) -> Square:
        return self.puzzle.board.square(position)

    def board_squares(self) -> Tuple[Square, ...]:
        return self.puzzle.board.squares()

    def piece(self, piece_id: int) -> Piece:
        return copy.deepcopy(self.puzzle.piece(piece_id))

    def pieces(self) -> List[Piece]:
        return copy.deepcopy(self.puzzle.pieces)

    # ---------- search ----------

    def step(self) -> PuzzleState:
        """Make the next move, backtracking when nothing fits at the cursor."""
        if self.state.is_terminal:
            return self.state

        self.steps += 1
        board = self.puzzle.board
        start_piece_id = 0
        if not board.square(self.position).is_empty:
            # resuming after a dead end further ahead: take the old piece off
            piece_id = board.remove_piece(self.position)
            self.puzzle.piece(piece_id).used = False
            start_piece_id = piece_id + 1
            logger.debug("Removed piece %d from position %d", piece_id, self.position)

        if self._place_first_fit(start_piece_id):
            self.position += 1
            if self.position >= board.size:
                logger.info("Puzzle solved after %d steps (%d backtracks)", self.steps, self.backtracks)
                self.state = PuzzleState.SOLVED
            else:
                self.state = PuzzleState.PROGRESSING
        elif self.position == 0:
            # every alternative at the first square is exhausted
            logger.info("Puzzle unsolvable after %d steps (%d backtracks)", self.steps, self.backtracks)
            self.state = PuzzleState.UNSOLVABLE
        else:
            self.position -= 1
            self.backtracks += 1
            self.state = PuzzleState.BACKTRACK
        return self.state

    def _place_first_fit(self, start_piece_id: int) -> bool:
        neighborhood = self.puzzle.connectors_around(self.position)
        for piece_id in range(start_piece_id, len(self.puzzle.pieces)):
            piece = self.puzzle.pieces[piece_id]
            if piece.used:
                continue
            logger.debug("Checking piece %d at position %d", piece_id, self.position)
            index = piece.first_fitting_orientation(neighborhood)
            piece.commit_orientation(index)
            if index is None:
                continue
            self.puzzle.board.add_piece(self.position, piece_id)
            piece.used = True
            self.placements += 1
            logger.debug(
                "Added piece %d to position %d (rotations=%d flipped=%s)",
                piece_id, self.position, piece.rotations, piece.flipped,
            )
            return True
        return False

    def run(self, max_steps: Optional[int] = None) -> PuzzleState:
        """Step until a terminal state, or until ``max_steps`` more steps were taken."""
        taken = 0
        state = self.state
        while not state.is_terminal:
            if max_steps is not None and taken >= max_steps:
                break
            state = self.step()
            taken += 1
        return state


__all__ = ["PuzzleState", "Solver"]
