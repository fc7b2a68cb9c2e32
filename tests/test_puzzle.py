import json

import pytest

from models import Color, Connector, ConnectorGender, ConnectorOffset, ConnectorSize, Direction, Piece
from pieceset import PieceSet
from solver.puzzle import EMPTY, Board, Dimensions, Puzzle, PuzzleBuilder, Square


def _flat_piece(color=Color.YELLOW):
    return Piece([Connector.flat()] * 4, color)


def test_dimensions_size_and_validation():
    assert Dimensions(3, 2).size == 6
    with pytest.raises(ValueError):
        Dimensions(0, 3)
    with pytest.raises(ValueError):
        Dimensions(3, -1)


def test_square_is_tagged_empty_or_occupied():
    assert EMPTY.is_empty
    assert Square().is_empty
    assert not Square(0).is_empty
    assert Square(0).piece_id == 0


def test_new_board_is_empty():
    board = Board(Dimensions(3, 2))
    assert board.size == 6
    assert all(sq.is_empty for sq in board.squares())


def test_add_and_remove_piece_zero():
    board = Board(Dimensions(2, 2))
    board.add_piece(1, 0)
    assert not board.square(1).is_empty
    assert board.square(1).piece_id == 0
    assert board.remove_piece(1) == 0
    assert board.square(1).is_empty


def test_add_to_occupied_square_raises():
    board = Board(Dimensions(2, 2))
    board.add_piece(0, 3)
    with pytest.raises(ValueError):
        board.add_piece(0, 1)


def test_remove_from_empty_square_raises():
    board = Board(Dimensions(2, 2))
    with pytest.raises(ValueError):
        board.remove_piece(2)


def test_out_of_range_positions_raise_index_error():
    board = Board(Dimensions(2, 2))
    with pytest.raises(IndexError):
        board.square(4)
    with pytest.raises(IndexError):
        board.add_piece(-1, 0)
    with pytest.raises(IndexError):
        board.is_on_edge(7, Direction.UP)


def test_edges_on_three_by_two_board():
    board = Board(Dimensions(3, 2))
    # 0 1 2
    # 3 4 5
    assert board.is_on_edge(0, Direction.LEFT)
    assert board.is_on_edge(0, Direction.UP)
    assert not board.is_on_edge(0, Direction.RIGHT)
    assert not board.is_on_edge(0, Direction.DOWN)
    assert board.is_on_edge(2, Direction.RIGHT)
    assert board.is_on_edge(4, Direction.DOWN)
    assert not board.is_on_edge(4, Direction.UP)
    assert board.is_on_edge(5, Direction.RIGHT)


def test_single_row_board_is_edge_up_and_down():
    board = Board(Dimensions(3, 1))
    for position in range(3):
        assert board.is_on_edge(position, Direction.UP)
        assert board.is_on_edge(position, Direction.DOWN)


def test_neighbor_and_coords():
    board = Board(Dimensions(3, 2))
    assert board.neighbor(4, Direction.LEFT) == 3
    assert board.neighbor(4, Direction.UP) == 1
    assert board.neighbor(1, Direction.RIGHT) == 2
    assert board.neighbor(1, Direction.DOWN) == 4
    assert board.coords(5) == (2, 1)
    with pytest.raises(IndexError):
        board.neighbor(0, Direction.LEFT)


def test_board_str_marks_empty_cells():
    board = Board(Dimensions(2, 1))
    board.add_piece(1, 7)
    assert str(board) == "|  . ||  7 |"


def test_connectors_around_corner_of_empty_board():
    puzzle = Puzzle(Dimensions(2, 2), [_flat_piece()])
    flat = Connector.flat()
    assert puzzle.connectors_around(0) == (flat, flat, None, None)
    assert puzzle.connectors_around(3) == (None, None, flat, flat)


def test_connectors_around_reads_neighbour_facing_side():
    flat = Connector.flat()
    piece = _flat_piece()
    male = Connector(ConnectorGender.MALE, ConnectorSize.SMALL, ConnectorOffset.LEFT)
    piece.connectors[Direction.RIGHT] = male
    puzzle = Puzzle(Dimensions(2, 1), [piece])
    # piece 0 occupies square 0 and is not mistaken for an empty square
    puzzle.board.add_piece(0, 0)
    assert puzzle.connectors_around(1) == (male, flat, flat, flat)


def test_piece_lookup_out_of_range():
    puzzle = Puzzle(Dimensions(2, 2), [_flat_piece()])
    with pytest.raises(IndexError):
        puzzle.piece(1)


def test_mismatches_reports_empty_and_bad_edges():
    puzzle = Puzzle(Dimensions(2, 1), [_flat_piece(), _flat_piece()])
    assert puzzle.mismatches() == [(0, None), (1, None)]
    puzzle.board.add_piece(0, 0)
    puzzle.board.add_piece(1, 1)
    # flat against flat between the two pieces still mates
    assert puzzle.mismatches() == []
    assert puzzle.placed_count() == 2


def test_builder_requires_dimensions():
    with pytest.raises(ValueError):
        PuzzleBuilder().with_pieces([_flat_piece()]).build()


def test_builder_filters_by_piece_set_and_copies_pieces():
    yellow = _flat_piece(Color.YELLOW)
    green = _flat_piece(Color.GREEN)
    puzzle = (
        PuzzleBuilder()
        .with_dimensions((2, 2))
        .with_pieces([yellow, green, yellow])
        .with_piece_set(PieceSet.GREEN)
        .build()
    )
    assert puzzle.dimensions == Dimensions(2, 2)
    assert [p.color for p in puzzle.pieces] == [Color.GREEN]
    puzzle.pieces[0].used = True
    assert green.used is False


def test_builder_without_piece_set_keeps_every_piece():
    puzzle = PuzzleBuilder().with_dimensions(Dimensions(1, 1)).with_pieces(
        [_flat_piece(Color.YELLOW), _flat_piece(Color.GREEN)]
    ).build()
    assert len(puzzle.pieces) == 2


def test_builder_from_json_and_file(tmp_path):
    payload = [
        {"color": "green", "connectors": ["flat", "flat", "male-small-left", "flat"]},
        {"color": "yellow", "connectors": ["flat", "flat", "flat", "flat"]},
    ]
    puzzle = PuzzleBuilder().with_dimensions((2, 1)).with_pieces_from_json(json.dumps(payload)).build()
    assert len(puzzle.pieces) == 2

    path = tmp_path / "pieces.json"
    path.write_text(json.dumps({"pieces": payload}), encoding="utf-8")
    puzzle = (
        PuzzleBuilder()
        .with_dimensions((2, 1))
        .with_pieces_from_file(str(path))
        .with_piece_set("yellow")
        .build()
    )
    assert [p.color for p in puzzle.pieces] == [Color.YELLOW]
