import json

import pytest

from models import Color, Connector, ConnectorGender, ConnectorOffset, ConnectorSize
from pieceset import (
    PieceSet,
    PieceSetError,
    bundled_pieces,
    filter_pieces,
    load_pieces_file,
    parse_connector,
    parse_pieces,
)


def test_parse_connector_accepts_mapping_shorthand_and_flat():
    expected = Connector(ConnectorGender.MALE, ConnectorSize.SMALL, ConnectorOffset.LEFT)
    assert parse_connector({"gender": "male", "ctype": "small", "offset": "left"}) == expected
    assert parse_connector({"gender": "Male", "size": "SMALL", "offset": "Left"}) == expected
    assert parse_connector("male-small-left") == expected
    assert parse_connector("male_small_left") == expected
    assert parse_connector("male small left") == expected
    assert parse_connector("flat") == Connector.flat()
    assert parse_connector(None) == Connector.flat()
    assert parse_connector({"gender": "flat", "ctype": "flat", "offset": "flat"}) == Connector.flat()


@pytest.mark.parametrize(
    "raw",
    [
        "male-medium-left",
        "sideways",
        {"gender": "male", "ctype": "small"},
        {"gender": "flat", "ctype": "small", "offset": "left"},
        "male-flat-left",
        42,
    ],
)
def test_parse_connector_rejects_bad_values(raw):
    with pytest.raises(PieceSetError):
        parse_connector(raw)


def test_piece_set_error_is_a_value_error():
    assert issubclass(PieceSetError, ValueError)


def test_parse_pieces_forms():
    pieces = [
        {"color": "green", "connectors": ["flat", "flat", "male-large-right", "female-small-right"]},
        {"color": "yellow", "connectors": [None, None, "flat", "flat"]},
    ]
    for payload in (pieces, {"pieces": pieces}, json.dumps(pieces), json.dumps(pieces).encode("utf-8")):
        parsed = parse_pieces(payload)
        assert [p.color for p in parsed] == [Color.GREEN, Color.YELLOW]
        assert all(not p.used and not p.flipped and p.rotations == 0 for p in parsed)


def test_parse_pieces_reports_piece_index():
    payload = [
        {"color": "yellow", "connectors": ["flat"] * 4},
        {"color": "yellow", "connectors": ["flat"] * 3},
    ]
    with pytest.raises(PieceSetError, match="piece 1"):
        parse_pieces(payload)

    with pytest.raises(PieceSetError, match="piece 0: bad color"):
        parse_pieces([{"color": "purple", "connectors": ["flat"] * 4}])


def test_parse_pieces_rejects_bad_documents():
    with pytest.raises(PieceSetError):
        parse_pieces("{not json")
    with pytest.raises(PieceSetError):
        parse_pieces({"tiles": []})
    with pytest.raises(PieceSetError):
        parse_pieces(["flat"])


def test_piece_set_coerce_and_filter():
    assert PieceSet.coerce(" Green ") is PieceSet.GREEN
    assert PieceSet.coerce(PieceSet.BOTH) is PieceSet.BOTH
    with pytest.raises(PieceSetError):
        PieceSet.coerce("blue")

    pieces = parse_pieces([
        {"color": "yellow", "connectors": ["flat"] * 4},
        {"color": "green", "connectors": ["flat"] * 4},
    ])
    assert [p.color for p in filter_pieces(pieces, "yellow")] == [Color.YELLOW]
    assert [p.color for p in filter_pieces(pieces, PieceSet.GREEN)] == [Color.GREEN]
    assert len(filter_pieces(pieces, PieceSet.BOTH)) == 2


def test_load_pieces_file_missing_path(tmp_path):
    with pytest.raises(PieceSetError, match="cannot read"):
        load_pieces_file(str(tmp_path / "nope.json"))


def test_bundled_piece_counts():
    assert len(bundled_pieces(PieceSet.YELLOW)) == 9
    assert len(bundled_pieces(PieceSet.GREEN)) == 16
    assert len(bundled_pieces(PieceSet.BOTH)) == 25
    assert len(bundled_pieces()) == 25


def test_bundled_pieces_are_fresh_each_call():
    first = bundled_pieces()
    first[0].used = True
    assert bundled_pieces()[0].used is False
