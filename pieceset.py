# pieceset.py
from __future__ import annotations
import json
import re
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Union

from config import CFG
from models import Color, Connector, ConnectorGender, ConnectorOffset, ConnectorSize, Piece

# Accept "male-small-left", "female_large_right", "male/small/left", "male small left".
_SHORTHAND_RE = re.compile(r"^\s*(?P<gender>\w+?)[\s\-_/]+(?P<size>\w+?)[\s\-_/]+(?P<offset>\w+)\s*$")


class PieceSetError(ValueError):
    pass


class PieceSet(Enum):
    YELLOW = "yellow"
    GREEN = "green"
    BOTH = "both"

    @classmethod
    def coerce(cls, value: Union["PieceSet", str, None]) -> "PieceSet":
        if isinstance(value, PieceSet):
            return value
        token = str(value or "").strip().lower()
        for member in cls:
            if member.value == token:
                return member
        raise PieceSetError(f"unknown piece set {value!r} (expected one of: yellow, green, both)")

    def keeps(self, color: Color) -> bool:
        return self is PieceSet.BOTH or self.value == color.value


def _enum_value(enum_cls, raw: Any, what: str):
    token = str(raw).strip().lower() if raw is not None else ""
    try:
        return enum_cls(token)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise PieceSetError(f"bad {what} {raw!r} (expected one of: {allowed})") from None


def _check_consistent(conn: Connector) -> Connector:
    flat_fields = [
        conn.gender is ConnectorGender.FLAT,
        conn.size is ConnectorSize.FLAT,
        conn.offset is ConnectorOffset.FLAT,
    ]
    if any(flat_fields) and not all(flat_fields):
        raise PieceSetError(f"connector {conn.to_dict()} mixes flat and non-flat fields")
    return conn


def parse_connector(raw: Any) -> Connector:
    """Parse one connector from a mapping, a shorthand string, or None (flat)."""
    if raw is None:
        return Connector.flat()

    if isinstance(raw, Mapping):
        size_raw = raw.get("ctype", raw.get("size"))
        conn = Connector(
            _enum_value(ConnectorGender, raw.get("gender"), "gender"),
            _enum_value(ConnectorSize, size_raw, "size"),
            _enum_value(ConnectorOffset, raw.get("offset"), "offset"),
        )
        return _check_consistent(conn)

    if isinstance(raw, str):
        if raw.strip().lower() == "flat":
            return Connector.flat()
        m = _SHORTHAND_RE.match(raw)
        if not m:
            raise PieceSetError(f"cannot parse connector {raw!r}")
        conn = Connector(
            _enum_value(ConnectorGender, m.group("gender"), "gender"),
            _enum_value(ConnectorSize, m.group("size"), "size"),
            _enum_value(ConnectorOffset, m.group("offset"), "offset"),
        )
        return _check_consistent(conn)

    raise PieceSetError(f"unsupported connector value {raw!r}")


def _parse_piece(index: int, raw: Any) -> Piece:
    if not isinstance(raw, Mapping):
        raise PieceSetError(f"piece {index}: expected an object, got {type(raw).__name__}")
    conns_raw = raw.get("connectors")
    if not isinstance(conns_raw, (list, tuple)) or len(conns_raw) != 4:
        raise PieceSetError(f"piece {index}: needs exactly 4 connectors (left, up, right, down)")
    try:
        color = _enum_value(Color, raw.get("color"), "color")
        connectors = [parse_connector(c) for c in conns_raw]
    except PieceSetError as e:
        raise PieceSetError(f"piece {index}: {e}") from None
    return Piece(connectors, color)


def parse_pieces(payload: Any) -> List[Piece]:
    """
    Return fresh pieces from a piece-set description.
    Accepts a JSON string/bytes, a list of pieces, or {"pieces": [...]}.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise PieceSetError(f"invalid pieces JSON: {e}") from None

    if isinstance(payload, Mapping) and isinstance(payload.get("pieces"), list):
        payload = payload["pieces"]

    if not isinstance(payload, list):
        raise PieceSetError("expected a list of pieces")

    return [_parse_piece(i, raw) for i, raw in enumerate(payload)]


def filter_pieces(pieces: Iterable[Piece], piece_set: Union[PieceSet, str, None]) -> List[Piece]:
    chosen = PieceSet.coerce(piece_set)
    return [p for p in pieces if chosen.keeps(p.color)]


def load_pieces_file(path: str, piece_set: Union[PieceSet, str, None] = None) -> List[Piece]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            text = fh.read()
    except OSError as e:
        raise PieceSetError(f"cannot read pieces file {path}: {e}") from None
    pieces = parse_pieces(text)
    if piece_set is None:
        return pieces
    return filter_pieces(pieces, piece_set)


def bundled_pieces(piece_set: Union[PieceSet, str, None] = None, path: Optional[str] = None) -> List[Piece]:
    return load_pieces_file(path or CFG.PIECES_FILE, piece_set)


__all__ = [
    "PieceSet",
    "PieceSetError",
    "parse_connector",
    "parse_pieces",
    "filter_pieces",
    "load_pieces_file",
    "bundled_pieces",
]
