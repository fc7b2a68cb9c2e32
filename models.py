from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Sequence, Tuple


class Direction(IntEnum):
    LEFT = 0
    UP = 1
    RIGHT = 2
    DOWN = 3

    @property
    def opposite(self) -> "Direction":
        return Direction((self + 2) % 4)


class ConnectorGender(Enum):
    MALE = "male"
    FEMALE = "female"
    FLAT = "flat"


class ConnectorSize(Enum):
    SMALL = "small"
    LARGE = "large"
    FLAT = "flat"


class ConnectorOffset(Enum):
    """Offset of the connector seen from the middle of the piece towards the edge."""

    LEFT = "left"
    RIGHT = "right"
    FLAT = "flat"

    @property
    def mirrored(self) -> "ConnectorOffset":
        if self is ConnectorOffset.LEFT:
            return ConnectorOffset.RIGHT
        if self is ConnectorOffset.RIGHT:
            return ConnectorOffset.LEFT
        return self


@dataclass(frozen=True)
class Connector:
    gender: ConnectorGender
    size: ConnectorSize
    offset: ConnectorOffset

    @classmethod
    def flat(cls) -> "Connector":
        return cls(ConnectorGender.FLAT, ConnectorSize.FLAT, ConnectorOffset.FLAT)

    @property
    def is_flat(self) -> bool:
        return self.gender is ConnectorGender.FLAT

    def fits(self, other: "Connector") -> bool:
        """Two flat edges mate; otherwise genders, offsets differ and sizes match."""
        if self.is_flat and other.is_flat:
            return True
        return (
            self.gender is not other.gender
            and self.size is other.size
            and self.offset is not other.offset
        )

    def mirrored(self) -> "Connector":
        return Connector(self.gender, self.size, self.offset.mirrored)

    def to_dict(self) -> Dict[str, str]:
        return {"gender": self.gender.value, "ctype": self.size.value, "offset": self.offset.value}

    def __str__(self) -> str:
        if self.is_flat:
            return "flat"
        return f"{self.gender.value}-{self.size.value}-{self.offset.value}"


class Color(Enum):
    GREEN = "green"
    YELLOW = "yellow"


Connectors = Tuple[Connector, Connector, Connector, Connector]
# One optional constraint per direction, None meaning "nothing there yet".
Neighborhood = Sequence[Optional[Connector]]

# Search order of the 8 orientations: (quarter turns, flipped).
ORIENTATIONS: List[Tuple[int, bool]] = [(r, False) for r in range(4)] + [(r, True) for r in range(4)]


def rotate_connectors(connectors: Sequence[Connector], times: int = 1) -> Connectors:
    out = tuple(connectors)
    for _ in range(times % 4):
        out = (out[-1],) + out[:-1]
    return out  # type: ignore[return-value]


def flip_connectors(connectors: Sequence[Connector]) -> Connectors:
    out = [c.mirrored() for c in connectors]
    out[Direction.LEFT], out[Direction.RIGHT] = out[Direction.RIGHT], out[Direction.LEFT]
    return tuple(out)  # type: ignore[return-value]


def connectors_fit(connectors: Sequence[Connector], neighborhood: Neighborhood) -> bool:
    for own, constraint in zip(connectors, neighborhood):
        if constraint is not None and not own.fits(constraint):
            return False
    return True


def orientation(piece: "Piece", rotations: int, flipped: bool) -> Connectors:
    """Connectors of ``piece`` after an optional flip and ``rotations`` quarter turns.

    Pure: the piece itself is left untouched.  Orientation is relative to the
    piece's current connector arrangement.
    """
    if not 0 <= rotations < 4:
        raise ValueError(f"rotations must be in 0..3, got {rotations}")
    base: Sequence[Connector] = piece.connectors
    if flipped:
        base = flip_connectors(base)
    return rotate_connectors(base, rotations)


@dataclass
class Piece:
    connectors: List[Connector]
    color: Color
    used: bool = False
    flipped: bool = False
    rotations: int = 0

    def __post_init__(self):
        self.connectors = list(self.connectors)
        if len(self.connectors) != len(Direction):
            raise ValueError(f"a piece needs exactly 4 connectors, got {len(self.connectors)}")

    def connector(self, direction: Direction) -> Connector:
        return self.connectors[direction]

    def rotate(self) -> None:
        self.connectors = list(rotate_connectors(self.connectors))
        self.rotations += 1

    def flip(self) -> None:
        self.connectors = list(flip_connectors(self.connectors))
        self.flipped = not self.flipped

    def fits(self, neighborhood: Neighborhood) -> bool:
        return connectors_fit(self.connectors, neighborhood)

    def first_fitting_orientation(self, neighborhood: Neighborhood) -> Optional[int]:
        """Index into :data:`ORIENTATIONS` of the first fitting orientation, if any."""
        for index, (rotations, flipped) in enumerate(ORIENTATIONS):
            if connectors_fit(orientation(self, rotations, flipped), neighborhood):
                return index
        return None

    def commit_orientation(self, index: Optional[int]) -> None:
        """Apply the rotate/flip moves the search makes to reach ``index``.

        ``None`` (nothing fitted) runs the whole cycle: four turns, flip, four
        turns, flip.  The connectors end where they started while the
        rotation counter grows by 8.
        """
        flips, turns = (2, 0) if index is None else divmod(index, 4)
        for _ in range(flips):
            for _ in range(4):
                self.rotate()
            self.flip()
        for _ in range(turns):
            self.rotate()

    def to_dict(self) -> Dict[str, object]:
        return {
            "color": self.color.value,
            "connectors": [c.to_dict() for c in self.connectors],
            "used": self.used,
            "flipped": self.flipped,
            "rotations": self.rotations,
        }
