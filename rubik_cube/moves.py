"""
Move notation and the axis/sign table every animated or logical turn goes through.

Coordinates: x points right, y up, z toward the viewer (out of the front face).
A positive angle is a right-handed rotation about the axis. The sign in
``MOVE_DEFS`` is the direction of the unprimed move, so ``U`` (clockwise seen
from above) is a negative rotation about +y.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np


class CubeError(Exception):
    pass


class InvalidMoveError(CubeError, ValueError):
    """Raised for a move token that is not in the closed move set."""


class Base(enum.Enum):
    U = 'U'
    D = 'D'
    L = 'L'
    R = 'R'
    F = 'F'
    B = 'B'
    M = 'M'
    E = 'E'
    S = 'S'
    x = 'x'
    y = 'y'
    z = 'z'

    @property
    def axis(self) -> str:
        return MOVE_DEFS[self][0]

    @property
    def layer(self) -> Optional[int]:
        return MOVE_DEFS[self][1]

    @property
    def sign(self) -> int:
        return MOVE_DEFS[self][2]

    @property
    def is_whole_cube(self) -> bool:
        return self in WHOLE_CUBE_BASES

    @property
    def is_slice(self) -> bool:
        return self in SLICE_BASES

    @property
    def is_face(self) -> bool:
        return self in FACE_BASES


class Modifier(enum.Enum):
    NONE = ''
    PRIME = "'"
    DOUBLE = '2'


# Axis vectors used for rotations
AXIS = {
    'x': (1.0, 0.0, 0.0),
    'y': (0.0, 1.0, 0.0),
    'z': (0.0, 0.0, 1.0),
}
AXIS_INDEX = {'x': 0, 'y': 1, 'z': 2}

# Mapping of move -> (axis, layer grid coordinate or None for the whole cube, sign)
MOVE_DEFS: Dict[Base, Tuple[str, Optional[int], int]] = {
    Base.U: ('y', 2, -1),
    Base.D: ('y', 0, +1),
    Base.R: ('x', 2, -1),
    Base.L: ('x', 0, +1),
    Base.F: ('z', 2, -1),
    Base.B: ('z', 0, +1),
    Base.M: ('x', 1, +1),
    Base.E: ('y', 1, +1),
    Base.S: ('z', 1, -1),
    Base.x: ('x', None, -1),
    Base.y: ('y', None, -1),
    Base.z: ('z', None, -1),
}

FACE_BASES = (Base.U, Base.D, Base.L, Base.R, Base.F, Base.B)
SLICE_BASES = (Base.M, Base.E, Base.S)
WHOLE_CUBE_BASES = (Base.x, Base.y, Base.z)

# Letter naming the layer at each coordinate of each axis
LAYER_BASES: Dict[str, Tuple[Base, Base, Base]] = {
    'x': (Base.L, Base.M, Base.R),
    'y': (Base.D, Base.E, Base.U),
    'z': (Base.B, Base.S, Base.F),
}

_MODIFIER_SUFFIXES = {
    '': Modifier.NONE,
    "'": Modifier.PRIME,
    '2': Modifier.DOUBLE,
    "2'": Modifier.DOUBLE,
    "'2": Modifier.DOUBLE,
}


@dataclass(frozen=True)
class Move:
    base: Base
    modifier: Modifier = Modifier.NONE

    @classmethod
    def parse(cls, token: str) -> 'Move':
        if not isinstance(token, str):
            raise InvalidMoveError(f"move token must be a string, got {token!r}")
        token = token.strip().replace('’', "'")
        if not token:
            raise InvalidMoveError("empty move token")
        try:
            base = Base(token[0])
        except ValueError:
            raise InvalidMoveError(f"unknown move letter in {token!r}") from None
        modifier = _MODIFIER_SUFFIXES.get(token[1:])
        if modifier is None:
            raise InvalidMoveError(f"unknown move modifier in {token!r}")
        return cls(base, modifier)

    @property
    def is_prime(self) -> bool:
        return self.modifier is Modifier.PRIME

    @property
    def is_double(self) -> bool:
        return self.modifier is Modifier.DOUBLE

    @property
    def quarter_turns(self) -> int:
        return 2 if self.is_double else 1

    @property
    def direction(self) -> int:
        return -1 if self.is_prime else +1

    @property
    def is_whole_cube(self) -> bool:
        return self.base.is_whole_cube

    @property
    def angle(self) -> float:
        """Signed total rotation about the positive axis, in radians."""
        return self.base.sign * self.direction * self.quarter_turns * math.pi / 2

    def inverse(self) -> 'Move':
        if self.modifier is Modifier.NONE:
            return Move(self.base, Modifier.PRIME)
        if self.modifier is Modifier.PRIME:
            return Move(self.base, Modifier.NONE)
        return self

    def __str__(self):
        return self.base.value + self.modifier.value


def parse_moves(text) -> List[Move]:
    """Parse a whitespace separated move string (or an iterable of tokens)."""
    tokens = text.split() if isinstance(text, str) else text
    return [tok if isinstance(tok, Move) else Move.parse(tok) for tok in tokens]


def format_moves(moves: Iterable[Move]) -> str:
    return ' '.join(str(m) for m in moves)


def invert_sequence(moves: Iterable[Move]) -> List[Move]:
    return [m.inverse() for m in reversed(list(moves))]


def axis_vector(axis: str) -> np.ndarray:
    return np.array(AXIS[axis], dtype=float)


def axis_and_angle(move: Move) -> Tuple[np.ndarray, float]:
    """Unit rotation axis and signed total angle for ``move``."""
    return axis_vector(move.base.axis), move.angle


def in_layer(base: Base, cell: Tuple[int, int, int]) -> bool:
    """Whether the cell at grid coords ``cell`` turns with ``base``."""
    axis, layer, _ = MOVE_DEFS[base]
    if layer is None:
        return True
    return cell[AXIS_INDEX[axis]] == layer


def layer_base(axis: str, coord: int) -> Base:
    return LAYER_BASES[axis][coord]
