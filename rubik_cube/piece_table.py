"""
Piece-face identities and the (identity, swipe) -> candidate move table.

An identity names a sticker slot by where it sits on the cube, never by its
color, so the table is fixed for the whole session. It is built once from the
face tangents: swiping a sticker along ``d`` on a face with normal ``n`` turns
the layer about the dominant component of ``n x d``.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .engine import piece_class
from .geometry import FACE_NORMALS, face_basis
from .moves import Modifier, Move, layer_base

Cell = Tuple[int, int, int]


class SwipeDirection(enum.Enum):
    UP = 'up'
    DOWN = 'down'
    LEFT = 'left'
    RIGHT = 'right'


# Outward face name -> (axis index, grid coordinate) where that face is exposed
_FACE_SIDE = {
    'right': (0, 2), 'left': (0, 0),
    'top': (1, 2), 'bottom': (1, 0),
    'front': (2, 2), 'back': (2, 0),
}


@dataclass(frozen=True)
class PieceFaceId:
    piece: str          # corner / edge / center
    code: str           # cardinal letters, e.g. "RUF", "MUF", "F"
    face: str           # front / back / left / right / top / bottom

    def __str__(self):
        return f"{self.piece}_{self.code}_{self.face}"


def is_exposed(cell: Cell, face: str) -> bool:
    axis, coord = _FACE_SIDE[face]
    return cell[axis] == coord


def _letter(offset: int, pos: str, neg: str, mid: str = '') -> str:
    return pos if offset > 0 else neg if offset < 0 else mid


def position_code(cell: Cell) -> str:
    ox, oy, oz = cell[0] - 1, cell[1] - 1, cell[2] - 1
    kind = piece_class(cell)
    if kind == 'corner':
        return _letter(ox, 'R', 'L') + _letter(oy, 'U', 'D') + _letter(oz, 'F', 'B')
    if kind == 'edge':
        return _letter(ox, 'R', 'L', 'M') + _letter(oy, 'U', 'D', 'E') + _letter(oz, 'F', 'B', 'S')
    if kind == 'center':
        return _letter(ox, 'R', 'L') + _letter(oy, 'U', 'D') + _letter(oz, 'F', 'B')
    return ''


def piece_identity(cell: Cell, face: str) -> Optional[PieceFaceId]:
    """Identity of the sticker slot on ``face`` of ``cell``, None if not exposed."""
    if face not in _FACE_SIDE or not is_exposed(cell, face):
        return None
    return PieceFaceId(piece_class(cell), position_code(cell), face)


def swipe_vector(face: str, direction: SwipeDirection) -> np.ndarray:
    right, up = face_basis(face)
    return {
        SwipeDirection.RIGHT: right,
        SwipeDirection.LEFT: -right,
        SwipeDirection.UP: up,
        SwipeDirection.DOWN: -up,
    }[direction]


def _twist_for(cell: Cell, face: str, direction: SwipeDirection) -> Move:
    omega = np.cross(FACE_NORMALS[face], swipe_vector(face, direction))
    axis_i = int(np.argmax(np.abs(omega)))
    axis = 'xyz'[axis_i]
    base = layer_base(axis, cell[axis_i])
    turn = 1 if omega[axis_i] > 0 else -1
    return Move(base, Modifier.NONE if turn == base.sign else Modifier.PRIME)


def _identities():
    for x in range(3):
        for y in range(3):
            for z in range(3):
                for face in _FACE_SIDE:
                    ident = piece_identity((x, y, z), face)
                    if ident is not None:
                        yield (x, y, z), ident


# Every identity keyed to its cell
IDENTITY_CELLS: Dict[PieceFaceId, Cell] = {ident: cell for cell, ident in _identities()}

PIECE_FACE_MOVES: Dict[Tuple[PieceFaceId, SwipeDirection], Move] = {
    (ident, direction): _twist_for(cell, ident.face, direction)
    for cell, ident in _identities()
    for direction in SwipeDirection
}


def candidate_move(ident: Optional[PieceFaceId], direction: SwipeDirection) -> Optional[Move]:
    if ident is None:
        return None
    return PIECE_FACE_MOVES.get((ident, direction))
