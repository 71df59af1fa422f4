from collections import Counter

import numpy as np
import pytest

from rubik_cube.geometry import FACE_NORMALS
from rubik_cube.moves import Move, axis_vector, in_layer
from rubik_cube.piece_table import (IDENTITY_CELLS, PIECE_FACE_MOVES, SwipeDirection,
                                    candidate_move, piece_identity, swipe_vector)


def test_fifty_four_identities():
    assert len(IDENTITY_CELLS) == 54
    counts = Counter(ident.piece for ident in IDENTITY_CELLS)
    assert counts == {"corner": 24, "edge": 24, "center": 6}
    assert len(PIECE_FACE_MOVES) == 54 * 4


@pytest.mark.parametrize("cell,face,expected", [
    ((2, 2, 2), "front", "corner_RUF_front"),
    ((0, 0, 0), "left", "corner_LDB_left"),
    ((1, 2, 2), "top", "edge_MUF_top"),
    ((2, 1, 0), "back", "edge_REB_back"),
    ((0, 2, 1), "left", "edge_LUS_left"),
    ((1, 1, 2), "front", "center_F_front"),
    ((1, 0, 1), "bottom", "center_D_bottom"),
])
def test_identity_names(cell, face, expected):
    assert str(piece_identity(cell, face)) == expected


def test_hidden_faces_have_no_identity():
    assert piece_identity((2, 2, 2), "back") is None
    assert piece_identity((1, 1, 1), "front") is None
    assert piece_identity((1, 1, 2), "top") is None


def test_front_up_swipe_on_corner_is_r():
    ident = piece_identity((2, 2, 2), "front")
    assert candidate_move(ident, SwipeDirection.UP) == Move.parse("R")
    assert candidate_move(ident, SwipeDirection.DOWN) == Move.parse("R'")


@pytest.mark.parametrize("cell,face,direction,expected", [
    ((1, 1, 2), "front", SwipeDirection.UP, "M'"),
    ((1, 1, 2), "front", SwipeDirection.RIGHT, "E"),
    ((0, 0, 2), "front", SwipeDirection.RIGHT, "D"),
    ((2, 2, 2), "front", SwipeDirection.LEFT, "U"),
    ((2, 2, 2), "right", SwipeDirection.UP, "F'"),
    ((0, 2, 0), "top", SwipeDirection.UP, "L"),
])
def test_candidate_moves(cell, face, direction, expected):
    assert str(candidate_move(piece_identity(cell, face), direction)) == expected


def test_unknown_identity_has_no_candidate():
    assert candidate_move(None, SwipeDirection.UP) is None


def test_candidates_turn_the_pressed_piece():
    for (ident, direction), move in PIECE_FACE_MOVES.items():
        assert not move.is_whole_cube
        assert in_layer(move.base, IDENTITY_CELLS[ident])


def test_candidates_move_the_sticker_along_the_swipe():
    for (ident, direction), move in PIECE_FACE_MOVES.items():
        cell = np.array(IDENTITY_CELLS[ident], dtype=float) - 1
        sticker = cell + 0.5 * FACE_NORMALS[ident.face]
        omega = np.sign(move.angle) * axis_vector(move.base.axis)
        velocity = np.cross(omega, sticker)
        assert np.dot(velocity, swipe_vector(ident.face, direction)) > 0, (ident, direction, move)
