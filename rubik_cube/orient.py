"""
Whole-cube rotations that bring the cube back to the reference orientation:
white center on top, green center in front.
"""
from __future__ import annotations

from typing import Dict, List

from .engine import ORIENT_MAPS, PermutationEngine
from .moves import MOVE_DEFS, Move, parse_moves

TOP_COLOR = 'U'      # white
FRONT_COLOR = 'F'    # green

_TOP_CANDIDATES = [parse_moves(s) for s in ("", "x", "x'", "x x", "z", "z'")]
_FRONT_CANDIDATES = [parse_moves(s) for s in ("", "y", "y'", "y y")]


def rotate_centers(centers: Dict[str, str], move: Move) -> Dict[str, str]:
    """Center colors by face after the whole-cube ``move``."""
    axis, _, sign = MOVE_DEFS[move.base]
    mapping = ORIENT_MAPS[(axis, sign * move.direction)]
    for _ in range(move.quarter_turns):
        centers = {mapping[face]: color for face, color in centers.items()}
    return centers


def _first_fit(centers: Dict[str, str], candidates, face: str, color: str) -> List[Move]:
    for seq in candidates:
        rotated = centers
        for move in seq:
            rotated = rotate_centers(rotated, move)
        if rotated[face] == color:
            return list(seq)
    raise ValueError(f"no rotation brings {color} to {face}")


def auto_orient_moves(engine: PermutationEngine) -> List[Move]:
    centers = engine.center_colors()
    moves = _first_fit(centers, _TOP_CANDIDATES, 'U', TOP_COLOR)
    for move in moves:
        centers = rotate_centers(centers, move)
    return moves + _first_fit(centers, _FRONT_CANDIDATES, 'F', FRONT_COLOR)
