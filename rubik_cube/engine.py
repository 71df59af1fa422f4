"""
Logical cube state: 27 cubelets on a 3x3x3 grid with sticker colors.

The engine never animates. The scheduler's commit step is the only caller of
``apply_move`` during a session, so what this module holds is always the
state of the last fully finished turn.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from . import log
from .moves import FACE_BASES, MOVE_DEFS, Base, Modifier, Move, in_layer, parse_moves

Cell = Tuple[int, int, int]

FACES = ['U', 'R', 'F', 'D', 'L', 'B']

# Outward direction of each face in grid space
DIRECTIONS: Dict[str, Tuple[int, int, int]] = {
    'U': (0, 1, 0),
    'D': (0, -1, 0),
    'L': (-1, 0, 0),
    'R': (1, 0, 0),
    'F': (0, 0, 1),
    'B': (0, 0, -1),
}
_FACE_BY_DIRECTION = {v: k for k, v in DIRECTIONS.items()}

CENTER_CELLS: Dict[str, Cell] = {f: (1 + d[0], 1 + d[1], 1 + d[2]) for f, d in DIRECTIONS.items()}


def _rot_vec_about_axis(vec: Tuple[int, int, int], axis: str, sign: int) -> Tuple[int, int, int]:
    """Rotate an integer vector by +/-90 degrees about a principal axis."""
    x, y, z = vec
    if axis == 'y':  # (x,z) -> (z,-x) for +90
        return (z, y, -x) if sign > 0 else (-z, y, x)
    if axis == 'x':  # (y,z) -> (-z,y) for +90
        return (x, -z, y) if sign > 0 else (x, z, -y)
    # z: (x,y) -> (-y,x) for +90
    return (-y, x, z) if sign > 0 else (y, -x, z)


def _orient_map(axis: str, sign: int) -> Dict[str, str]:
    return {f: _FACE_BY_DIRECTION[_rot_vec_about_axis(d, axis, sign)] for f, d in DIRECTIONS.items()}


# Where each sticker direction ends up after a quarter turn, keyed by (axis, sign)
ORIENT_MAPS = {(axis, sign): _orient_map(axis, sign) for axis in 'xyz' for sign in (+1, -1)}


def _facelet_cells() -> List[Tuple[str, Cell]]:
    """(face, cell) for each of the 54 facelets in URFDLB reading order."""
    layout = {
        'U': lambda r, c: (c, 2, r),
        'R': lambda r, c: (2, 2 - r, 2 - c),
        'F': lambda r, c: (c, 2 - r, 2),
        'D': lambda r, c: (c, 0, 2 - r),
        'L': lambda r, c: (0, 2 - r, c),
        'B': lambda r, c: (2 - c, 2 - r, 0),
    }
    return [(face, layout[face](r, c)) for face in FACES for r in range(3) for c in range(3)]


FACELET_CELLS = _facelet_cells()


@dataclass
class Cubelet:
    pos: Cell                                             # grid coords, each in {0,1,2}
    faces: Dict[str, str] = field(default_factory=dict)   # outward direction -> color letter


def piece_class(cell: Cell) -> str:
    outer = sum(1 for c in cell if c != 1)
    return ('core', 'center', 'edge', 'corner')[outer]


class Solver:
    """Anything that turns a 54 character URFDLB facelet string into a move string."""

    def solve(self, facelets: str) -> str:
        raise NotImplementedError


class KociembaSolver(Solver):
    def solve(self, facelets: str) -> str:
        import kociemba
        return kociemba.solve(facelets)


class PermutationEngine:
    def __init__(self, solver: Optional[Solver] = None, rng: Optional[random.Random] = None) -> None:
        self.solver = solver if solver is not None else KociembaSolver()
        self.rng = rng if rng is not None else random.Random()
        self.cubelets: List[Cubelet] = []
        self.reset()

    def reset(self) -> None:
        """Recreate all 27 cubelets in the solved state."""
        self.cubelets = []
        for x in range(3):
            for y in range(3):
                for z in range(3):
                    faces: Dict[str, str] = {}
                    if y == 2: faces['U'] = 'U'
                    if y == 0: faces['D'] = 'D'
                    if x == 0: faces['L'] = 'L'
                    if x == 2: faces['R'] = 'R'
                    if z == 2: faces['F'] = 'F'
                    if z == 0: faces['B'] = 'B'
                    self.cubelets.append(Cubelet((x, y, z), faces))
        self._index()

    def _index(self) -> None:
        self._by_pos = {c.pos: c for c in self.cubelets}

    def cubelet_at(self, cell: Cell) -> Cubelet:
        return self._by_pos[tuple(cell)]

    def cell_colors(self, cell: Cell) -> Dict[str, str]:
        return dict(self.cubelet_at(cell).faces)

    # -------- Rotation helpers --------
    @staticmethod
    def _rot_pos_about_axis(pos: Cell, axis: str, sign: int) -> Cell:
        ox, oy, oz = _rot_vec_about_axis((pos[0] - 1, pos[1] - 1, pos[2] - 1), axis, sign)
        return (ox + 1, oy + 1, oz + 1)

    @staticmethod
    def _rot_faces(faces: Dict[str, str], axis: str, sign: int) -> Dict[str, str]:
        src = ORIENT_MAPS[(axis, sign)]
        return {src[f]: color for f, color in faces.items()}

    def apply_move(self, move) -> None:
        """Apply ``move`` (a Move or a token) to the logical state immediately."""
        if not isinstance(move, Move):
            move = Move.parse(move)
        axis, _, sign = MOVE_DEFS[move.base]
        sign *= move.direction
        turning = [c for c in self.cubelets if in_layer(move.base, c.pos)]
        for _ in range(move.quarter_turns):
            for cubie in turning:
                cubie.pos = self._rot_pos_about_axis(cubie.pos, axis, sign)
                cubie.faces = self._rot_faces(cubie.faces, axis, sign)
        self._index()

    def apply_moves(self, moves) -> None:
        for move in parse_moves(moves):
            self.apply_move(move)

    # -------- Queries --------
    def sticker(self, face: str, cell: Cell) -> str:
        return self.cubelet_at(cell).faces[face]

    def get_state(self) -> str:
        """54 character facelet string of colors in URFDLB order."""
        return ''.join(self.sticker(face, cell) for face, cell in FACELET_CELLS)

    def is_solved(self) -> bool:
        """Every face shows a single color, whatever the cube's orientation."""
        state = self.get_state()
        return all(len(set(state[i:i + 9])) == 1 for i in range(0, 54, 9))

    def center_colors(self) -> Dict[str, str]:
        return {face: self.sticker(face, cell) for face, cell in CENTER_CELLS.items()}

    def center_face_of(self, color: str) -> str:
        """Which face currently carries the center of ``color``."""
        for face, c in self.center_colors().items():
            if c == color:
                return face
        raise KeyError(color)

    def solver_facelets(self) -> str:
        """State relabelled by the current centers, as the solver expects."""
        by_color = {color: face for face, color in self.center_colors().items()}
        return ''.join(by_color[c] for c in self.get_state())

    # -------- Scramble / solve --------
    def generate_scramble(self, n: int = 25, max_attempts: int = 20) -> List[Move]:
        """``n`` random face turns, avoiding a repeat of the previous face or axis.

        After ``max_attempts`` rejected draws the last candidate is kept, so a
        repeat is possible in principle but the call always terminates.
        """
        seq: List[Move] = []
        last: Optional[Base] = None
        modifiers = list(Modifier)
        for _ in range(max(0, int(n))):
            base = self.rng.choice(FACE_BASES)
            attempts = 1
            while last is not None and (base is last or base.axis == last.axis) and attempts < max_attempts:
                base = self.rng.choice(FACE_BASES)
                attempts += 1
            seq.append(Move(base, self.rng.choice(modifiers)))
            last = base
        return seq

    def solve(self) -> List[Move]:
        """Moves that solve the current state, or [] if solved or the solver fails."""
        if self.is_solved():
            return []
        return self.solve_facelets(self.solver_facelets())

    def solve_facelets(self, facelets: str) -> List[Move]:
        """Run the solver on a facelet string; [] if it fails.

        Only reads ``self.solver``, so it is safe to call from a worker thread.
        """
        try:
            solution = parse_moves(self.solver.solve(facelets))
        except Exception as e:
            log.LOGGER.log(logging.WARNING, f"Solver failed for {facelets}: {e}")
            return []
        log.LOGGER.log(logging.DEBUG, f"Solver returned {len(solution)} moves")
        return solution
