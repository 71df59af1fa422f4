"""
Pointer-level gesture helpers: which face was pressed, which way the drag is
heading relative to that face on screen, and how fast it was moving.
"""
from __future__ import annotations

import enum
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Tuple

import numpy as np

from .geometry import PerspectiveCamera, face_basis, normalize, project_local_dir_to_screen
from .moves import Base, Move
from .piece_table import PieceFaceId, SwipeDirection, candidate_move

# Sign flips between a screen-projected drag and the rotation it should produce,
# keyed by (pressed face, rotation axis). Pairs not listed use +1.
DRAG_PARITY = {
    ('front', 'x'): -1,
    ('left', 'z'): -1,
    ('bottom', 'y'): -1,
    ('bottom', 'x'): -1,
}


def drag_parity(face: str, axis: str) -> int:
    return DRAG_PARITY.get((face, axis), +1)


class AxisType(enum.Enum):
    HORIZONTAL = 'horizontal'
    VERTICAL = 'vertical'


def detect_clicked_face(hit_local, piece_center_local) -> str:
    """Face of a piece under the hit point, by the dominant offset component."""
    offset = np.asarray(hit_local, dtype=float) - np.asarray(piece_center_local, dtype=float)
    i = int(np.argmax(np.abs(offset)))
    if i == 0:
        return 'right' if offset[0] > 0 else 'left'
    if i == 1:
        return 'top' if offset[1] > 0 else 'bottom'
    return 'front' if offset[2] > 0 else 'back'


@dataclass(frozen=True)
class ScreenBasis:
    right: np.ndarray   # unit screen vector of the face's local "right"
    up: np.ndarray      # unit screen vector of the face's local "up"

    def components(self, delta) -> Tuple[float, float]:
        d = np.asarray(delta, dtype=float)
        return float(np.dot(d, self.right)), float(np.dot(d, self.up))


def screen_basis(camera: PerspectiveCamera, origin_world, orientation, face: str) -> ScreenBasis:
    """Project the face tangents of ``face`` into the current screen."""
    right, up = face_basis(face)
    s_right = project_local_dir_to_screen(camera, origin_world, orientation, right)
    s_up = project_local_dir_to_screen(camera, origin_world, orientation, up)
    return ScreenBasis(normalize(s_right), normalize(s_up))


@dataclass(frozen=True)
class AxisLock:
    axis_type: AxisType
    direction: SwipeDirection
    candidate: Move
    screen_axis: np.ndarray     # unit screen vector the drag is measured along
    parity: int

    @property
    def base(self) -> Base:
        return self.candidate.base

    @property
    def axis(self) -> str:
        return self.candidate.base.axis

    @property
    def expected_sign(self) -> int:
        return self.candidate.base.sign

    def axis_distance(self, delta) -> float:
        """Signed drag distance along the locked screen axis, in pixels."""
        return float(np.dot(np.asarray(delta, dtype=float), self.screen_axis))


def try_axis_lock(ident: PieceFaceId, delta, basis: ScreenBasis, threshold_px: float) -> Optional[AxisLock]:
    """Lock a drag onto a twist, or None while it is too short or has no twist."""
    h, v = basis.components(delta)
    if max(abs(h), abs(v)) <= threshold_px:
        return None
    if abs(h) >= abs(v):
        axis_type = AxisType.HORIZONTAL
        direction = SwipeDirection.RIGHT if h > 0 else SwipeDirection.LEFT
        screen_axis = basis.right
    else:
        axis_type = AxisType.VERTICAL
        direction = SwipeDirection.UP if v > 0 else SwipeDirection.DOWN
        screen_axis = basis.up
    move = candidate_move(ident, direction)
    if move is None:
        return None
    return AxisLock(axis_type, direction, move, screen_axis, drag_parity(ident.face, move.base.axis))


class VelocityTracker:
    """Trailing (time, position) samples of one pointer."""

    def __init__(self, max_samples: int = 6, window: float = 0.040) -> None:
        self.window = window
        self.samples: Deque[Tuple[float, np.ndarray]] = deque(maxlen=max_samples)

    def add(self, t: float, pos) -> None:
        self.samples.append((t, np.asarray(pos, dtype=float)))

    def clear(self) -> None:
        self.samples.clear()

    def velocity(self) -> np.ndarray:
        """Pixels per second, measured against a sample at least ``window`` old if there is one."""
        if len(self.samples) < 2:
            return np.zeros(2)
        t1, p1 = self.samples[-1]
        ref = self.samples[-2]
        for t0, p0 in reversed(list(self.samples)[:-1]):
            if t1 - t0 >= self.window:
                ref = (t0, p0)
                break
        t0, p0 = ref
        dt = t1 - t0
        if dt <= 0:
            return np.zeros(2)
        return (p1 - p0) / dt

    def axis_velocity(self, screen_axis) -> float:
        return float(np.dot(self.velocity(), screen_axis))


def wrap_angle(angle: float) -> float:
    """Normalize to (-pi, pi]."""
    a = math.fmod(angle, 2 * math.pi)
    if a <= -math.pi:
        a += 2 * math.pi
    elif a > math.pi:
        a -= 2 * math.pi
    return a
