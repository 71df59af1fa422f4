"""
Timed turn animation for queued and keyboard moves.

A layer turn parents the layer's pieces to a pivot at the cube origin and
rotates the pivot. A whole-cube turn (x, y, z) rotates the cube node itself.
Progress is computed from elapsed time, so frame rate does not change how
long a turn takes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from . import log
from .config import DEFAULT_ANIMATION, AnimationConfig
from .geometry import quat_from_axis_angle, quat_multiply
from .moves import CubeError, Move, axis_and_angle
from .scene import CubeScene, Node, PieceNode


def ease_in_out_cubic(p: float) -> float:
    if p < 0.5:
        return 4 * p * p * p
    return 1 - (-2 * p + 2) ** 3 / 2


@dataclass
class ActiveAnim:
    move: Move
    axis: np.ndarray
    total_angle: float
    start_time: float
    duration: float
    on_complete: Optional[Callable[[Move, float], None]] = None
    pivot: Optional[Node] = None
    pieces: List[PieceNode] = field(default_factory=list)
    base_orientation: Optional[np.ndarray] = None
    angle: float = 0.0
    done: bool = False


class MoveAnimator:
    def __init__(self, scene: CubeScene, config: AnimationConfig = DEFAULT_ANIMATION) -> None:
        self.scene = scene
        self.config = config
        self.active: Optional[ActiveAnim] = None

    @property
    def busy(self) -> bool:
        return self.active is not None

    def start(self, move: Move, now: float, on_complete: Optional[Callable[[Move, float], None]] = None) -> ActiveAnim:
        if self.active is not None:
            raise CubeError(f"cannot start {move} while {self.active.move} is animating")
        axis, total = axis_and_angle(move)
        anim = ActiveAnim(move, axis, total, now, self.config.move_duration, on_complete)
        if move.is_whole_cube:
            anim.base_orientation = self.scene.root.quaternion.copy()
        else:
            anim.pieces = self.scene.pieces_in_layer(move.base)
            anim.pivot = self.scene.make_pivot(anim.pieces)
        self.active = anim
        log.LOGGER.log(logging.DEBUG, f"Animating {move}")
        return anim

    def update(self, now: float) -> Optional[Move]:
        """Advance the active turn; returns the move on the frame it finishes."""
        anim = self.active
        if anim is None:
            return None
        p = 1.0 if anim.duration <= 0 else min(1.0, max(0.0, (now - anim.start_time) / anim.duration))
        anim.angle = anim.total_angle * ease_in_out_cubic(p)
        self._apply(anim, anim.angle)
        if p < 1.0:
            return None
        self._finish(anim)
        if anim.on_complete is not None:
            anim.on_complete(anim.move, now)
        return anim.move

    def cancel(self) -> None:
        """Drop the active turn without completing it."""
        anim = self.active
        if anim is None:
            return
        self._apply(anim, 0.0)
        self._finish(anim)

    def _apply(self, anim: ActiveAnim, angle: float) -> None:
        q = quat_from_axis_angle(anim.axis, angle)
        if anim.pivot is not None:
            anim.pivot.quaternion = q
        else:
            # about the cube's own axis, wherever the cube currently faces
            self.scene.root.quaternion = quat_multiply(anim.base_orientation, q)

    def _finish(self, anim: ActiveAnim) -> None:
        if anim.done:
            return
        anim.done = True
        if anim.pivot is not None:
            self.scene.release_pivot(anim.pivot)
        else:
            # the recolor on commit carries the turn from here on
            self.scene.root.quaternion = anim.base_orientation
        self.active = None
