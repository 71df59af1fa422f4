"""
Drag-to-twist state machine.

    Idle -> Tracking -> Dragging -> Snapping -> Idle

Tracking waits for the drag to commit to a direction, Dragging turns the
layer live under the pointer, and Snapping eases it onto the nearest legal
quarter or half turn before handing the resulting move to the scheduler.
Each phase is its own dataclass carrying only what that phase needs.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

import numpy as np

from . import log
from .config import DEFAULT_GESTURE, GestureConfig
from .geometry import PerspectiveCamera, quat_from_axis_angle
from .gesture import (AxisLock, VelocityTracker, detect_clicked_face,
                      screen_basis, try_axis_lock, wrap_angle)
from .moves import Base, Modifier, Move, axis_vector
from .piece_table import PieceFaceId, piece_identity
from .scene import CubeScene, Node, PieceNode
from .scheduler import MoveScheduler, MoveSource

QUARTER = math.pi / 2


def ease_out_quad(p: float) -> float:
    return 1 - (1 - p) * (1 - p)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


# -----------------------------
# Phases
# -----------------------------
@dataclass
class Idle:
    pass


@dataclass
class Tracking:
    pointer_id: int
    piece: PieceNode
    ident: PieceFaceId
    start: np.ndarray
    current: np.ndarray
    last_update: float


@dataclass
class Dragging:
    pointer_id: int
    ident: PieceFaceId
    start: np.ndarray
    current: np.ndarray
    lock: AxisLock
    pieces: List[PieceNode]
    pivot: Node
    angle: float = 0.0
    velocity: VelocityTracker = field(default_factory=VelocityTracker)


@dataclass
class Snapping:
    lock: AxisLock
    pivot: Node
    start_angle: float
    target_angle: float
    move: Optional[Move]
    start_time: float
    duration: float
    angle: float = 0.0
    completed: bool = False


Phase = Union[Idle, Tracking, Dragging, Snapping]


@dataclass(frozen=True)
class SnapDecision:
    start_angle: float
    target_steps: int
    target_angle: float
    move: Optional[Move]
    duration: float
    flick: bool = False


def resolve_snap(angle: float, axis_px: float, axis_velocity: float, parity: int, base: Base,
                 config: GestureConfig = DEFAULT_GESTURE) -> SnapDecision:
    """Decide where a released layer settles and which move that is.

    ``angle`` is the layer's rotation about its positive axis, ``axis_px`` and
    ``axis_velocity`` the drag distance and speed along the locked screen axis.
    """
    angle = wrap_angle(angle)
    steps_float = angle / QUARTER
    target = round_half_up(steps_float)

    # A flick settles on the next quarter boundary in its own direction
    flick_dir = int(np.sign(axis_velocity * parity))
    flick = (flick_dir != 0 and abs(axis_px) > config.flick_min_px
             and abs(axis_velocity) > config.flick_min_velocity)
    if flick:
        target = math.ceil(steps_float) if flick_dir > 0 else math.floor(steps_float)
    target = max(-2, min(2, target))

    allow_half_turn = abs(steps_float) >= config.half_turn_steps and abs(axis_px) >= config.half_turn_min_px
    if abs(target) == 2 and not allow_half_turn:
        target = 1 if target > 0 else -1
    # A flicked quarter turn goes the way of the flick
    if flick and abs(target) == 1:
        target = flick_dir

    if target == 0:
        return SnapDecision(angle, 0, 0.0, None, config.snap_back_duration, flick)

    if abs(target) == 2:
        move = Move(base, Modifier.DOUBLE)
        target_angle = math.copysign(math.pi, target)
    else:
        move = Move(base, Modifier.NONE if target == base.sign else Modifier.PRIME)
        target_angle = target * QUARTER
    duration = config.snap_fast_duration if flick else config.snap_duration
    return SnapDecision(angle, target, target_angle, move, duration, flick)


class DragStateMachine:
    def __init__(self, scene: CubeScene, camera: PerspectiveCamera, scheduler: MoveScheduler,
                 config: GestureConfig = DEFAULT_GESTURE,
                 on_settled: Optional[Callable[[Optional[Move]], None]] = None) -> None:
        self.scene = scene
        self.camera = camera
        self.scheduler = scheduler
        self.config = config
        self.on_settled = on_settled
        self.phase: Phase = Idle()

    # -------- queries --------
    @property
    def pointer_id(self) -> Optional[int]:
        return getattr(self.phase, 'pointer_id', None)

    def is_idle(self) -> bool:
        return isinstance(self.phase, Idle)

    def is_dragging_slice(self) -> bool:
        return isinstance(self.phase, Dragging)

    def is_busy(self) -> bool:
        """A layer is off its grid position, live or snapping."""
        return isinstance(self.phase, (Dragging, Snapping))

    @property
    def angle(self) -> float:
        return getattr(self.phase, 'angle', 0.0)

    # -------- pointer input --------
    def pointer_down(self, pointer_id: int, piece: PieceNode, hit_local, x: float, y: float, now: float) -> bool:
        if not self.is_idle():
            return False
        face = detect_clicked_face(hit_local, self.scene.piece_center(piece))
        ident = piece_identity(piece.cell, face)
        if ident is None:
            return False
        start = np.array([x, y], dtype=float)
        self.phase = Tracking(pointer_id, piece, ident, start, start.copy(), now - self.config.pointer_throttle)
        log.LOGGER.log(logging.DEBUG, f"Pointer {pointer_id} down on {ident}")
        return True

    def pointer_move(self, pointer_id: int, x: float, y: float, now: float) -> None:
        phase = self.phase
        if isinstance(phase, Tracking) and phase.pointer_id == pointer_id:
            phase.current = np.array([x, y], dtype=float)
            if now - phase.last_update < self.config.pointer_throttle:
                return
            phase.last_update = now
            self._try_lock(phase, now)
        elif isinstance(phase, Dragging) and phase.pointer_id == pointer_id:
            phase.current = np.array([x, y], dtype=float)
            phase.velocity.add(now, phase.current)
            self._set_drag_angle(phase)

    def pointer_up(self, pointer_id: int, now: float) -> None:
        phase = self.phase
        if getattr(phase, 'pointer_id', None) != pointer_id:
            return
        if isinstance(phase, Tracking):
            self.phase = Idle()
        elif isinstance(phase, Dragging):
            delta = phase.current - phase.start
            decision = resolve_snap(phase.angle, phase.lock.axis_distance(delta),
                                    phase.velocity.axis_velocity(phase.lock.screen_axis),
                                    phase.lock.parity, phase.lock.base, self.config)
            log.LOGGER.log(logging.DEBUG, f"Release at {math.degrees(decision.start_angle):.1f} deg -> "
                                          f"{decision.target_steps} steps, move {decision.move}")
            self._start_snap(phase, decision, now)

    def abort(self, now: float) -> None:
        """Cancel the gesture. A turning layer snaps back with no move."""
        phase = self.phase
        if isinstance(phase, Tracking):
            self.phase = Idle()
        elif isinstance(phase, Dragging):
            decision = SnapDecision(wrap_angle(phase.angle), 0, 0.0, None, self.config.snap_back_duration)
            self._start_snap(phase, decision, now)

    def reset(self) -> None:
        """Drop the gesture on the spot, without snapping or committing."""
        phase = self.phase
        if isinstance(phase, (Dragging, Snapping)):
            self.scene.release_pivot(phase.pivot)
            self.scene.reset_pieces()
            self.scheduler.lock.unlock()
        self.phase = Idle()

    # -------- per frame --------
    def update(self, now: float) -> None:
        phase = self.phase
        if not isinstance(phase, Snapping) or phase.completed:
            return
        p = 1.0 if phase.duration <= 0 else min(1.0, max(0.0, (now - phase.start_time) / phase.duration))
        phase.angle = phase.start_angle + (phase.target_angle - phase.start_angle) * ease_out_quad(p)
        phase.pivot.quaternion = quat_from_axis_angle(axis_vector(phase.lock.axis), phase.angle)
        if p >= 1.0:
            self._complete(phase, now)

    # -------- internals --------
    def _try_lock(self, phase: Tracking, now: float) -> None:
        delta = phase.current - phase.start
        if float(np.dot(delta, delta)) < self.config.noise_threshold_px ** 2:
            return
        basis = screen_basis(self.camera, self.scene.root.world_position(),
                             self.scene.root.world_quaternion(), phase.ident.face)
        lock = try_axis_lock(phase.ident, delta, basis, self.config.lock_threshold_px)
        if lock is None:
            return
        if not self.scheduler.try_lock_for_drag():
            # Another turn is animating; keep tracking and retry on the next move
            return
        pieces = self.scene.pieces_in_layer(lock.base)
        pivot = self.scene.make_pivot(pieces)
        dragging = Dragging(phase.pointer_id, phase.ident, phase.start, phase.current, lock, pieces, pivot,
                            velocity=VelocityTracker(self.config.velocity_samples, self.config.velocity_window))
        dragging.velocity.add(now, phase.current)
        self.phase = dragging
        log.LOGGER.log(logging.DEBUG, f"Locked {lock.axis_type.value} {lock.direction.value} "
                                      f"on {phase.ident} -> {lock.candidate}")
        self._set_drag_angle(dragging)

    def _set_drag_angle(self, phase: Dragging) -> None:
        distance = phase.lock.axis_distance(phase.current - phase.start)
        phase.angle = self.config.drag_sensitivity * distance * phase.lock.parity
        phase.pivot.quaternion = quat_from_axis_angle(axis_vector(phase.lock.axis), phase.angle)

    def _start_snap(self, phase: Dragging, decision: SnapDecision, now: float) -> None:
        self.phase = Snapping(phase.lock, phase.pivot, decision.start_angle, decision.target_angle,
                              decision.move, now, decision.duration, angle=decision.start_angle)

    def _complete(self, phase: Snapping, now: float) -> None:
        phase.completed = True
        self.scene.release_pivot(phase.pivot)
        try:
            if phase.move is not None:
                self.scheduler.commit(phase.move, now, MoveSource.DRAG)
        finally:
            self.scene.reset_pieces()
            self.scheduler.lock.unlock()
            self.phase = Idle()
        if self.on_settled is not None:
            self.on_settled(phase.move)
