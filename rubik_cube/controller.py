"""
The cube's imperative handle. Owns the engine, scene, scheduler, animator and
drag machine, routes pointer input between them, and is advanced once per
rendered frame with ``update``.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from . import config, log
from .animator import MoveAnimator
from .config import DEFAULT_ANIMATION, DEFAULT_GESTURE, AnimationConfig, GestureConfig
from .drag import DragStateMachine
from .engine import PermutationEngine
from .geometry import (PerspectiveCamera, quat_from_axis_angle, quat_identity,
                       quat_multiply, quat_normalize, quat_slerp)
from .history import MoveHistory
from .moves import Move, format_moves
from .orient import auto_orient_moves
from .scene import CubeScene, PieceNode
from .scheduler import MoveScheduler, MoveSource, RunTag, wait_until
from .spin import TwoFingerSpin


@dataclass
class _DeferredPress:
    pointer_id: int
    piece: PieceNode
    hit_local: np.ndarray
    start: Tuple[float, float]
    current: Tuple[float, float]
    time: float


@dataclass
class _OrientationReset:
    start_quat: np.ndarray
    start_time: float
    duration: float


class CubeController:
    def __init__(self, engine: Optional[PermutationEngine] = None, scene: Optional[CubeScene] = None,
                 camera: Optional[PerspectiveCamera] = None, scheduler: Optional[MoveScheduler] = None,
                 gesture_config: GestureConfig = DEFAULT_GESTURE,
                 animation_config: AnimationConfig = DEFAULT_ANIMATION,
                 clock: Callable[[], float] = time.monotonic,
                 on_orbit_toggle: Optional[Callable[[bool], None]] = None) -> None:
        self.engine = engine if engine is not None else PermutationEngine()
        self.scene = scene if scene is not None else CubeScene()
        self.camera = camera if camera is not None else PerspectiveCamera(config.WINDOW_W, config.WINDOW_H, config.FOV_DEG)
        self.scheduler = scheduler if scheduler is not None else MoveScheduler(self.engine, config=animation_config)
        self.animator = MoveAnimator(self.scene, animation_config)
        self.drag = DragStateMachine(self.scene, self.camera, self.scheduler, gesture_config,
                                     on_settled=self._on_drag_settled)
        self.spin = TwoFingerSpin(gesture_config.spin_start_delay)
        self.history = MoveHistory()
        self.clock = clock
        self.on_orbit_toggle = on_orbit_toggle

        self._gesture_config = gesture_config
        self._animation_config = animation_config
        self.fast_mode = False
        self.orbit_enabled = True
        self.move_count = 0

        self._pointers = set()
        self._deferred: Optional[_DeferredPress] = None
        self._solution: Optional[Tuple[str, List[Move]]] = None
        self._orientation_reset: Optional[_OrientationReset] = None

        self.scheduler.register_commit_handler(self._on_commit)

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    # -------- state queries --------
    @property
    def is_animating(self) -> bool:
        return self.scheduler.lock.locked or self.drag.is_busy() or self.animator.busy

    def is_dragging_slice(self) -> bool:
        return self.drag.is_dragging_slice()

    def get_current_rotation(self) -> np.ndarray:
        return self.scene.root.quaternion.copy()

    def set_fast_mode(self, enabled: bool) -> None:
        self.fast_mode = bool(enabled)
        self.drag.config = self._gesture_config.fast() if enabled else self._gesture_config
        self.animator.config = self._animation_config.fast() if enabled else self._animation_config
        log.LOGGER.log(logging.INFO, f"Fast mode {'on' if enabled else 'off'}")

    # -------- scene registration --------
    def on_mesh_ready(self, mesh, gx: int, gy: int, gz: int) -> PieceNode:
        return self.scene.on_mesh_ready(mesh, gx, gy, gz)

    # -------- boundary hit testing --------
    def _set_orbit(self, enabled: bool) -> None:
        if enabled == self.orbit_enabled:
            return
        self.orbit_enabled = enabled
        if self.on_orbit_toggle is not None:
            self.on_orbit_toggle(enabled)

    def handle_pointer_down(self, x: float, y: float, pointer_id: int = 0, now: Optional[float] = None,
                            touch: bool = False) -> bool:
        """Entry point for every press. Returns True when it landed on the cube."""
        now = self._now(now)
        self._pointers.add(pointer_id)
        if touch:
            self.spin.touch_down(pointer_id, x, y, now)
        hit = self.scene.raycast(*self.camera.ray(x, y)) if self.scene.ready else None
        if hit is not None or self.spin.count >= 2:
            self._set_orbit(False)
        if hit is None:
            return False
        if self.spin.count < 2:
            piece, point = hit
            self.pointer_down_on_piece(pointer_id, piece, point, x, y, now)
        return True

    def handle_pointer_up(self, pointer_id: int = 0, now: Optional[float] = None, touch: bool = False) -> None:
        now = self._now(now)
        self.pointer_up(pointer_id, now, touch)
        self._pointers.discard(pointer_id)
        if not self.is_animating and self.spin.count < 2:
            self._set_orbit(True)

    # -------- piece pointer events --------
    def pointer_down_on_piece(self, pointer_id: int, piece: PieceNode, hit_local, x: float, y: float,
                              now: Optional[float] = None) -> bool:
        now = self._now(now)
        if not self.drag.is_idle():
            return False
        if not self.scene.ready or self.scheduler.lock.locked:
            if self._deferred is None:
                self._deferred = _DeferredPress(pointer_id, piece, np.asarray(hit_local, dtype=float),
                                                (x, y), (x, y), now)
            return False
        return self.drag.pointer_down(pointer_id, piece, hit_local, x, y, now)

    def pointer_move(self, pointer_id: int, x: float, y: float, now: Optional[float] = None,
                     touch: bool = False) -> None:
        now = self._now(now)
        if touch:
            delta = self.spin.touch_move(pointer_id, x, y)
            if delta:
                self.spin_around_view_axis(delta)
        if self._deferred is not None and self._deferred.pointer_id == pointer_id:
            self._deferred.current = (x, y)
        self.drag.pointer_move(pointer_id, x, y, now)

    def pointer_up(self, pointer_id: int, now: Optional[float] = None, touch: bool = False) -> None:
        now = self._now(now)
        if touch:
            self.spin.touch_up(pointer_id)
        if self._deferred is not None and self._deferred.pointer_id == pointer_id:
            self._deferred = None
        self.drag.pointer_up(pointer_id, now)

    def abort_active_drag(self, now: Optional[float] = None) -> None:
        self._deferred = None
        self.drag.abort(self._now(now))

    def spin_around_view_axis(self, angle: float) -> bool:
        """Spin the whole cube about the camera's forward axis."""
        if self.drag.is_busy() or self.scheduler.lock.locked:
            return False
        q = quat_from_axis_angle(self.camera.forward, angle)
        self.scene.root.quaternion = quat_normalize(quat_multiply(q, self.scene.root.quaternion))
        return True

    # -------- per frame --------
    def update(self, now: Optional[float] = None) -> None:
        now = self._now(now)
        if self.spin.should_start(now):
            self.abort_active_drag(now)
            self.spin.start()
        self._retry_deferred_press(now)
        self.drag.update(now)
        self.animator.update(now)
        self._update_orientation_reset(now)
        if not self.animator.busy:
            move = self.scheduler.pump(ready=self.scene.ready)
            if move is not None:
                self.scheduler.begin(move)
                self.animator.start(move, now, self._on_animation_done)

    def _retry_deferred_press(self, now: float) -> None:
        press = self._deferred
        if press is None or not self.scene.ready or self.scheduler.lock.locked or not self.drag.is_idle():
            return
        self._deferred = None
        if self.drag.pointer_down(press.pointer_id, press.piece, press.hit_local, *press.start, now):
            if press.current != press.start:
                self.drag.pointer_move(press.pointer_id, *press.current, now)

    def _on_animation_done(self, move: Move, now: float) -> None:
        try:
            self.scheduler.finish(move, now)
        finally:
            self.scene.reset_pieces()

    def _on_drag_settled(self, move: Optional[Move]) -> None:
        if not self._pointers and self.spin.count < 2:
            self._set_orbit(True)

    def _on_commit(self, move: Move, source: MoveSource) -> None:
        if source is not MoveSource.QUEUE:
            self.move_count += 1
        if source in (MoveSource.DRAG, MoveSource.MANUAL):
            self.history.record(move)

    # -------- single moves --------
    def can_start_manual(self) -> bool:
        return self.scene.ready and not self.scheduler.lock.locked and not self.animator.busy

    def try_manual_move(self, move, now: Optional[float] = None, source: MoveSource = MoveSource.MANUAL) -> bool:
        """Start one turn right away. False if busy; the caller may retry."""
        if not isinstance(move, Move):
            move = Move.parse(move)
        now = self._now(now)
        if not self.can_start_manual():
            return False
        if not self.scheduler.accept_manual(move, now, source):
            return False
        self.animator.start(move, now, self._on_animation_done)
        return True

    async def request_move(self, move, timeout: Optional[float] = None) -> bool:
        """Wait until no turn is animating, then start ``move``."""
        if not isinstance(move, Move):
            move = Move.parse(move)
        cfg = self._animation_config
        ready = await wait_until(self.can_start_manual, interval=cfg.lock_poll_interval,
                                 timeout=cfg.lock_poll_timeout if timeout is None else timeout,
                                 backoff=1.5, max_interval=0.1)
        return ready and self.try_manual_move(move)

    def undo(self, now: Optional[float] = None) -> Optional[Move]:
        move = self.history.peek_undo()
        if move is None or not self.try_manual_move(move, now, MoveSource.UNDO):
            return None
        self.history.undo()
        return move

    def redo(self, now: Optional[float] = None) -> Optional[Move]:
        move = self.history.peek_redo()
        if move is None or not self.try_manual_move(move, now, MoveSource.REDO):
            return None
        self.history.redo()
        return move

    # -------- queued runs --------
    def scramble(self, n: Optional[int] = None) -> List[Move]:
        moves = self.engine.generate_scramble(config.SCRAMBLE_LENGTH if n is None else n)
        self.history.clear()
        self.scheduler.enqueue(moves, RunTag.SCRAMBLE)
        log.LOGGER.log(logging.INFO, f"Scramble: {format_moves(moves)}")
        return moves

    def compute_solution(self) -> List[Move]:
        state = self.engine.get_state()
        moves = self.engine.solve()
        self._solution = (state, moves)
        return moves

    def solution_is_stale(self) -> bool:
        return self._solution is None or self._solution[0] != self.engine.get_state()

    def _play_solution(self, moves: List[Move]) -> List[Move]:
        if moves:
            self.history.clear()
            self.scheduler.enqueue(moves, RunTag.SOLVE)
            log.LOGGER.log(logging.INFO, f"Solving in {len(moves)} moves")
        return moves

    def solve(self) -> List[Move]:
        """Queue a solution for the current state, reusing a cached one if still valid."""
        if not self.scheduler.idle:
            log.LOGGER.log(logging.INFO, "Solve ignored while moves are playing")
            return []
        moves = self.compute_solution() if self.solution_is_stale() else self._solution[1]
        return self._play_solution(list(moves))

    async def solve_async(self) -> List[Move]:
        """Like ``solve`` but runs the solver off the event loop thread."""
        if not self.scheduler.idle or self.engine.is_solved():
            return []
        if not self.solution_is_stale():
            return self._play_solution(list(self._solution[1]))
        state = self.engine.get_state()
        facelets = self.engine.solver_facelets()
        loop = asyncio.get_running_loop()
        moves = await loop.run_in_executor(None, self.engine.solve_facelets, facelets)
        if self.engine.get_state() != state or not self.scheduler.idle:
            log.LOGGER.log(logging.INFO, "Cube changed while solving, discarding solution")
            return []
        self._solution = (state, moves)
        return self._play_solution(list(moves))

    def auto_orient(self) -> List[Move]:
        moves = auto_orient_moves(self.engine)
        if moves:
            self.scheduler.enqueue(moves, RunTag.AUTO_ORIENT)
        return moves

    # -------- orientation / reset --------
    def reset_orientation(self, now: Optional[float] = None) -> bool:
        """Ease the cube node back to its initial orientation."""
        now = self._now(now)
        if self.drag.is_busy() or not self.scheduler.lock.try_lock():
            return False
        self._orientation_reset = _OrientationReset(self.scene.root.quaternion.copy(), now,
                                                    self.animator.config.orient_slerp_duration)
        return True

    def _update_orientation_reset(self, now: float) -> None:
        job = self._orientation_reset
        if job is None:
            return
        p = 1.0 if job.duration <= 0 else min(1.0, (now - job.start_time) / job.duration)
        self.scene.root.quaternion = quat_slerp(job.start_quat, quat_identity(), p)
        if p >= 1.0:
            self.scene.root.quaternion = quat_identity()
            self._orientation_reset = None
            self.scheduler.lock.unlock()

    def reset(self) -> None:
        """Back to a solved cube in the initial orientation, dropping anything in flight."""
        self.animator.cancel()
        self.drag.reset()
        self._deferred = None
        self._orientation_reset = None
        self.scheduler.active = None
        self.scheduler.clear()
        self.scheduler.lock.unlock()
        self.engine.reset()
        self.scene.reset_pieces()
        self.scene.root.quaternion = quat_identity()
        self.history.clear()
        self._solution = None
        self.move_count = 0
        log.LOGGER.log(logging.INFO, "Cube reset")
