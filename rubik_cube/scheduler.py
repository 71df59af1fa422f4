"""
Single-flight scheduling of cube turns.

Every turn, whether dragged, typed, undone or played back from a scramble or a
solution, takes the ``AnimationLock`` for as long as it animates and reaches
the engine through ``MoveScheduler.commit``. That commit is the engine's only
writer during a session.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Tuple

from . import log
from .config import DEFAULT_ANIMATION, AnimationConfig
from .engine import PermutationEngine
from .moves import CubeError, Move, parse_moves


class AnimationLockError(CubeError):
    pass


class RunTag(enum.Enum):
    NONE = 'none'
    SCRAMBLE = 'scramble'
    SOLVE = 'solve'
    AUTO_ORIENT = 'auto-orient'


class MoveSource(enum.Enum):
    DRAG = 'drag'
    MANUAL = 'manual'
    QUEUE = 'queue'
    UNDO = 'undo'
    REDO = 'redo'


class AnimationLock:
    """True while any turn is animating. Check ``locked`` and retry later when held."""

    def __init__(self) -> None:
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    def is_locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        if self._locked:
            raise AnimationLockError("animation lock is already held")
        self._locked = True

    def unlock(self) -> None:
        self._locked = False

    def try_lock(self) -> bool:
        if self._locked:
            return False
        self._locked = True
        return True


async def wait_until(predicate: Callable[[], bool], *, interval: float = 0.0, timeout: Optional[float] = None,
                     backoff: float = 1.0, max_interval: float = 0.25) -> bool:
    """Poll ``predicate`` on the running loop until it holds.

    Returns False if ``timeout`` seconds pass first. The delay between polls
    starts at ``interval`` and grows by ``backoff`` up to ``max_interval``.
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout
    delay = interval
    while not predicate():
        if deadline is not None and loop.time() >= deadline:
            return False
        await asyncio.sleep(delay)
        delay = min(max_interval, delay * backoff) if delay > 0 else delay
    return True


class MoveScheduler:
    def __init__(self, engine: PermutationEngine, lock: Optional[AnimationLock] = None,
                 config: AnimationConfig = DEFAULT_ANIMATION) -> None:
        self.engine = engine
        self.lock = lock if lock is not None else AnimationLock()
        self.config = config

        self.queue: Deque[Move] = deque()
        self.pending: Optional[Move] = None
        self.active: Optional[Tuple[Move, MoveSource]] = None

        self.run_tag = RunTag.NONE
        self.run_index = 0
        self.run_length = 0

        self._last_commit: Optional[Tuple[str, float]] = None
        self._last_manual: Optional[float] = None
        self._commit_handlers: List[Callable[[Move, MoveSource], None]] = []
        self._run_handlers: List[Callable[[RunTag], None]] = []

    # -------- listeners --------
    def register_commit_handler(self, handler: Callable[[Move, MoveSource], None]) -> None:
        self._commit_handlers.append(handler)

    def unregister_commit_handler(self, handler: Callable[[Move, MoveSource], None]) -> None:
        self._commit_handlers.remove(handler)

    def register_run_handler(self, handler: Callable[[RunTag], None]) -> None:
        self._run_handlers.append(handler)

    # -------- queue --------
    @property
    def queue_length(self) -> int:
        return len(self.queue) + (1 if self.pending is not None else 0)

    @property
    def idle(self) -> bool:
        return not self.lock.locked and self.queue_length == 0

    def enqueue(self, moves: Iterable, tag: RunTag = RunTag.NONE) -> List[Move]:
        moves = parse_moves(moves)
        if not moves:
            return moves
        if self.queue_length == 0 and self.active is None:
            self.run_index = 0
            self.run_length = 0
        if tag is not RunTag.NONE:
            self.run_tag = tag
        self.run_length += len(moves)
        self.queue.extend(moves)
        log.LOGGER.log(logging.DEBUG, f"Queued {len(moves)} moves ({self.run_tag.value})")
        return moves

    def pump(self, ready: bool = True) -> Optional[Move]:
        """The queued move that may start now, or None.

        Safe to call every frame: the head stays pending (never dropped) until
        ``begin`` takes it, which only happens once ``ready`` and the lock is free.
        """
        if self.pending is None and self.queue:
            self.pending = self.queue.popleft()
        if self.pending is None or not ready or self.lock.locked:
            return None
        return self.pending

    def begin(self, move: Move) -> None:
        """Start animating the pending queued ``move``."""
        if move != self.pending:
            raise CubeError(f"{move} is not the pending move")
        self.lock.lock()
        self.pending = None
        self.active = (move, MoveSource.QUEUE)
        self._last_commit = None

    def accept_manual(self, move: Move, now: float, source: MoveSource = MoveSource.MANUAL) -> bool:
        """Take the lock for a one-off turn, unless busy or inside the cool-down."""
        if self.lock.locked:
            return False
        if self._last_manual is not None and now - self._last_manual < self.config.manual_cooldown:
            log.LOGGER.log(logging.DEBUG, f"Dropped {move}: manual cool-down")
            return False
        self.lock.lock()
        self._last_manual = now
        self.active = (move, source)
        self._last_commit = None
        return True

    def try_lock_for_drag(self) -> bool:
        """Take the lock for a dragged layer. The next commit belongs to that drag."""
        if not self.lock.try_lock():
            return False
        self._last_commit = None
        return True

    def finish(self, move: Move, now: float) -> bool:
        """End the active animation of ``move``: commit it and release the lock."""
        source = self.active[1] if self.active is not None else MoveSource.QUEUE
        committed = self.commit(move, now, source)
        self.active = None
        self.lock.unlock()
        if source is MoveSource.QUEUE:
            self.run_index += 1
            if not self.queue and self.pending is None:
                self._end_run()
        return committed

    def commit(self, move: Move, now: float, source: MoveSource = MoveSource.QUEUE) -> bool:
        """Apply ``move`` to the engine unless the same move was committed moments ago."""
        key = str(move)
        if self._last_commit is not None:
            last_key, last_t = self._last_commit
            if last_key == key and now - last_t < self.config.commit_window:
                log.LOGGER.log(logging.DEBUG, f"Dropped duplicate commit of {key}")
                return False
        self.engine.apply_move(move)
        self._last_commit = (key, now)
        log.LOGGER.log(logging.DEBUG, f"Committed {key} ({source.value})")
        for handler in list(self._commit_handlers):
            handler(move, source)
        return True

    def clear(self) -> None:
        """Drop everything queued. An animation in flight still finishes."""
        self.queue.clear()
        self.pending = None
        if self.active is None:
            self._end_run()

    def _end_run(self) -> None:
        tag, self.run_tag = self.run_tag, RunTag.NONE
        if tag is RunTag.NONE:
            return
        log.LOGGER.log(logging.INFO, f"Finished {tag.value} run after {self.run_index} moves")
        for handler in list(self._run_handlers):
            handler(tag)
