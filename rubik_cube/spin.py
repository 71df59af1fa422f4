"""
Two-finger twist on touch screens: rotating a pair of fingers spins the whole
cube about the view axis.
"""
from __future__ import annotations

import math
from typing import Dict, Optional, Tuple

from .gesture import wrap_angle


class TwoFingerSpin:
    def __init__(self, start_delay: float = 0.100) -> None:
        self.start_delay = start_delay
        self.touches: Dict[int, Tuple[float, float]] = {}
        self.active = False
        self._pending_since: Optional[float] = None
        self._last_angle: Optional[float] = None

    @property
    def count(self) -> int:
        return len(self.touches)

    @property
    def pending(self) -> bool:
        return self._pending_since is not None

    def _pair_angle(self) -> float:
        (x1, y1), (x2, y2) = list(self.touches.values())[:2]
        return math.atan2(y2 - y1, x2 - x1)

    def touch_down(self, touch_id: int, x: float, y: float, now: float) -> None:
        self.touches[touch_id] = (x, y)
        if self.count == 2 and not self.active:
            self._pending_since = now

    def should_start(self, now: float) -> bool:
        """True once two fingers have stayed down for ``start_delay``."""
        return (not self.active and self._pending_since is not None and self.count >= 2
                and now - self._pending_since >= self.start_delay)

    def start(self) -> None:
        self.active = True
        self._pending_since = None
        self._last_angle = self._pair_angle()

    def touch_move(self, touch_id: int, x: float, y: float) -> float:
        """Record a move; returns the spin angle to apply (0 when not spinning)."""
        if touch_id not in self.touches:
            return 0.0
        self.touches[touch_id] = (x, y)
        if not self.active or self.count < 2:
            return 0.0
        angle = self._pair_angle()
        delta = wrap_angle(angle - self._last_angle)
        self._last_angle = angle
        return delta

    def touch_up(self, touch_id: int) -> None:
        self.touches.pop(touch_id, None)
        if self.count < 2:
            self.active = False
            self._pending_since = None
            self._last_angle = None
