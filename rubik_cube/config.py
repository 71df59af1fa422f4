"""
Tunables for the simulator.

Plain module constants are clamped through ``sanitize_numeric_input`` so a bad
edit can never push the window, camera or animation outside a usable range.
Gesture and animation thresholds are grouped in frozen dataclasses so tests
and the fast (timer) mode can swap them as a unit.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Union


# -----------------------------
# Input Sanitization Functions
# -----------------------------

def sanitize_numeric_input(value: Union[int, float], min_val: Union[int, float], max_val: Union[int, float], default: Union[int, float]) -> Union[int, float]:
    """Clamp ``value`` into [min_val, max_val], or return ``default`` for junk."""
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return max(min_val, min(max_val, value))


# -----------------------------
# Window / render configuration
# -----------------------------
WINDOW_W = sanitize_numeric_input(1024, 400, 4096, 1024)
WINDOW_H = sanitize_numeric_input(720, 300, 2160, 720)
FPS = sanitize_numeric_input(60, 30, 120, 60)
FOV_DEG = sanitize_numeric_input(45.0, 20.0, 90.0, 45.0)
CUBELET_GAP = sanitize_numeric_input(0.03, 0.0, 0.2, 0.03)      # gap between cubelets for visual clarity
CUBELET_SIZE = sanitize_numeric_input(0.94, 0.1, 2.0, 0.94)     # size of each cubelet (edge length)
ZOOM_SENS = sanitize_numeric_input(1.1, 1.01, 2.0, 1.1)
MOUSE_SENS = sanitize_numeric_input(0.3, 0.1, 2.0, 0.3)
CAM_DIST = sanitize_numeric_input(8.5, 3.0, 50.0, 8.5)
CAM_YAW = sanitize_numeric_input(30, -360, 360, 30)
CAM_PITCH = sanitize_numeric_input(20, -89, 89, 20)

SCRAMBLE_LENGTH = int(sanitize_numeric_input(25, 1, 200, 25))

# WCA color scheme, keyed by the face each color starts on
COLORS = {
    'U': (1.0, 1.0, 1.0),      # white
    'D': (1.0, 1.0, 0.0),      # yellow
    'F': (0.0, 0.8, 0.0),      # green
    'B': (0.0, 0.4, 1.0),      # blue
    'R': (1.0, 0.0, 0.0),      # red
    'L': (1.0, 0.6, 0.0),      # orange
}


@dataclass(frozen=True)
class GestureConfig:
    """Thresholds for turning a pointer drag into a layer turn.

    Distances are in screen pixels, times in seconds, velocities in px/s.
    """
    drag_sensitivity: float = 0.006     # radians per pixel along the locked axis
    lock_threshold_px: float = 5.0
    noise_threshold_px: float = 2.0
    pointer_throttle: float = 0.012     # min spacing of pre-lock updates
    half_turn_steps: float = 1.5
    half_turn_min_px: float = 180.0
    flick_min_px: float = 25.0
    flick_min_velocity: float = 100.0
    velocity_window: float = 0.040
    velocity_samples: int = 6
    snap_duration: float = 0.120
    snap_back_duration: float = 0.150
    snap_fast_duration: float = 0.100
    spin_start_delay: float = 0.100     # second finger must stay this long to start a spin

    def __post_init__(self):
        object.__setattr__(self, "drag_sensitivity", sanitize_numeric_input(self.drag_sensitivity, 1e-4, 0.1, 0.006))
        object.__setattr__(self, "lock_threshold_px", sanitize_numeric_input(self.lock_threshold_px, 0.0, 100.0, 5.0))
        object.__setattr__(self, "velocity_samples", int(sanitize_numeric_input(self.velocity_samples, 2, 64, 6)))

    def fast(self) -> 'GestureConfig':
        return replace(self, snap_duration=0.060, snap_back_duration=0.075, snap_fast_duration=0.050)


@dataclass(frozen=True)
class AnimationConfig:
    move_duration: float = 0.250
    manual_cooldown: float = 0.100
    commit_window: float = 0.200
    orient_slerp_duration: float = 0.400
    lock_poll_interval: float = 0.016
    lock_poll_timeout: float = 5.0

    def __post_init__(self):
        object.__setattr__(self, "move_duration", sanitize_numeric_input(self.move_duration, 0.0, 5.0, 0.250))

    def fast(self) -> 'AnimationConfig':
        return replace(self, move_duration=0.120, orient_slerp_duration=0.200)


DEFAULT_GESTURE = GestureConfig()
DEFAULT_ANIMATION = AnimationConfig()
