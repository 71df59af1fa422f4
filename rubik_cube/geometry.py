"""
Quaternion and camera math on numpy arrays.

Quaternions are ``np.array([w, x, y, z])``. Screen coordinates are pixels with
the origin in the top left corner and y pointing down, as pygame reports them.
"""
from __future__ import annotations

import math
from typing import Dict, Optional, Tuple

import numpy as np

EPS = 1e-9

GLOBAL_UP = np.array([0.0, 1.0, 0.0])
GLOBAL_FORWARD = np.array([0.0, 0.0, 1.0])

FACE_NORMALS: Dict[str, np.ndarray] = {
    'right': np.array([1.0, 0.0, 0.0]),
    'left': np.array([-1.0, 0.0, 0.0]),
    'top': np.array([0.0, 1.0, 0.0]),
    'bottom': np.array([0.0, -1.0, 0.0]),
    'front': np.array([0.0, 0.0, 1.0]),
    'back': np.array([0.0, 0.0, -1.0]),
}


def normalize(v) -> np.ndarray:
    v = np.asarray(v, dtype=float)
    n = np.linalg.norm(v)
    return v / n if n > EPS else np.zeros_like(v)


# -----------------------------
# Quaternions
# -----------------------------

def quat_identity() -> np.ndarray:
    return np.array([1.0, 0.0, 0.0, 0.0])


def quat_from_axis_angle(axis, angle: float) -> np.ndarray:
    axis = normalize(axis)
    s = math.sin(angle / 2)
    return np.array([math.cos(angle / 2), axis[0] * s, axis[1] * s, axis[2] * s])


def quat_multiply(a, b) -> np.ndarray:
    """Hamilton product ``a * b`` (apply ``b`` first, then ``a``)."""
    w1, x1, y1, z1 = a
    w2, x2, y2, z2 = b
    return np.array([
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
    ])


def quat_conjugate(q) -> np.ndarray:
    return np.array([q[0], -q[1], -q[2], -q[3]])


def quat_normalize(q) -> np.ndarray:
    n = np.linalg.norm(q)
    return np.asarray(q, dtype=float) / n if n > EPS else quat_identity()


def quat_rotate(q, v) -> np.ndarray:
    p = np.array([0.0, v[0], v[1], v[2]])
    return quat_multiply(quat_multiply(q, p), quat_conjugate(q))[1:]


def quat_slerp(a, b, t: float) -> np.ndarray:
    a = quat_normalize(a)
    b = quat_normalize(b)
    dot = float(np.dot(a, b))
    if dot < 0.0:
        b = -b
        dot = -dot
    if dot > 0.9995:
        return quat_normalize(a + t * (b - a))
    theta = math.acos(min(1.0, dot))
    s = math.sin(theta)
    return (math.sin((1 - t) * theta) / s) * a + (math.sin(t * theta) / s) * b


def quat_to_matrix(q) -> np.ndarray:
    w, x, y, z = quat_normalize(q)
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ])


# -----------------------------
# Face tangents
# -----------------------------

def face_basis(face: str) -> Tuple[np.ndarray, np.ndarray]:
    """Cube-local ("right", "up") tangents of ``face``.

    For the top and bottom faces world up is parallel to the normal, so the
    right vector is taken against the forward axis instead.
    """
    normal = FACE_NORMALS[face]
    right = np.cross(GLOBAL_UP, normal)
    if np.linalg.norm(right) < 1e-6:
        right = np.cross(GLOBAL_FORWARD, normal)
    right = normalize(right)
    up = normalize(np.cross(normal, right))
    return right, up


# -----------------------------
# Camera
# -----------------------------

class PerspectiveCamera:
    def __init__(self, width: int, height: int, fov_deg: float = 45.0,
                 near: float = 0.1, far: float = 100.0) -> None:
        self.width = int(width)
        self.height = int(height)
        self.fov_deg = fov_deg
        self.near = near
        self.far = far
        self.position = np.array([0.0, 0.0, 8.5])
        self.target = np.zeros(3)
        self.up = GLOBAL_UP.copy()

    @property
    def aspect(self) -> float:
        return self.width / float(self.height)

    def look_at(self, position, target=(0.0, 0.0, 0.0), up=(0.0, 1.0, 0.0)) -> None:
        self.position = np.asarray(position, dtype=float)
        self.target = np.asarray(target, dtype=float)
        self.up = np.asarray(up, dtype=float)

    def orbit(self, yaw_deg: float, pitch_deg: float, distance: float) -> None:
        """Position the camera on a sphere around the origin."""
        pitch = math.radians(pitch_deg)
        yaw = math.radians(yaw_deg)
        x = distance * math.cos(pitch) * math.cos(yaw)
        y = distance * math.sin(pitch)
        z = distance * math.cos(pitch) * math.sin(yaw)
        self.look_at((x, y, z))

    @property
    def forward(self) -> np.ndarray:
        return normalize(self.target - self.position)

    def view_matrix(self) -> np.ndarray:
        f = self.forward
        s = normalize(np.cross(f, self.up))
        u = np.cross(s, f)
        m = np.identity(4)
        m[0, :3], m[1, :3], m[2, :3] = s, u, -f
        m[:3, 3] = -m[:3, :3] @ self.position
        return m

    def projection_matrix(self) -> np.ndarray:
        f = 1.0 / math.tan(math.radians(self.fov_deg) / 2)
        n, fa = self.near, self.far
        return np.array([
            [f / self.aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, (fa + n) / (n - fa), 2 * fa * n / (n - fa)],
            [0.0, 0.0, -1.0, 0.0],
        ])

    def to_ndc(self, world_point) -> np.ndarray:
        p = np.append(np.asarray(world_point, dtype=float), 1.0)
        clip = self.projection_matrix() @ (self.view_matrix() @ p)
        w = clip[3] if abs(clip[3]) > EPS else EPS
        return clip[:3] / w

    def project(self, world_point) -> np.ndarray:
        """World point to screen pixels."""
        ndc = self.to_ndc(world_point)
        return np.array([(ndc[0] + 1) * self.width / 2, (1 - ndc[1]) * self.height / 2])

    def ray(self, px: float, py: float) -> Tuple[np.ndarray, np.ndarray]:
        """World-space ray (origin, unit direction) through a screen pixel."""
        ndc_x = 2 * px / self.width - 1
        ndc_y = 1 - 2 * py / self.height
        inv = np.linalg.inv(self.projection_matrix() @ self.view_matrix())
        far = inv @ np.array([ndc_x, ndc_y, 1.0, 1.0])
        far = far[:3] / far[3]
        return self.position.copy(), normalize(far - self.position)


def project_local_dir_to_screen(camera: PerspectiveCamera, origin_world, orientation, local_dir) -> np.ndarray:
    """Screen-space vector (pixels, y down) of a cube-local direction.

    ``origin_world`` and ``orientation`` are the cube node's world position and
    world quaternion.
    """
    origin_world = np.asarray(origin_world, dtype=float)
    world_dir = quat_rotate(orientation, local_dir)
    return camera.project(origin_world + world_dir) - camera.project(origin_world)


def ray_box_distance(origin, direction, center, half: float) -> Optional[float]:
    """Entry distance of a ray into an axis-aligned box, or None on a miss."""
    t_min, t_max = -math.inf, math.inf
    for i in range(3):
        lo, hi = center[i] - half, center[i] + half
        if abs(direction[i]) < EPS:
            if origin[i] < lo or origin[i] > hi:
                return None
            continue
        t1 = (lo - origin[i]) / direction[i]
        t2 = (hi - origin[i]) / direction[i]
        t_min = max(t_min, min(t1, t2))
        t_max = min(t_max, max(t1, t2))
    if t_max < max(t_min, 0.0):
        return None
    return t_min if t_min >= 0.0 else t_max
