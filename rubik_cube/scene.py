"""
Minimal scene graph for the cube: a root cube node, 27 piece nodes, and the
transient pivot a turning layer is parented to while it animates.

Only rigid transforms exist (position + quaternion), which keeps reparenting
with preserved world transforms exact.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from . import config, log
from .geometry import (quat_conjugate, quat_identity, quat_multiply,
                       quat_normalize, quat_rotate, quat_to_matrix,
                       ray_box_distance)
from .moves import Base, in_layer

Cell = Tuple[int, int, int]

PIECE_COUNT = 27


class Node:
    def __init__(self, name: str = "") -> None:
        self.name = name
        self.position = np.zeros(3)
        self.quaternion = quat_identity()
        self.parent: Optional['Node'] = None
        self.children: List['Node'] = []

    def __repr__(self):
        return f"Node({self.name!r})"

    def add(self, child: 'Node') -> None:
        """Parent ``child`` here, keeping its local transform."""
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)

    def remove(self, child: 'Node') -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def attach(self, child: 'Node') -> None:
        """Parent ``child`` here, keeping its world transform."""
        world_pos, world_quat = child.world_position(), child.world_quaternion()
        self.add(child)
        inv = quat_conjugate(self.world_quaternion())
        child.quaternion = quat_normalize(quat_multiply(inv, world_quat))
        child.position = quat_rotate(inv, world_pos - self.world_position())

    def world_quaternion(self) -> np.ndarray:
        if self.parent is None:
            return self.quaternion.copy()
        return quat_normalize(quat_multiply(self.parent.world_quaternion(), self.quaternion))

    def world_position(self) -> np.ndarray:
        if self.parent is None:
            return self.position.copy()
        return self.parent.world_position() + quat_rotate(self.parent.world_quaternion(), self.position)

    def world_matrix(self) -> np.ndarray:
        m = np.identity(4)
        m[:3, :3] = quat_to_matrix(self.world_quaternion())
        m[:3, 3] = self.world_position()
        return m

    def to_local(self, world_point) -> np.ndarray:
        inv = quat_conjugate(self.world_quaternion())
        return quat_rotate(inv, np.asarray(world_point, dtype=float) - self.world_position())

    def to_local_dir(self, world_dir) -> np.ndarray:
        return quat_rotate(quat_conjugate(self.world_quaternion()), world_dir)


class PieceNode(Node):
    def __init__(self, mesh: Any, cell: Cell, spacing: float) -> None:
        super().__init__(f"piece{cell}")
        self.mesh = mesh
        self.cell = tuple(cell)
        self.home = np.array([(c - 1) * spacing for c in cell], dtype=float)
        self.position = self.home.copy()

    def reset_transform(self) -> None:
        self.position = self.home.copy()
        self.quaternion = quat_identity()


class CubeScene:
    """Piece registry plus the cube node the pieces live under."""

    def __init__(self, spacing: float = 1.0 + config.CUBELET_GAP, piece_size: float = config.CUBELET_SIZE) -> None:
        self.spacing = spacing
        self.piece_half = piece_size / 2.0
        self.root = Node("cube")
        self.pieces: Dict[Cell, PieceNode] = {}
        self.mounted = True

    @property
    def ready(self) -> bool:
        return self.mounted and len(self.pieces) == PIECE_COUNT

    def on_mesh_ready(self, mesh: Any, gx: int, gy: int, gz: int) -> PieceNode:
        cell = (int(gx), int(gy), int(gz))
        if not all(0 <= c <= 2 for c in cell):
            raise ValueError(f"grid coordinates out of range: {cell}")
        piece = self.pieces.get(cell)
        if piece is None:
            piece = PieceNode(mesh, cell, self.spacing)
            self.pieces[cell] = piece
            self.root.add(piece)
        else:
            piece.mesh = mesh
        if self.ready:
            log.LOGGER.log(logging.DEBUG, "All pieces registered")
        return piece

    def mount_all(self, mesh_factory=lambda cell: None) -> None:
        for x in range(3):
            for y in range(3):
                for z in range(3):
                    self.on_mesh_ready(mesh_factory((x, y, z)), x, y, z)

    def pieces_in_layer(self, base: Base) -> List[PieceNode]:
        return [p for cell, p in sorted(self.pieces.items()) if in_layer(base, cell)]

    def make_pivot(self, pieces: Iterable[PieceNode]) -> Node:
        pivot = Node("pivot")
        self.root.add(pivot)
        for piece in pieces:
            pivot.attach(piece)
        return pivot

    def release_pivot(self, pivot: Node) -> None:
        for piece in list(pivot.children):
            self.root.attach(piece)
        self.root.remove(pivot)

    def reset_pieces(self) -> None:
        """Put every piece back on its home cell with identity rotation."""
        for piece in self.pieces.values():
            if piece.parent is not self.root:
                self.root.attach(piece)
            piece.reset_transform()

    def piece_center(self, piece: PieceNode) -> np.ndarray:
        """Center of ``piece`` in cube-local space."""
        return self.root.to_local(piece.world_position())

    def raycast(self, origin, direction) -> Optional[Tuple[PieceNode, np.ndarray]]:
        """Nearest piece hit by a world-space ray, with the cube-local hit point."""
        lo = self.root.to_local(origin)
        ld = self.root.to_local_dir(direction)
        best = None
        for piece in self.pieces.values():
            t = ray_box_distance(lo, ld, self.piece_center(piece), self.piece_half)
            if t is not None and (best is None or t < best[0]):
                best = (t, piece)
        if best is None:
            return None
        t, piece = best
        return piece, lo + t * ld
