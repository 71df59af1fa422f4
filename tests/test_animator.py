import math

import numpy as np
import pytest

from rubik_cube.animator import MoveAnimator, ease_in_out_cubic
from rubik_cube.config import DEFAULT_ANIMATION
from rubik_cube.geometry import quat_identity
from rubik_cube.moves import CubeError, Move


@pytest.fixture
def animator(scene):
    return MoveAnimator(scene)


def test_easing_endpoints():
    assert ease_in_out_cubic(0.0) == 0.0
    assert ease_in_out_cubic(1.0) == 1.0
    assert ease_in_out_cubic(0.5) == pytest.approx(0.5)
    assert ease_in_out_cubic(0.25) < 0.25


def test_layer_turn_uses_a_pivot(animator, scene):
    anim = animator.start(Move.parse("R"), 0.0)
    assert animator.busy
    assert len(anim.pieces) == 9
    assert all(p.cell[0] == 2 for p in anim.pieces)
    assert anim.pivot.parent is scene.root
    assert anim.total_angle == pytest.approx(-math.pi / 2)


def test_progress_follows_elapsed_time(animator):
    anim = animator.start(Move.parse("U2"), 10.0)
    half = DEFAULT_ANIMATION.move_duration / 2
    assert animator.update(10.0 + half) is None
    assert anim.angle == pytest.approx(anim.total_angle / 2)


def test_completion_fires_once(animator, scene):
    done = []

    def on_complete(move, now):
        piece = scene.pieces[(2, 2, 2)]
        done.append((str(move), piece.world_position().copy()))

    animator.start(Move.parse("R"), 0.0, on_complete)
    assert animator.update(0.1) is None
    assert animator.update(0.3) == Move.parse("R")
    assert animator.update(0.4) is None
    assert len(done) == 1
    name, position = done[0]
    assert name == "R"
    # the corner has swung from the top-front to the top-back
    assert np.allclose(position, [1.0, 1.0, -1.0], atol=1e-6)
    assert not animator.busy
    assert len(scene.root.children) == 27


def test_whole_cube_turn_restores_root(animator, scene):
    animator.start(Move.parse("x"), 0.0)
    assert animator.active.pivot is None
    animator.update(0.1)
    assert not np.allclose(scene.root.quaternion, quat_identity())
    animator.update(1.0)
    assert np.allclose(scene.root.quaternion, quat_identity())


def test_cannot_start_while_busy(animator):
    animator.start(Move.parse("F"), 0.0)
    with pytest.raises(CubeError):
        animator.start(Move.parse("B"), 0.01)


def test_cancel_puts_the_layer_back(animator, scene):
    done = []
    animator.start(Move.parse("F"), 0.0, lambda move, now: done.append(move))
    animator.update(0.1)
    animator.cancel()
    assert not animator.busy
    assert done == []
    assert len(scene.root.children) == 27
    piece = scene.pieces[(2, 2, 2)]
    assert np.allclose(piece.world_position(), [1.0, 1.0, 1.0], atol=1e-6)


def test_fast_mode_shortens_turns(scene):
    animator = MoveAnimator(scene, DEFAULT_ANIMATION.fast())
    animator.start(Move.parse("L"), 0.0)
    assert animator.update(0.13) == Move.parse("L")
