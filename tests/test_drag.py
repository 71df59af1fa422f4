import math

import numpy as np
import pytest

from rubik_cube.config import DEFAULT_GESTURE
from rubik_cube.drag import (DragStateMachine, Dragging, Idle, Snapping, Tracking,
                             ease_out_quad, resolve_snap)
from rubik_cube.engine import PermutationEngine
from rubik_cube.moves import Base, Move

R = Base.R


# -----------------------------
# resolve_snap
# -----------------------------

def test_snap_near_zero_is_no_move():
    decision = resolve_snap(0.05, 8.0, 0.0, -1, R)
    assert decision.move is None
    assert decision.target_steps == 0
    assert decision.target_angle == 0.0
    assert decision.duration == DEFAULT_GESTURE.snap_back_duration


def test_snap_quarter_in_expected_direction():
    decision = resolve_snap(-math.pi / 2, 262.0, 0.0, -1, R)
    assert decision.move == Move.parse("R")
    assert decision.target_angle == pytest.approx(-math.pi / 2)
    assert decision.duration == DEFAULT_GESTURE.snap_duration


def test_snap_quarter_against_expected_direction():
    decision = resolve_snap(math.radians(80), 232.0, 0.0, -1, R)
    assert decision.move == Move.parse("R'")
    assert decision.target_angle == pytest.approx(math.pi / 2)


def test_half_turn_gating_demotes_short_drags():
    # 150 degrees reached with only 100px of travel
    decision = resolve_snap(math.radians(150), 100.0, 0.0, 1, R)
    assert abs(decision.target_steps) == 1
    assert decision.move == Move.parse("R'")
    assert decision.target_angle == pytest.approx(math.pi / 2)


def test_half_turn_needs_angle_as_well_as_distance():
    decision = resolve_snap(math.radians(130), 400.0, 0.0, 1, R)
    assert abs(decision.target_steps) == 1


def test_half_turn_accepted():
    decision = resolve_snap(math.radians(170), 420.0, 0.0, 1, R)
    assert decision.move == Move.parse("R2")
    assert decision.target_angle == pytest.approx(math.pi)

    decision = resolve_snap(math.radians(-170), 420.0, 0.0, 1, R)
    assert decision.move == Move.parse("R2")
    assert decision.target_angle == pytest.approx(-math.pi)


def test_flick_finishes_a_short_drag():
    decision = resolve_snap(0.15, 30.0, 500.0, 1, Base.U)
    assert decision.flick
    assert decision.target_steps == 1
    assert decision.move == Move.parse("U'")
    assert decision.duration == DEFAULT_GESTURE.snap_fast_duration


def test_flick_parity_sets_direction():
    decision = resolve_snap(-0.15, 30.0, 500.0, -1, Base.U)
    assert decision.target_steps == -1
    assert decision.move == Move.parse("U")


def test_flick_needs_distance():
    decision = resolve_snap(0.12, 20.0, 800.0, 1, Base.U)
    assert not decision.flick
    assert decision.move is None


def test_flick_needs_speed():
    decision = resolve_snap(0.15, 30.0, 90.0, 1, Base.U)
    assert not decision.flick
    assert decision.move is None


def test_backward_flick_snaps_back():
    decision = resolve_snap(0.6, 100.0, -500.0, 1, Base.U)
    assert decision.flick
    assert decision.move is None
    assert decision.target_angle == 0.0


def test_flicked_quarter_turn_takes_the_flick_sign():
    decision = resolve_snap(math.radians(-135), 100.0, 500.0, 1, Base.U)
    assert decision.flick
    assert decision.target_steps == 1
    assert decision.target_angle == pytest.approx(math.pi / 2)
    assert decision.move == Move.parse("U'")


def test_flick_alone_never_makes_a_half_turn():
    decision = resolve_snap(math.radians(100), 100.0, 900.0, 1, Base.U)
    assert abs(decision.target_steps) == 1


def test_angle_is_normalized_before_snapping():
    decision = resolve_snap(2 * math.pi - 0.05, 1047.0, 0.0, 1, R)
    assert decision.move is None
    assert decision.start_angle == pytest.approx(-0.05)


def test_ease_out_quad_endpoints():
    assert ease_out_quad(0.0) == 0.0
    assert ease_out_quad(1.0) == 1.0
    assert ease_out_quad(0.5) == pytest.approx(0.75)


# -----------------------------
# State machine
# -----------------------------

@pytest.fixture
def machine(scene, camera, scheduler):
    return DragStateMachine(scene, camera, scheduler)


@pytest.fixture
def corner(scene):
    piece = scene.pieces[(2, 2, 2)]
    return piece, scene.piece_center(piece) + np.array([0.1, 0.2, 0.5])


def _press_and_lock(machine, corner, pointer_id=1):
    piece, hit = corner
    assert machine.pointer_down(pointer_id, piece, hit, 400.0, 300.0, 0.0)
    machine.pointer_move(pointer_id, 400.0, 290.0, 0.02)


def test_pointer_down_starts_tracking(machine, corner):
    piece, hit = corner
    assert machine.pointer_down(1, piece, hit, 400.0, 300.0, 0.0)
    assert isinstance(machine.phase, Tracking)
    assert str(machine.phase.ident) == "corner_RUF_front"


def test_small_moves_do_not_lock(machine, corner, scheduler):
    piece, hit = corner
    machine.pointer_down(1, piece, hit, 400.0, 300.0, 0.0)
    machine.pointer_move(1, 401.0, 299.0, 0.05)
    machine.pointer_move(1, 403.0, 297.0, 0.10)
    assert isinstance(machine.phase, Tracking)
    assert not scheduler.lock.locked


def test_click_without_drag_returns_to_idle(machine, corner):
    piece, hit = corner
    machine.pointer_down(1, piece, hit, 400.0, 300.0, 0.0)
    machine.pointer_up(1, 0.1)
    assert isinstance(machine.phase, Idle)


def test_lock_takes_the_animation_lock(machine, corner, scheduler, scene):
    _press_and_lock(machine, corner)
    phase = machine.phase
    assert isinstance(phase, Dragging)
    assert scheduler.lock.locked
    assert len(phase.pieces) == 9
    assert all(p.cell[0] == 2 for p in phase.pieces)
    assert all(p.parent is phase.pivot for p in phase.pieces)
    assert machine.angle == pytest.approx(-0.06)


def test_basic_twist_commits_r(machine, corner, scheduler, engine, scene, solver):
    commits = []
    scheduler.register_commit_handler(lambda move, source: commits.append(str(move)))
    _press_and_lock(machine, corner)
    machine.pointer_move(1, 400.0, 38.0, 0.5)
    assert machine.angle == pytest.approx(-math.pi / 2, abs=0.01)
    machine.pointer_move(1, 400.0, 38.0, 1.0)
    machine.pointer_up(1, 1.0)
    assert isinstance(machine.phase, Snapping)
    assert machine.phase.move == Move.parse("R")

    machine.update(1.06)
    assert isinstance(machine.phase, Snapping)
    machine.update(1.2)
    assert isinstance(machine.phase, Idle)
    assert commits == ["R"]
    assert not scheduler.lock.locked

    expected = PermutationEngine(solver)
    expected.apply_move("R")
    assert engine.get_state() == expected.get_state()
    # pieces are back on their cells and the pivot is gone
    assert len(scene.root.children) == 27
    assert np.allclose(scene.pieces[(2, 2, 2)].position, scene.pieces[(2, 2, 2)].home)


def test_zero_rotation_release_commits_nothing(machine, corner, scheduler, engine):
    commits = []
    scheduler.register_commit_handler(lambda move, source: commits.append(move))
    _press_and_lock(machine, corner)
    machine.pointer_move(1, 400.0, 300.0, 0.3)
    machine.pointer_move(1, 400.0, 300.0, 0.6)
    machine.pointer_up(1, 0.6)
    assert machine.phase.move is None
    machine.update(0.8)
    assert isinstance(machine.phase, Idle)
    assert commits == []
    assert engine.is_solved()
    assert not scheduler.lock.locked


def test_flick_commits_a_quarter_turn(machine, corner, engine):
    _press_and_lock(machine, corner)
    machine.pointer_move(1, 400.0, 260.0, 0.05)
    machine.pointer_up(1, 0.05)
    assert machine.phase.move == Move.parse("R")
    assert machine.phase.duration == DEFAULT_GESTURE.snap_fast_duration
    machine.update(0.2)
    assert not engine.is_solved()


def test_repeated_quick_flicks_both_commit(machine, corner, scheduler, engine, solver):
    commits = []
    scheduler.register_commit_handler(lambda move, source: commits.append(str(move)))
    piece, hit = corner
    for t in (0.0, 0.17):
        assert machine.pointer_down(1, piece, hit, 400.0, 300.0, t)
        machine.pointer_move(1, 400.0, 290.0, t + 0.02)
        machine.pointer_move(1, 400.0, 260.0, t + 0.05)
        machine.pointer_up(1, t + 0.05)
        machine.update(t + 0.16)
        assert isinstance(machine.phase, Idle)
    assert commits == ["R", "R"]

    expected = PermutationEngine(solver)
    expected.apply_moves("R R")
    assert engine.get_state() == expected.get_state()


def test_other_pointers_are_ignored(machine, corner, scene):
    _press_and_lock(machine, corner)
    machine.pointer_move(1, 400.0, 200.0, 0.1)
    angle = machine.angle

    other = scene.pieces[(0, 0, 2)]
    assert not machine.pointer_down(2, other, scene.piece_center(other) + np.array([0, 0, 0.5]), 100.0, 100.0, 0.2)
    machine.pointer_move(2, 50.0, 50.0, 0.25)
    machine.pointer_up(2, 0.3)
    assert isinstance(machine.phase, Dragging)
    assert machine.angle == angle
    assert machine.pointer_id == 1


def test_abort_snaps_back_to_zero(machine, corner, scheduler, engine):
    _press_and_lock(machine, corner)
    machine.pointer_move(1, 400.0, 100.0, 0.2)
    machine.abort(0.25)
    phase = machine.phase
    assert isinstance(phase, Snapping)
    assert phase.target_angle == 0.0
    assert phase.move is None
    machine.update(0.5)
    assert isinstance(machine.phase, Idle)
    assert engine.is_solved()
    assert not scheduler.lock.locked


def test_abort_while_tracking_resets(machine, corner):
    piece, hit = corner
    machine.pointer_down(1, piece, hit, 400.0, 300.0, 0.0)
    machine.abort(0.01)
    assert isinstance(machine.phase, Idle)


def test_no_lock_while_another_turn_animates(machine, corner, scheduler):
    scheduler.lock.lock()
    _press_and_lock(machine, corner)
    assert isinstance(machine.phase, Tracking)
    scheduler.lock.unlock()
    machine.pointer_move(1, 400.0, 280.0, 0.1)
    assert isinstance(machine.phase, Dragging)


def test_snap_completion_runs_once(machine, corner, scheduler):
    commits = []
    scheduler.register_commit_handler(lambda move, source: commits.append(move))
    _press_and_lock(machine, corner)
    machine.pointer_move(1, 400.0, 38.0, 0.5)
    machine.pointer_move(1, 400.0, 38.0, 1.0)
    machine.pointer_up(1, 1.0)
    snapping = machine.phase
    machine.update(1.5)
    machine.update(1.6)
    assert snapping.completed
    assert len(commits) == 1
