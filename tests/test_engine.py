import logging
import random

import pytest

from rubik_cube.engine import KociembaSolver, PermutationEngine
from rubik_cube.moves import FACE_BASES, Base, invert_sequence, parse_moves

from conftest import StubSolver

SOLVED = "U" * 9 + "R" * 9 + "F" * 9 + "D" * 9 + "L" * 9 + "B" * 9
ALL_TOKENS = [b.value + m for b in Base for m in ("", "'", "2")]


def test_starts_solved(engine):
    assert engine.is_solved()
    assert engine.get_state() == SOLVED
    assert len(engine.cubelets) == 27


def test_r_moves_front_column_up(engine):
    engine.apply_move("R")
    state = engine.get_state()
    up, front = state[0:9], state[18:27]
    assert [up[i] for i in (2, 5, 8)] == ["F", "F", "F"]
    assert [front[i] for i in (2, 5, 8)] == ["D", "D", "D"]
    assert not engine.is_solved()


def test_quarter_turn_has_order_four(engine):
    for _ in range(3):
        engine.apply_move("U")
        assert not engine.is_solved()
    engine.apply_move("U")
    assert engine.is_solved()


def test_double_equals_two_quarters(solver):
    a, b = PermutationEngine(solver), PermutationEngine(solver)
    a.apply_move("F2")
    b.apply_moves("F F")
    assert a.get_state() == b.get_state()


def test_inverse_roundtrip(engine):
    assert engine.is_solved()
    engine.apply_move("R")
    engine.apply_move("R'")
    assert engine.is_solved()


@pytest.mark.parametrize("seed", range(10))
def test_group_inverse_law(seed, solver):
    rng = random.Random(seed)
    engine = PermutationEngine(solver)
    engine.apply_moves(rng.choices(ALL_TOKENS, k=8))
    before = engine.get_state()
    seq = parse_moves(rng.choices(ALL_TOKENS, k=rng.randint(1, 30)))
    engine.apply_moves(seq)
    engine.apply_moves(invert_sequence(seq))
    assert engine.get_state() == before


@pytest.mark.parametrize("rotation,layers", [
    ("x", "R M' L'"),
    ("y", "U E' D'"),
    ("z", "F S B'"),
])
def test_whole_cube_rotation_is_its_three_layers(rotation, layers, solver):
    a, b = PermutationEngine(solver), PermutationEngine(solver)
    a.apply_moves("R U F' D2 " + rotation)
    b.apply_moves("R U F' D2 " + layers)
    assert a.get_state() == b.get_state()


def test_rotation_keeps_cube_solved(engine):
    engine.apply_move("x")
    assert engine.is_solved()
    assert engine.center_colors()["U"] == "F"
    assert engine.center_face_of("U") == "B"


def test_solver_facelets_follow_centers(engine):
    engine.apply_move("y")
    assert engine.get_state() != SOLVED
    assert engine.solver_facelets() == SOLVED


def test_solve_returns_solver_moves(engine, solver):
    engine.apply_moves("R U")
    solver.answer = "U' R'"
    assert engine.solve() == parse_moves("U' R'")
    assert len(solver.calls) == 1
    assert len(solver.calls[0]) == 54


def test_solve_on_solved_cube_skips_solver(engine, solver):
    assert engine.solve() == []
    assert solver.calls == []


def test_solver_failure_returns_empty(caplog):
    engine = PermutationEngine(StubSolver(error=ValueError("bad cube")))
    engine.apply_move("R")
    with caplog.at_level(logging.WARNING, logger="rubik_cube"):
        assert engine.solve() == []
    assert "bad cube" in caplog.text


def test_unparseable_solver_output_returns_empty(engine, solver):
    engine.apply_move("R")
    solver.answer = "Error: invalid cube"
    assert engine.solve() == []


def test_scramble_shape(engine):
    moves = engine.generate_scramble(20)
    assert len(moves) == 20
    assert all(m.base in FACE_BASES for m in moves)
    good_pairs = sum(1 for a, b in zip(moves, moves[1:]) if a.base is not b.base and a.base.axis != b.base.axis)
    assert good_pairs >= 18


@pytest.mark.parametrize("seed", range(20))
def test_scramble_never_repeats_face_or_axis(seed, solver):
    engine = PermutationEngine(solver, rng=random.Random(seed))
    moves = engine.generate_scramble(40)
    for a, b in zip(moves, moves[1:]):
        assert a.base is not b.base
        assert a.base.axis != b.base.axis


class _StuckRandom:
    def choice(self, seq):
        return seq[0]


def test_scramble_retry_bound_accepts_repeat(solver):
    engine = PermutationEngine(solver, rng=_StuckRandom())
    moves = engine.generate_scramble(3)
    assert [m.base for m in moves] == [Base.U, Base.U, Base.U]


def test_reset(engine):
    engine.apply_moves("R U F")
    engine.reset()
    assert engine.get_state() == SOLVED


def test_cell_colors(engine):
    assert engine.cell_colors((2, 2, 2)) == {"R": "R", "U": "U", "F": "F"}
    assert engine.cell_colors((1, 1, 1)) == {}


def test_kociemba_solves_a_scramble():
    pytest.importorskip("kociemba")
    engine = PermutationEngine(KociembaSolver(), rng=random.Random(7))
    engine.apply_moves(engine.generate_scramble(15))
    engine.apply_move("y")
    solution = engine.solve()
    assert solution
    engine.apply_moves(solution)
    assert engine.is_solved()
