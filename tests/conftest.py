import random

import pytest

from rubik_cube.controller import CubeController
from rubik_cube.engine import PermutationEngine, Solver
from rubik_cube.geometry import PerspectiveCamera
from rubik_cube.scene import CubeScene
from rubik_cube.scheduler import MoveScheduler


class FakeClock:
    def __init__(self, t: float = 100.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, dt: float) -> float:
        self.t += dt
        return self.t


class StubSolver(Solver):
    def __init__(self, answer: str = "", error: Exception = None):
        self.answer = answer
        self.error = error
        self.calls = []

    def solve(self, facelets: str) -> str:
        self.calls.append(facelets)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def solver():
    return StubSolver()


@pytest.fixture
def engine(solver):
    return PermutationEngine(solver=solver, rng=random.Random(1234))


@pytest.fixture
def camera():
    cam = PerspectiveCamera(800, 600, 45.0)
    cam.look_at((0.0, 0.0, 10.0))
    return cam


@pytest.fixture
def scene():
    s = CubeScene(spacing=1.0, piece_size=1.0)
    s.mount_all(lambda cell: cell)
    return s


@pytest.fixture
def scheduler(engine):
    return MoveScheduler(engine)


@pytest.fixture
def controller(engine, scene, camera, clock):
    return CubeController(engine=engine, scene=scene, camera=camera, clock=clock)


@pytest.fixture
def run_frames(clock):
    """Advance the fake clock in 60 Hz steps, updating the controller each frame."""
    def run(controller, seconds: float, step: float = 1 / 60):
        frames = max(1, int(round(seconds / step)))
        for _ in range(frames):
            clock.advance(step)
            controller.update()
    return run


@pytest.fixture
def run_until_idle(clock):
    def run(controller, limit: float = 60.0, step: float = 1 / 60):
        elapsed = 0.0
        controller.update()
        while controller.is_animating or controller.scheduler.queue_length:
            clock.advance(step)
            controller.update()
            elapsed += step
            assert elapsed < limit, "controller never went idle"
    return run
