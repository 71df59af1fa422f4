from .log import LOGGER
from .moves import Base, CubeError, InvalidMoveError, Modifier, Move, parse_moves
from .engine import KociembaSolver, PermutationEngine, Solver
from .scheduler import AnimationLock, MoveScheduler, MoveSource, RunTag, wait_until
from .controller import CubeController
