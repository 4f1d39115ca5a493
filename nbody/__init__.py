"""N-body simulation core: body state, scenes, forces, integration, driver."""

from .store import BodyStore
from .scenes import Scene, generate
from .forces import ForceEvaluator, ForceMode, NumericInstability, direct_solve
from .tree import BarnesHutSolver
from .driver import Simulation

__all__ = [
    "BodyStore",
    "Scene",
    "generate",
    "ForceEvaluator",
    "ForceMode",
    "NumericInstability",
    "direct_solve",
    "BarnesHutSolver",
    "Simulation",
]
