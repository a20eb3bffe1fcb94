from ExactATSP.errors import ATSPError, Infeasible, InvalidInput, TooLarge
from ExactATSP.graph import FORBIDDEN, Graph, load_instance
from ExactATSP.solvers import (
    AlgorithmResult,
    BaseSolver,
    SOLVER_FAMILIES,
    SOLVER_REGISTRY,
    SOLVER_SPECS,
    BranchAndBoundSolver,
    BruteForceSolver,
    BruteForceTreeSolver,
    GreedyEdgeSolver,
    HeldKarpSolver,
    NearestNeighborSolver,
    get_solver,
)
from ExactATSP.solvers.base import target_function_value
from ExactATSP.solvers.exact import HeapPermutations
from ExactATSP.utils.taxonomy import AlgorithmFamily

__all__ = [
    "ATSPError",
    "AlgorithmFamily",
    "AlgorithmResult",
    "BaseSolver",
    "BranchAndBoundSolver",
    "BruteForceSolver",
    "BruteForceTreeSolver",
    "FORBIDDEN",
    "Graph",
    "GreedyEdgeSolver",
    "HeapPermutations",
    "HeldKarpSolver",
    "Infeasible",
    "InvalidInput",
    "NearestNeighborSolver",
    "SOLVER_FAMILIES",
    "SOLVER_REGISTRY",
    "SOLVER_SPECS",
    "TooLarge",
    "get_solver",
    "load_instance",
    "target_function_value",
]
