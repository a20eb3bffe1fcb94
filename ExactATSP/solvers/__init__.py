from __future__ import annotations

from ExactATSP.solvers.base import AlgorithmResult, BaseSolver, SolverSpec
from ExactATSP.solvers.exact import BranchAndBoundSolver, BruteForceSolver, BruteForceTreeSolver, HeldKarpSolver
from ExactATSP.solvers.heuristics import GreedyEdgeSolver, NearestNeighborSolver
from ExactATSP.utils.taxonomy import AlgorithmFamily

SOLVER_SPECS: dict[str, SolverSpec] = {
    solver_cls.name: SolverSpec(name=solver_cls.name, cls=solver_cls, family=solver_cls.family)
    for solver_cls in (
        BruteForceSolver,
        BruteForceTreeSolver,
        HeldKarpSolver,
        BranchAndBoundSolver,
        NearestNeighborSolver,
        GreedyEdgeSolver,
    )
}

SOLVER_REGISTRY: dict[str, type[BaseSolver]] = {name: spec.cls for name, spec in SOLVER_SPECS.items()}
SOLVER_FAMILIES: dict[str, AlgorithmFamily] = {name: spec.family for name, spec in SOLVER_SPECS.items()}


def get_solver(name: str) -> BaseSolver:
    solver_cls = SOLVER_REGISTRY.get(name)
    if solver_cls is None:
        raise KeyError(f"Unknown solver: {name}")
    return solver_cls()


__all__ = [
    "AlgorithmResult",
    "BaseSolver",
    "SOLVER_FAMILIES",
    "SOLVER_REGISTRY",
    "SOLVER_SPECS",
    "AlgorithmFamily",
    "get_solver",
    "BranchAndBoundSolver",
    "BruteForceSolver",
    "BruteForceTreeSolver",
    "GreedyEdgeSolver",
    "HeldKarpSolver",
    "NearestNeighborSolver",
]
