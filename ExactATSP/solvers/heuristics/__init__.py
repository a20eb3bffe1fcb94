from ExactATSP.solvers.heuristics.greedy_edge import GreedyEdgeSolver
from ExactATSP.solvers.heuristics.nearest_neighbor import NearestNeighborSolver

__all__ = [
    "GreedyEdgeSolver",
    "NearestNeighborSolver",
]
