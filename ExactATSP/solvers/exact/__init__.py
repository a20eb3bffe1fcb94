from ExactATSP.solvers.exact.branch_and_bound import BranchAndBoundSolver
from ExactATSP.solvers.exact.brute_force import BruteForceSolver, BruteForceTreeSolver, HeapPermutations
from ExactATSP.solvers.exact.held_karp import HeldKarpSolver

__all__ = [
    "BranchAndBoundSolver",
    "BruteForceSolver",
    "BruteForceTreeSolver",
    "HeapPermutations",
    "HeldKarpSolver",
]
