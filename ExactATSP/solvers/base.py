from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Type

import numpy as np

from ExactATSP.errors import ATSPError, Infeasible, InvalidInput, TooLarge
from ExactATSP.graph import Graph, as_cost_matrix
from ExactATSP.utils.taxonomy import AlgorithmFamily


@dataclass
class AlgorithmResult:
    """Container capturing the outcome of running an ATSP solver."""

    name: str
    path: List[int] | None
    cost: float | None
    elapsed: float
    status: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    permutation: List[int] | None = None


class TimeLimitExpired(Exception):
    """Raised when an algorithm exceeds the allotted wall clock budget."""


def current_time() -> float:
    return time.perf_counter()


def remaining_budget(start_time: float, time_limit: float) -> float:
    return time_limit - (current_time() - start_time)


def enforce_time_budget(start_time: float, time_limit: float) -> None:
    if remaining_budget(start_time, time_limit) <= 0:
        raise TimeLimitExpired("Time budget exhausted")


def target_function_value(dist_matrix: np.ndarray, permutation: Sequence[int]) -> float:
    """Cost of the tour start -> permutation -> start, with start = n - 1.

    Forbidden edges are ``inf`` so an infeasible tour scores ``inf``.
    """
    n = dist_matrix.shape[0]
    start = n - 1
    if len(permutation) != n - 1:
        raise InvalidInput(f"Permutation has {len(permutation)} vertices, expected {n - 1}")
    seen = set()
    for vertex in permutation:
        if isinstance(vertex, (bool, np.bool_)) or not isinstance(vertex, (int, np.integer)):
            raise InvalidInput(f"Vertex {vertex!r} is not an integer index")
        if not 0 <= vertex < start:
            raise InvalidInput(f"Vertex {vertex} is out of range for a permutation of {n - 1} vertices")
        if vertex in seen:
            raise InvalidInput(f"Vertex {vertex} appears more than once in permutation")
        seen.add(vertex)

    cost = 0.0
    previous = start
    for vertex in permutation:
        cost += float(dist_matrix[previous, vertex])
        previous = vertex
    cost += float(dist_matrix[previous, start])
    return cost


def compute_cycle_cost(dist_matrix: np.ndarray, cycle: Sequence[int]) -> float:
    """Compute tour cost (including return leg)."""
    if not cycle:
        return float("inf")
    cost = 0.0
    for i in range(len(cycle)):
        a = cycle[i]
        b = cycle[(i + 1) % len(cycle)]
        cost += float(dist_matrix[a, b])
    return cost


def permutation_cycle(permutation: Sequence[int], start: int) -> List[int]:
    """Closed vertex sequence for a permutation around the fixed start vertex."""
    return [start, *permutation, start]


@dataclass(frozen=True)
class SolverSpec:
    """Metadata describing a solver implementation."""

    name: str
    cls: Type["BaseSolver"]
    family: AlgorithmFamily


class BaseSolver:
    """Common interface for ExactATSP solvers."""

    name: str
    family: AlgorithmFamily

    def solve(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:  # noqa: D401
        """Solve an ATSP instance given as a graph or a cost matrix."""
        raise NotImplementedError

    def __call__(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:
        return self.solve(graph, time_limit=time_limit)

    def _cost_matrix(self, graph: Graph | np.ndarray) -> np.ndarray:
        return as_cost_matrix(graph)


__all__ = [
    "ATSPError",
    "AlgorithmResult",
    "AlgorithmFamily",
    "BaseSolver",
    "Infeasible",
    "InvalidInput",
    "SolverSpec",
    "TimeLimitExpired",
    "TooLarge",
    "compute_cycle_cost",
    "current_time",
    "enforce_time_budget",
    "permutation_cycle",
    "remaining_budget",
    "target_function_value",
]
