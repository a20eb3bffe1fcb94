from __future__ import annotations

import logging
import math
from typing import Iterable, Iterator, List, Sequence, Tuple

import numpy as np

from ExactATSP.graph import Graph
from ExactATSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    Infeasible,
    TimeLimitExpired,
    current_time,
    enforce_time_budget,
    permutation_cycle,
    target_function_value,
)
from ExactATSP.utils.taxonomy import AlgorithmFamily

logger = logging.getLogger(__name__)


class HeapPermutations:
    """Every permutation of ``items``, each one swap away from the previous.

    Iterative Heap's algorithm: ``counters[level]`` holds how many swaps have
    been done at that level. Iterating again restarts from the initial order.
    """

    def __init__(self, items: Iterable[int]):
        self._items = tuple(items)

    def __len__(self) -> int:
        return math.factorial(len(self._items))

    def __iter__(self) -> Iterator[Tuple[int, ...]]:
        permutation = list(self._items)
        size = len(permutation)
        counters = [0] * size
        yield tuple(permutation)

        level = 1
        while level < size:
            if counters[level] < level:
                swap_index = 0 if level % 2 == 0 else counters[level]
                permutation[swap_index], permutation[level] = permutation[level], permutation[swap_index]
                counters[level] += 1
                level = 1
                yield tuple(permutation)
            else:
                counters[level] = 0
                level += 1


class BruteForceSolver(BaseSolver):
    name = "brute_force"
    family = AlgorithmFamily.EXACT

    def solve(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:
        dist_matrix = self._cost_matrix(graph)
        start_time = current_time()
        n = dist_matrix.shape[0]
        start = n - 1
        best_cost = float("inf")
        best_permutation: Sequence[int] | None = None
        evaluated = 0

        status = "complete"
        try:
            for permutation in HeapPermutations(range(start)):
                enforce_time_budget(start_time, time_limit)
                cost = target_function_value(dist_matrix, permutation)
                evaluated += 1
                if cost < best_cost:
                    best_cost = cost
                    best_permutation = permutation
        except TimeLimitExpired:
            status = "timeout"

        logger.debug("%s evaluated %d permutations (n=%d)", self.name, evaluated, n)
        if best_permutation is None:
            if status == "complete":
                raise Infeasible("Every tour uses a forbidden edge")
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status=status,
                metadata={"permutations_evaluated": evaluated},
            )

        return AlgorithmResult(
            name=self.name,
            path=permutation_cycle(best_permutation, start),
            cost=best_cost,
            elapsed=current_time() - start_time,
            status=status,
            metadata={"permutations_evaluated": evaluated},
            permutation=list(best_permutation),
        )


class BruteForceTreeSolver(BaseSolver):
    """Exhaustive depth-first search over partial paths from the start vertex.

    Each recursion level appends one unvisited vertex; a leaf closes the tour
    back to the start. Extensions over forbidden edges are not followed.
    """

    name = "brute_force_tree"
    family = AlgorithmFamily.EXACT

    def solve(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:
        dist_matrix = self._cost_matrix(graph)
        start_time = current_time()
        n = dist_matrix.shape[0]
        start = n - 1
        best_cost = float("inf")
        best_permutation: List[int] | None = None
        leaves = 0
        visited = [False] * start
        path: List[int] = []

        def extend(last: int, cost_so_far: float) -> None:
            nonlocal best_cost, best_permutation, leaves
            enforce_time_budget(start_time, time_limit)
            if len(path) == start:
                leaves += 1
                cost = cost_so_far + float(dist_matrix[last, start])
                if cost < best_cost:
                    best_cost = cost
                    best_permutation = list(path)
                return
            for vertex in range(start):
                if visited[vertex] or not np.isfinite(dist_matrix[last, vertex]):
                    continue
                visited[vertex] = True
                path.append(vertex)
                extend(vertex, cost_so_far + float(dist_matrix[last, vertex]))
                path.pop()
                visited[vertex] = False

        status = "complete"
        try:
            extend(start, 0.0)
        except TimeLimitExpired:
            status = "timeout"

        logger.debug("%s evaluated %d leaves (n=%d)", self.name, leaves, n)
        if best_permutation is None:
            if status == "complete":
                raise Infeasible("Every tour uses a forbidden edge")
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status=status,
                metadata={"leaves_evaluated": leaves},
            )

        return AlgorithmResult(
            name=self.name,
            path=permutation_cycle(best_permutation, start),
            cost=best_cost,
            elapsed=current_time() - start_time,
            status=status,
            metadata={"leaves_evaluated": leaves},
            permutation=best_permutation,
        )


__all__ = ["BruteForceSolver", "BruteForceTreeSolver", "HeapPermutations"]
