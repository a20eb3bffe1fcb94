from __future__ import annotations

import numpy as np

from ExactATSP.graph import Graph
from ExactATSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    TimeLimitExpired,
    compute_cycle_cost,
    current_time,
    enforce_time_budget,
)
from ExactATSP.utils.taxonomy import AlgorithmFamily


class NearestNeighborSolver(BaseSolver):
    name = "nearest_neighbor"
    family = AlgorithmFamily.HEURISTIC

    def solve(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:
        dist_matrix = self._cost_matrix(graph)
        start_time = current_time()
        n = dist_matrix.shape[0]
        start = n - 1
        visited = [start]
        remaining = set(range(start))

        try:
            while remaining:
                enforce_time_budget(start_time, time_limit)
                last = visited[-1]
                candidates = [(float(dist_matrix[last, city]), city) for city in remaining]
                cost, next_city = min(candidates)
                if not np.isfinite(cost):
                    break
                visited.append(next_city)
                remaining.remove(next_city)
        except TimeLimitExpired:
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status="timeout",
                metadata={"nodes_visited": len(visited)},
            )

        cost = compute_cycle_cost(dist_matrix, visited)
        if remaining or not np.isfinite(cost):
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status="failed",
                metadata={"nodes_visited": len(visited)},
            )

        return AlgorithmResult(
            name=self.name,
            path=visited + [start],
            cost=cost,
            elapsed=current_time() - start_time,
            status="complete",
            metadata={"nodes_visited": len(visited)},
            permutation=visited[1:],
        )


__all__ = ["NearestNeighborSolver"]
