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


class GreedyEdgeSolver(BaseSolver):
    """Accept the cheapest edges that keep every vertex at one successor and one predecessor."""

    name = "greedy_edge"
    family = AlgorithmFamily.HEURISTIC

    def solve(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:
        dist_matrix = self._cost_matrix(graph)
        start_time = current_time()
        n = dist_matrix.shape[0]
        start = n - 1
        rows, cols = np.nonzero(np.isfinite(dist_matrix))
        edges = sorted(zip(dist_matrix[rows, cols].tolist(), rows.tolist(), cols.tolist()))
        successors: dict[int, int] = {}
        predecessors: dict[int, int] = {}
        # head of the fragment each vertex currently belongs to
        heads = list(range(n))
        edges_scanned = 0

        try:
            for _, i, j in edges:
                enforce_time_budget(start_time, time_limit)
                edges_scanned += 1
                if i in successors or j in predecessors:
                    continue
                closes_cycle = heads[i] == j
                if closes_cycle and len(successors) < n - 1:
                    continue
                successors[i] = j
                predecessors[j] = i
                if len(successors) == n:
                    break
                vertex = j
                while vertex is not None:
                    heads[vertex] = heads[i]
                    vertex = successors.get(vertex)
        except TimeLimitExpired:
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status="timeout",
                metadata={"edges_scanned": edges_scanned},
            )

        if len(successors) < n:
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status="failed",
                metadata={"edges_scanned": edges_scanned},
            )

        cycle = [start]
        while len(cycle) < n:
            cycle.append(successors[cycle[-1]])
        return AlgorithmResult(
            name=self.name,
            path=cycle + [start],
            cost=compute_cycle_cost(dist_matrix, cycle),
            elapsed=current_time() - start_time,
            status="complete",
            metadata={"edges_scanned": edges_scanned},
            permutation=cycle[1:],
        )


__all__ = ["GreedyEdgeSolver"]
