from __future__ import annotations

import logging

import numpy as np

from ExactATSP.graph import Graph
from ExactATSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    Infeasible,
    TimeLimitExpired,
    TooLarge,
    current_time,
    enforce_time_budget,
    permutation_cycle,
)
from ExactATSP.utils.taxonomy import AlgorithmFamily

logger = logging.getLogger(__name__)

# Subset masks index a signed 64-bit word.
MAX_SUBSET_BITS = 63
UNCOMPUTED = -1.0


class HeldKarpSolver(BaseSolver):
    """Top-down Held-Karp over (endpoint, visited-subset) states.

    ``opt({v}, v) = cost(start, v)`` and
    ``opt(S, t) = min(opt(S - {t}, q) + cost(q, t) for q in S - {t})``.
    Entries are filled on first use, so each state is computed at most once.
    """

    name = "held_karp"
    family = AlgorithmFamily.EXACT

    def __init__(self, max_vertices: int = 20):
        self.max_vertices = max_vertices

    def solve(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:
        dist_matrix = self._cost_matrix(graph)
        n = dist_matrix.shape[0]
        width = n - 1
        if width > MAX_SUBSET_BITS:
            raise TooLarge(f"{width} non-start vertices exceed the {MAX_SUBSET_BITS}-bit subset mask")
        if n > self.max_vertices:
            raise TooLarge(f"Held-Karp table for {n} vertices exceeds the limit of {self.max_vertices}")

        start_time = current_time()
        start = n - 1
        full_mask = (1 << width) - 1
        costs = np.full((width, 1 << width), UNCOMPUTED, dtype=float)
        predecessors = np.full((width, 1 << width), -1, dtype=np.int8)
        states_computed = 0
        cache_hits = 0

        for vertex in range(width):
            costs[vertex, 1 << vertex] = dist_matrix[start, vertex]
            states_computed += 1

        def partial_cost(mask: int, end: int) -> float:
            nonlocal states_computed, cache_hits
            cached = costs[end, mask]
            if cached != UNCOMPUTED:
                cache_hits += 1
                return float(cached)

            enforce_time_budget(start_time, time_limit)
            subset = mask & ~(1 << end)
            best = float("inf")
            best_prev = -1
            for prev in range(width):
                if not subset & (1 << prev):
                    continue
                cost = partial_cost(subset, prev) + float(dist_matrix[prev, end])
                if cost < best:
                    best = cost
                    best_prev = prev
            costs[end, mask] = best
            predecessors[end, mask] = best_prev
            states_computed += 1
            return best

        try:
            best_cost = float("inf")
            best_last = -1
            for last in range(width):
                cost = partial_cost(full_mask, last) + float(dist_matrix[last, start])
                if cost < best_cost:
                    best_cost = cost
                    best_last = last
        except TimeLimitExpired:
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status="timeout",
                metadata={"states_computed": states_computed, "cache_hits": cache_hits},
            )

        if not np.isfinite(best_cost):
            raise Infeasible("No Hamiltonian cycle avoids the forbidden edges")

        permutation: list[int] = []
        mask = full_mask
        vertex = best_last
        while vertex != -1:
            permutation.append(vertex)
            prev = int(predecessors[vertex, mask])
            mask &= ~(1 << vertex)
            vertex = prev
        permutation.reverse()

        logger.debug(
            "%s finished n=%d cost=%s states=%d hits=%d", self.name, n, best_cost, states_computed, cache_hits
        )
        return AlgorithmResult(
            name=self.name,
            path=permutation_cycle(permutation, start),
            cost=best_cost,
            elapsed=current_time() - start_time,
            status="complete",
            metadata={"states_computed": states_computed, "cache_hits": cache_hits},
            permutation=permutation,
        )


__all__ = ["HeldKarpSolver", "MAX_SUBSET_BITS"]
