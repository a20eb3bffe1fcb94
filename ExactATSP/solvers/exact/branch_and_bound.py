"""Little's branch-and-bound for the asymmetric TSP.

Every search node owns a reduced copy of the cost matrix. Reducing rows and
columns to a zero minimum yields a lower bound for any tour consistent with
the node's fixed and forbidden edges. The zero cell whose exclusion would
raise the bound most (its penalty) is chosen for branching:

* the exclude child forbids that edge;
* the include child fixes it, removes its row and column, and forbids the
  edge that would close the merged fragment into a premature sub-cycle.

Nodes are expanded lowest bound first, ties going to the node with more
fixed edges. The search stops when the best bound in the frontier is no
longer below the incumbent tour cost.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from ExactATSP.graph import FORBIDDEN, Graph, is_strongly_connected
from ExactATSP.solvers.base import (
    AlgorithmResult,
    BaseSolver,
    Infeasible,
    TimeLimitExpired,
    compute_cycle_cost,
    current_time,
    enforce_time_budget,
    target_function_value,
)
from ExactATSP.utils.taxonomy import AlgorithmFamily

logger = logging.getLogger(__name__)

BOUND_TOLERANCE = 1e-9


@dataclass
class SearchNode:
    matrix: np.ndarray | None
    lower_bound: float
    edges_fixed: int
    active_rows: np.ndarray
    active_cols: np.ndarray
    successors: Dict[int, int] = field(default_factory=dict)
    branch_cell: Tuple[int, int] | None = None
    branch_penalty: float = 0.0


def _min_excluding(values: np.ndarray, index: int) -> float:
    if values.size <= 1:
        return FORBIDDEN
    return float(np.min(np.delete(values, index)))


def reduce_node(node: SearchNode) -> None:
    """Reduce the node's matrix in place, raise its bound and pick the branching cell."""
    rows = np.flatnonzero(node.active_rows)
    cols = np.flatnonzero(node.active_cols)
    block = node.matrix[np.ix_(rows, cols)]
    node.branch_cell = None
    node.branch_penalty = 0.0

    row_mins = block.min(axis=1)
    if not np.isfinite(row_mins).all():
        # An active row with no usable edge: no tour completes this node.
        node.lower_bound = FORBIDDEN
        return
    block -= row_mins[:, None]

    col_mins = block.min(axis=0)
    if not np.isfinite(col_mins).all():
        node.lower_bound = FORBIDDEN
        return
    block -= col_mins[None, :]

    node.lower_bound += float(row_mins.sum() + col_mins.sum())
    node.matrix[np.ix_(rows, cols)] = block

    best_penalty = -1.0
    for r, c in np.argwhere(block == 0):
        penalty = _min_excluding(block[r, :], c) + _min_excluding(block[:, c], r)
        if penalty > best_penalty:
            best_penalty = penalty
            node.branch_cell = (int(rows[r]), int(cols[c]))
    node.branch_penalty = best_penalty


def fragment_endpoints(successors: Dict[int, int], vertex: int) -> Tuple[int, int]:
    """Head and tail of the chain of fixed edges passing through ``vertex``."""
    predecessors = {target: source for source, target in successors.items()}
    head = vertex
    while head in predecessors:
        head = predecessors[head]
    tail = vertex
    while tail in successors:
        tail = successors[tail]
    return head, tail


def exclude_child(node: SearchNode) -> SearchNode:
    i, j = node.branch_cell
    child = SearchNode(
        matrix=node.matrix.copy(),
        lower_bound=node.lower_bound,
        edges_fixed=node.edges_fixed,
        active_rows=node.active_rows.copy(),
        active_cols=node.active_cols.copy(),
        successors=dict(node.successors),
    )
    child.matrix[i, j] = FORBIDDEN
    reduce_node(child)
    return child


def include_child(node: SearchNode) -> SearchNode:
    i, j = node.branch_cell
    child = SearchNode(
        matrix=node.matrix.copy(),
        lower_bound=node.lower_bound,
        edges_fixed=node.edges_fixed + 1,
        active_rows=node.active_rows.copy(),
        active_cols=node.active_cols.copy(),
        successors=dict(node.successors),
    )
    child.successors[i] = j
    child.matrix[i, :] = FORBIDDEN
    child.matrix[:, j] = FORBIDDEN
    child.active_rows[i] = False
    child.active_cols[j] = False
    head, tail = fragment_endpoints(child.successors, i)
    child.matrix[tail, head] = FORBIDDEN
    reduce_node(child)
    return child


class Frontier:
    """Open nodes ordered by lower bound, then by more fixed edges, then insertion order."""

    def __init__(self):
        self._heap: List[Tuple[float, int, int, SearchNode]] = []
        self._sequence = itertools.count()

    def push(self, node: SearchNode) -> None:
        heapq.heappush(self._heap, (node.lower_bound, -node.edges_fixed, next(self._sequence), node))

    def pop(self) -> SearchNode:
        return heapq.heappop(self._heap)[-1]

    def best_bound(self) -> float:
        return self._heap[0][0] if self._heap else FORBIDDEN

    def __len__(self) -> int:
        return len(self._heap)


def close_tour(node: SearchNode, start: int) -> List[int] | None:
    """Close a node with ``n - 2`` fixed edges into a cycle beginning at ``start``.

    The two remaining fragments are joined tail to head; returns ``None``
    when a joining edge is forbidden.
    """
    n = node.matrix.shape[0]
    predecessors = set(node.successors.values())
    heads = [vertex for vertex in range(n) if vertex not in predecessors]
    if len(heads) != 2:
        raise RuntimeError(f"Expected two path fragments, found {len(heads)}")
    tails = [fragment_endpoints(node.successors, head)[1] for head in heads]

    successors = dict(node.successors)
    for tail, head in ((tails[0], heads[1]), (tails[1], heads[0])):
        if not np.isfinite(node.matrix[tail, head]):
            return None
        successors[tail] = head

    cycle = [start]
    while len(cycle) < n:
        cycle.append(successors[cycle[-1]])
    return cycle


class BranchAndBoundSolver(BaseSolver):
    name = "branch_and_bound"
    family = AlgorithmFamily.EXACT

    def solve(self, graph: Graph | np.ndarray, time_limit: float = 5.0) -> AlgorithmResult:
        dist_matrix = self._cost_matrix(graph)
        if not is_strongly_connected(dist_matrix):
            raise Infeasible("Graph is not strongly connected")
        start_time = current_time()
        n = dist_matrix.shape[0]
        start = n - 1

        identity = list(range(start))
        best_cost = target_function_value(dist_matrix, identity)
        best_cycle_path: List[int] | None = [start, *identity] if np.isfinite(best_cost) else None
        incumbent_history = [best_cost]
        nodes_explored = 0
        nodes_pruned = 0
        frontier = Frontier()

        def consider(node: SearchNode) -> None:
            nonlocal best_cost, best_cycle_path, nodes_pruned
            if node.lower_bound >= best_cost:
                nodes_pruned += 1
                return
            if node.edges_fixed < n - 2:
                frontier.push(node)
                return

            cycle = close_tour(node, start)
            if cycle is None:
                nodes_pruned += 1
                return
            cost = compute_cycle_cost(dist_matrix, cycle)
            if cost < node.lower_bound - BOUND_TOLERANCE * max(1.0, abs(cost)):
                raise RuntimeError(f"Tour cost {cost} is below its lower bound {node.lower_bound}")
            if cost < best_cost:
                logger.debug("%s incumbent %s -> %s", self.name, best_cost, cost)
                best_cost = cost
                best_cycle_path = cycle
                incumbent_history.append(cost)

        root = SearchNode(
            matrix=dist_matrix.copy(),
            lower_bound=0.0,
            edges_fixed=0,
            active_rows=np.ones(n, dtype=bool),
            active_cols=np.ones(n, dtype=bool),
        )
        reduce_node(root)
        root_bound = root.lower_bound
        consider(root)

        status = "complete"
        try:
            while frontier and frontier.best_bound() < best_cost:
                enforce_time_budget(start_time, time_limit)
                node = frontier.pop()
                nodes_explored += 1
                children = (exclude_child(node), include_child(node))
                node.matrix = None
                for child in children:
                    consider(child)
        except TimeLimitExpired:
            status = "timeout"

        metadata = {
            "nodes_explored": nodes_explored,
            "nodes_pruned": nodes_pruned,
            "root_bound": root_bound,
            "incumbent_history": incumbent_history,
        }
        if best_cycle_path is None:
            if status == "complete":
                raise Infeasible("Search exhausted without a Hamiltonian cycle")
            return AlgorithmResult(
                name=self.name,
                path=None,
                cost=None,
                elapsed=current_time() - start_time,
                status=status,
                metadata=metadata,
            )

        logger.debug("%s explored %d nodes, pruned %d", self.name, nodes_explored, nodes_pruned)
        return AlgorithmResult(
            name=self.name,
            path=best_cycle_path + [start],
            cost=best_cost,
            elapsed=current_time() - start_time,
            status=status,
            metadata=metadata,
            permutation=best_cycle_path[1:],
        )


__all__ = [
    "BranchAndBoundSolver",
    "Frontier",
    "SearchNode",
    "close_tour",
    "exclude_child",
    "fragment_endpoints",
    "include_child",
    "reduce_node",
]
