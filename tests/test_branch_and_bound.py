from __future__ import annotations

import numpy as np
import pytest

from ExactATSP.errors import Infeasible
from ExactATSP.graph import Graph
from ExactATSP.solvers.base import target_function_value
from ExactATSP.solvers.exact.branch_and_bound import (
    BranchAndBoundSolver,
    Frontier,
    SearchNode,
    close_tour,
    exclude_child,
    fragment_endpoints,
    include_child,
    reduce_node,
)

from conftest import random_instance


def make_root(graph: Graph) -> SearchNode:
    n = graph.vertex_count()
    root = SearchNode(
        matrix=graph.matrix,
        lower_bound=0.0,
        edges_fixed=0,
        active_rows=np.ones(n, dtype=bool),
        active_cols=np.ones(n, dtype=bool),
    )
    reduce_node(root)
    return root


def test_root_reduction_of_worked_example(worked_example):
    root = make_root(worked_example)
    assert root.lower_bound == 35
    assert root.branch_cell == (0, 1)
    assert root.branch_penalty == 4


def test_exclude_child_adds_penalty(worked_example):
    root = make_root(worked_example)
    child = exclude_child(root)
    assert np.isinf(child.matrix[0, 1])
    assert child.lower_bound == root.lower_bound + root.branch_penalty
    assert child.edges_fixed == 0


def test_include_child_forbids_closing_edge(worked_example):
    root = make_root(worked_example)
    child = include_child(root)
    assert child.edges_fixed == 1
    assert child.successors == {0: 1}
    assert not child.active_rows[0] and not child.active_cols[1]
    # 0 -> 1 is fixed, so 1 -> 0 would close a two-vertex cycle
    assert np.isinf(child.matrix[1, 0])
    assert child.lower_bound == 35


def test_fragment_endpoints():
    successors = {0: 1, 1: 3, 4: 2}
    assert fragment_endpoints(successors, 1) == (0, 3)
    assert fragment_endpoints(successors, 3) == (0, 3)
    assert fragment_endpoints(successors, 2) == (4, 2)
    assert fragment_endpoints(successors, 5) == (5, 5)


def _assert_bounds_monotonic(node: SearchNode, n: int, budget: list[int]) -> None:
    if budget[0] <= 0 or node.edges_fixed == n - 2 or not np.isfinite(node.lower_bound):
        return
    budget[0] -= 1
    for child in (exclude_child(node), include_child(node)):
        assert child.lower_bound >= node.lower_bound
        _assert_bounds_monotonic(child, n, budget)


@pytest.mark.parametrize("seed", range(5))
def test_child_bounds_never_drop(seed):
    graph = random_instance(6, seed=seed)
    _assert_bounds_monotonic(make_root(graph), 6, [200])


def test_close_tour_joins_the_two_fragments(worked_example):
    root = make_root(worked_example)
    node = include_child(root)
    node = include_child(node)
    assert node.edges_fixed == 2
    assert close_tour(node, start=3) == [3, 2, 0, 1]


def test_worked_example(worked_example):
    result = BranchAndBoundSolver().solve(worked_example)
    assert result.status == "complete"
    assert result.cost == 35
    assert result.permutation == [2, 0, 1]
    assert result.path == [3, 2, 0, 1, 3]
    assert result.metadata["root_bound"] == 35


@pytest.mark.parametrize("seed", range(8))
def test_incumbent_never_increases(seed):
    result = BranchAndBoundSolver().solve(random_instance(7, seed=seed))
    history = result.metadata["incumbent_history"]
    assert all(later <= earlier for earlier, later in zip(history, history[1:]))
    assert history[-1] == result.cost


def test_two_vertices():
    result = BranchAndBoundSolver().solve(Graph([[0, 4], [7, 0]]))
    assert result.cost == 11
    assert result.permutation == [0]


def test_identity_tour_is_kept_when_optimal():
    matrix = np.full((5, 5), 50.0)
    for i in range(4):
        matrix[4 if i == 0 else i - 1, i] = 1.0
    matrix[3, 4] = 1.0
    result = BranchAndBoundSolver().solve(matrix)
    assert result.cost == 5
    assert result.permutation == [0, 1, 2, 3]


def test_not_strongly_connected():
    graph = Graph.from_rows([[None, None, None], [1, None, 1], [1, 1, None]])
    with pytest.raises(Infeasible):
        BranchAndBoundSolver().solve(graph)


def test_strongly_connected_without_hamiltonian_cycle():
    # every vertex only talks to the hub, vertex 3
    graph = Graph.from_rows(
        [
            [None, None, None, 1],
            [None, None, None, 1],
            [None, None, None, 1],
            [1, 1, 1, None],
        ]
    )
    assert graph.is_strongly_connected()
    with pytest.raises(Infeasible):
        BranchAndBoundSolver().solve(graph)


def _node(lower_bound: float, edges_fixed: int) -> SearchNode:
    return SearchNode(
        matrix=None,
        lower_bound=lower_bound,
        edges_fixed=edges_fixed,
        active_rows=np.ones(3, dtype=bool),
        active_cols=np.ones(3, dtype=bool),
    )


def test_frontier_prefers_lower_bound():
    frontier = Frontier()
    high, low = _node(40.0, 3), _node(35.0, 0)
    frontier.push(high)
    frontier.push(low)
    assert frontier.best_bound() == 35.0
    assert frontier.pop() is low
    assert frontier.pop() is high
    assert len(frontier) == 0
    assert frontier.best_bound() == float("inf")


def test_frontier_breaks_bound_ties_towards_more_fixed_edges():
    frontier = Frontier()
    shallow, deep, middle = _node(35.0, 0), _node(35.0, 2), _node(35.0, 1)
    for node in (shallow, deep, middle):
        frontier.push(node)
    assert frontier.pop() is deep
    assert frontier.pop() is middle
    assert frontier.pop() is shallow


def test_frontier_is_fifo_on_full_ties():
    frontier = Frontier()
    first, second = _node(35.0, 1), _node(35.0, 1)
    frontier.push(first)
    frontier.push(second)
    assert frontier.pop() is first
    assert frontier.pop() is second


def test_exhausted_budget_returns_incumbent():
    graph = random_instance(14, seed=1)
    result = BranchAndBoundSolver().solve(graph, time_limit=0.0)
    assert result.status == "timeout"
    assert result.cost is not None
    assert result.cost == result.metadata["incumbent_history"][-1]
    assert target_function_value(graph.matrix, result.permutation) == result.cost
    assert result.path == [13, *result.permutation, 13]
