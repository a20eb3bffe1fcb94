from __future__ import annotations

import numpy as np
import pytest

from ExactATSP.errors import Infeasible, InvalidInput, TooLarge
from ExactATSP.graph import Graph
from ExactATSP.solvers.exact.held_karp import HeldKarpSolver

from conftest import random_instance


def test_worked_example(worked_example):
    result = HeldKarpSolver().solve(worked_example)
    assert result.status == "complete"
    assert result.cost == 35
    assert result.permutation == [2, 0, 1]
    assert result.path == [3, 2, 0, 1, 3]


def test_two_vertices():
    result = HeldKarpSolver().solve(Graph([[0, 4], [7, 0]]))
    assert result.cost == 11
    assert result.permutation == [0]
    assert result.metadata["states_computed"] == 1


@pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 8])
def test_each_state_is_computed_once(n):
    result = HeldKarpSolver().solve(random_instance(n, seed=n))
    # every (endpoint, subset containing it) pair over the n - 1 non-start vertices
    assert result.metadata["states_computed"] == (n - 1) * 2 ** (n - 2)


def test_memo_is_reused(worked_example):
    result = HeldKarpSolver().solve(worked_example)
    assert result.metadata["cache_hits"] > 0


def test_permutation_realizes_cost():
    graph = random_instance(7, seed=11)
    result = HeldKarpSolver().solve(graph)
    cycle = result.path
    matrix = graph.matrix
    assert sum(matrix[a, b] for a, b in zip(cycle, cycle[1:])) == result.cost


def test_vertex_limit_raises_too_large():
    with pytest.raises(TooLarge):
        HeldKarpSolver(max_vertices=4).solve(random_instance(5, seed=0))


def test_subset_width_raises_too_large():
    with pytest.raises(TooLarge):
        HeldKarpSolver(max_vertices=1000).solve(np.ones((65, 65)))


def test_no_feasible_tour():
    graph = Graph.from_rows([[None, None, None], [1, None, 1], [1, 1, None]])
    with pytest.raises(Infeasible):
        HeldKarpSolver().solve(graph)


def test_invalid_matrix():
    with pytest.raises(InvalidInput):
        HeldKarpSolver().solve(np.ones((3, 4)))


def test_exhausted_budget_reports_timeout():
    result = HeldKarpSolver().solve(random_instance(6, seed=3), time_limit=0.0)
    assert result.status == "timeout"
    assert result.cost is None
    assert result.path is None
