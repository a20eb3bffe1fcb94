from __future__ import annotations

import pytest

from ExactATSP.errors import InvalidInput
from ExactATSP.graph import Graph
from ExactATSP.solvers.base import compute_cycle_cost, target_function_value


def test_worked_example_tours(worked_example):
    matrix = worked_example.matrix
    assert target_function_value(matrix, [2, 0, 1]) == 35
    assert target_function_value(matrix, [0, 1, 2]) == 39


def test_matches_explicit_cycle_cost(worked_example):
    matrix = worked_example.matrix
    assert target_function_value(matrix, [1, 0, 2]) == compute_cycle_cost(matrix, [3, 1, 0, 2])


def test_rescoring_is_deterministic(worked_example):
    matrix = worked_example.matrix
    first = target_function_value(matrix, (1, 2, 0))
    assert target_function_value(matrix, (1, 2, 0)) == first


def test_forbidden_edge_scores_infinite():
    matrix = [[float("inf"), float("inf"), 1], [1, float("inf"), 1], [1, 1, float("inf")]]
    assert target_function_value(Graph(matrix).matrix, [0, 1]) == float("inf")


@pytest.mark.parametrize("permutation", [[0, 1], [0, 1, 2, 2], [0, 0, 1], [0, 1, 3], [-1, 0, 1], [0, 1.5, 2]])
def test_malformed_permutations(worked_example, permutation):
    with pytest.raises(InvalidInput):
        target_function_value(worked_example.matrix, permutation)
