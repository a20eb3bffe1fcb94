from __future__ import annotations

import numpy as np
import pytest

from ExactATSP.graph import Graph

INF = float("inf")

WORKED_EXAMPLE = [
    [INF, 10, 15, 20],
    [5, INF, 9, 10],
    [6, 13, INF, 12],
    [8, 8, 9, INF],
]


@pytest.fixture
def worked_example() -> Graph:
    return Graph(WORKED_EXAMPLE)


def random_instance(n: int, seed: int, forbidden_share: float = 0.0) -> Graph:
    rng = np.random.default_rng(seed)
    matrix = rng.integers(1, 100, size=(n, n)).astype(float)
    if forbidden_share:
        matrix[rng.random((n, n)) < forbidden_share] = INF
    return Graph(matrix)
