from __future__ import annotations

import pathlib
from typing import Iterable, List, Sequence

import networkx as nx
import numpy as np

from ExactATSP.errors import InvalidInput

FORBIDDEN = float("inf")


class Graph:
    """Dense directed cost matrix with vertex ``n - 1`` as the fixed start.

    Forbidden edges are stored as ``inf`` so that bound arithmetic saturates
    instead of wrapping. The diagonal is always forbidden.
    """

    def __init__(self, matrix: Sequence[Sequence[float]] | np.ndarray):
        dist_matrix = np.array(matrix, dtype=float)
        if dist_matrix.ndim != 2 or dist_matrix.shape[0] != dist_matrix.shape[1]:
            raise InvalidInput(f"Cost matrix must be square, got shape {dist_matrix.shape}")
        n = dist_matrix.shape[0]
        if n < 2:
            raise InvalidInput(f"Instance needs at least 2 vertices, got {n}")
        np.fill_diagonal(dist_matrix, FORBIDDEN)
        if np.isnan(dist_matrix).any():
            raise InvalidInput("Cost matrix contains NaN values")
        if (dist_matrix < 0).any():
            raise InvalidInput("Cost matrix contains negative costs")
        dist_matrix.setflags(write=False)
        self._matrix = dist_matrix

    @classmethod
    def from_rows(cls, rows: Iterable[Iterable[float | None]]) -> "Graph":
        """Build a graph from nested rows where ``None`` or a negative value forbids an edge."""
        parsed: List[List[float]] = []
        for row in rows:
            parsed.append([FORBIDDEN if value is None or value < 0 else float(value) for value in row])
        return cls(parsed)

    def vertex_count(self) -> int:
        return self._matrix.shape[0]

    def edge_cost(self, i: int, j: int) -> float:
        n = self.vertex_count()
        if not (0 <= i < n and 0 <= j < n):
            raise InvalidInput(f"Edge ({i}, {j}) is out of range for {n} vertices")
        return float(self._matrix[i, j])

    @property
    def start_vertex(self) -> int:
        return self.vertex_count() - 1

    @property
    def matrix(self) -> np.ndarray:
        """Writable copy of the cost matrix."""
        return self._matrix.copy()

    def is_strongly_connected(self) -> bool:
        return is_strongly_connected(self._matrix)

    def __repr__(self) -> str:
        return f"Graph(n={self.vertex_count()})"


def is_strongly_connected(dist_matrix: np.ndarray) -> bool:
    """Whether every vertex reaches every other over non-forbidden edges.

    A graph that is not strongly connected has no Hamiltonian cycle.
    """
    digraph = nx.DiGraph()
    digraph.add_nodes_from(range(dist_matrix.shape[0]))
    rows, cols = np.nonzero(np.isfinite(dist_matrix))
    digraph.add_edges_from(zip(rows.tolist(), cols.tolist()))
    return nx.is_strongly_connected(digraph)


def as_cost_matrix(graph: Graph | Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    if not isinstance(graph, Graph):
        graph = Graph(graph)
    return graph.matrix


def _parse_number(token: str) -> float:
    try:
        value = float(token)
    except ValueError as exc:
        raise InvalidInput(f"Invalid cost value: {token!r}") from exc
    return FORBIDDEN if value < 0 else value


def _parse_plain(tokens: List[str]) -> Graph:
    if not tokens:
        raise InvalidInput("Instance file is empty")
    try:
        n = int(tokens[0])
    except ValueError as exc:
        raise InvalidInput(f"Invalid vertex count: {tokens[0]!r}") from exc
    values = tokens[1:]
    if len(values) != n * n:
        raise InvalidInput(f"Expected {n * n} costs for {n} vertices, got {len(values)}")
    numbers = [_parse_number(token) for token in values]
    return Graph(np.asarray(numbers, dtype=float).reshape(n, n))


def _parse_tsplib(text: str) -> Graph:
    header: dict[str, str] = {}
    weights: List[str] = []
    in_section = False
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line == "EOF":
            break
        if in_section:
            weights.extend(line.split())
            continue
        if line.startswith("EDGE_WEIGHT_SECTION"):
            in_section = True
            continue
        if ":" in line:
            key, value = line.split(":", 1)
            header[key.strip().upper()] = value.strip()

    if "DIMENSION" not in header:
        raise InvalidInput("TSPLIB instance is missing DIMENSION")
    weight_format = header.get("EDGE_WEIGHT_FORMAT", "FULL_MATRIX").upper()
    if weight_format != "FULL_MATRIX":
        raise InvalidInput(f"Unsupported EDGE_WEIGHT_FORMAT: {weight_format}")
    return _parse_plain([header["DIMENSION"], *weights])


def load_instance(path: str | pathlib.Path) -> Graph:
    """Load an instance in the plain ``n`` + matrix format or TSPLIB FULL_MATRIX format."""
    path = pathlib.Path(path)
    text = path.read_text(encoding="utf-8")
    if "EDGE_WEIGHT_SECTION" in text:
        return _parse_tsplib(text)
    return _parse_plain(text.split())


__all__ = ["FORBIDDEN", "Graph", "as_cost_matrix", "is_strongly_connected", "load_instance"]
