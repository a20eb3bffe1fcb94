"""Benchmark harness: run solvers over instance directories with known optima.

Every instance directory holds raw instance files plus one solution file
(``solution.txt`` by default) listing ``<instance file> <optimal cost>`` per
line. Exact solvers must reproduce the optimum; heuristics must not beat it.
"""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
from dataclasses import asdict, dataclass
from typing import Iterable, List, Sequence

from tqdm import tqdm

from ExactATSP.errors import InvalidInput
from ExactATSP.graph import load_instance
from ExactATSP.solvers import SOLVER_REGISTRY, AlgorithmResult, BaseSolver, get_solver
from ExactATSP.solvers.base import target_function_value
from ExactATSP.utils.taxonomy import AlgorithmFamily

logger = logging.getLogger(__name__)

DEFAULT_SOLUTION_FILE = "solution.txt"
COST_TOLERANCE = 1e-6


@dataclass
class BenchmarkCase:
    name: str
    path: pathlib.Path
    optimum: float


@dataclass
class BenchmarkOutcome:
    case: BenchmarkCase
    algorithm: str
    result: AlgorithmResult | None
    passed: bool
    reason: str | None = None
    error: str | None = None

    def to_record(self) -> dict:
        record = {
            "algorithm": self.algorithm,
            "instance": self.case.name,
            "directory": str(self.case.path.parent),
            "optimum": self.case.optimum,
            "passed": self.passed,
            "reason": self.reason,
            "error": self.error,
        }
        if self.result is not None:
            record.update(asdict(self.result))
        return record


def read_solution_file(path: pathlib.Path) -> dict[str, float]:
    optima: dict[str, float] = {}
    with path.open("r", encoding="utf-8") as fh:
        for line_number, line in enumerate(fh, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            parts = line.split()
            if len(parts) != 2:
                raise InvalidInput(f"{path}:{line_number}: expected '<instance> <cost>', got {line!r}")
            try:
                optima[parts[0]] = float(parts[1])
            except ValueError as exc:
                raise InvalidInput(f"{path}:{line_number}: invalid cost {parts[1]!r}") from exc
    return optima


def load_benchmark_directory(
    directory: str | pathlib.Path, solution_file: str = DEFAULT_SOLUTION_FILE
) -> List[BenchmarkCase]:
    directory = pathlib.Path(directory)
    solution_path = directory / solution_file
    if not solution_path.exists():
        raise FileNotFoundError(f"Solution file not found: {solution_path}")

    cases: List[BenchmarkCase] = []
    for name, optimum in sorted(read_solution_file(solution_path).items()):
        instance_path = directory / name
        if not instance_path.exists():
            raise FileNotFoundError(f"Instance listed in {solution_path} not found: {instance_path}")
        cases.append(BenchmarkCase(name=name, path=instance_path, optimum=optimum))
    return cases


def check_result(result: AlgorithmResult, optimum: float, family: AlgorithmFamily, dist_matrix) -> str | None:
    """Return the reason a result fails validation, or ``None`` when it passes."""
    if result.status != "complete" or result.cost is None:
        return result.status
    if result.permutation is not None:
        rescored = target_function_value(dist_matrix, result.permutation)
        if abs(rescored - result.cost) > COST_TOLERANCE:
            return "cost_mismatch"
    if family == AlgorithmFamily.EXACT:
        if abs(result.cost - optimum) > COST_TOLERANCE:
            return "not_optimal"
    elif result.cost < optimum - COST_TOLERANCE:
        return "below_optimum"
    return None


def run_case(case: BenchmarkCase, solver: BaseSolver, time_limit: float = 5.0) -> BenchmarkOutcome:
    try:
        graph = load_instance(case.path)
        result = solver.solve(graph, time_limit=time_limit)
    except Exception as exc:  # noqa: BLE001
        logger.warning("%s on %s raised %s: %s", solver.name, case.name, type(exc).__name__, exc)
        return BenchmarkOutcome(
            case=case,
            algorithm=solver.name,
            result=None,
            passed=False,
            reason=type(exc).__name__,
            error=str(exc),
        )

    reason = check_result(result, case.optimum, solver.family, graph.matrix)
    if reason is not None:
        logger.warning(
            "%s on %s failed validation: %s (cost=%s, optimum=%s)",
            solver.name,
            case.name,
            reason,
            result.cost,
            case.optimum,
        )
    return BenchmarkOutcome(case=case, algorithm=solver.name, result=result, passed=reason is None, reason=reason)


def run_benchmark(
    directories: Iterable[str | pathlib.Path],
    algorithms: Sequence[str],
    time_limit: float = 5.0,
    solution_file: str = DEFAULT_SOLUTION_FILE,
    progress: bool = True,
) -> List[BenchmarkOutcome]:
    cases: List[BenchmarkCase] = []
    for directory in directories:
        cases.extend(load_benchmark_directory(directory, solution_file))

    outcomes: List[BenchmarkOutcome] = []
    for case in tqdm(cases, desc="Benchmarking", unit="instance", disable=not progress):
        for algo_name in algorithms:
            outcomes.append(run_case(case, get_solver(algo_name), time_limit))
    return outcomes


def parse_args(raw_args: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run ATSP solvers on benchmark instance directories.")
    parser.add_argument(
        "--instances",
        type=pathlib.Path,
        nargs="+",
        required=True,
        help="Directories holding instance files and a solution file.",
    )
    parser.add_argument(
        "--algorithms",
        nargs="+",
        choices=sorted(SOLVER_REGISTRY.keys()),
        help="Subset of algorithms to execute (default: all).",
    )
    parser.add_argument(
        "--time-limit",
        type=float,
        default=5.0,
        help="Per-algorithm time budget in seconds.",
    )
    parser.add_argument(
        "--solution-file",
        default=DEFAULT_SOLUTION_FILE,
        help="Name of the known-solution file inside each directory.",
    )
    parser.add_argument(
        "--results",
        type=pathlib.Path,
        default=None,
        help="Optional JSONL file receiving one record per run.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    return parser.parse_args(raw_args)


def main(raw_args: Iterable[str] | None = None) -> int:
    args = parse_args(raw_args)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    algorithms = args.algorithms or list(SOLVER_REGISTRY.keys())

    outcomes = run_benchmark(
        args.instances,
        algorithms,
        time_limit=args.time_limit,
        solution_file=args.solution_file,
        progress=not args.no_progress,
    )

    if args.results is not None:
        args.results.parent.mkdir(parents=True, exist_ok=True)
        with args.results.open("w", encoding="utf-8") as out:
            for outcome in outcomes:
                out.write(json.dumps(outcome.to_record(), default=str))
                out.write("\n")

    failures = [outcome for outcome in outcomes if not outcome.passed]
    for algo_name in algorithms:
        runs = [outcome for outcome in outcomes if outcome.algorithm == algo_name]
        passed = sum(outcome.passed for outcome in runs)
        elapsed = sum(outcome.result.elapsed for outcome in runs if outcome.result is not None)
        logger.info("%s: %d/%d passed, %.4fs total", algo_name, passed, len(runs), elapsed)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
