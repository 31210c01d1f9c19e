"""Tests for the monotone QP and the smoothing engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pytest

from simratio.audit import AuditLogger
from simratio.config import RatiosConfig
from simratio.errors import ErrorKind, RatiosError
from simratio.smoothing import (
    QPSolver,
    QuadraticProgram,
    ScipyQPSolver,
    SmoothingStatus,
    build_monotonic_constraints,
    iter_lattice,
    monotone_envelope,
    smooth_ratios,
)


@dataclass
class PassThroughSolver:
    """Returns the targets unchanged and keeps the problems it was given."""

    problems: list[QuadraticProgram] = field(default_factory=list)

    def solve(self, problem: QuadraticProgram) -> np.ndarray:
        self.problems.append(problem)
        return problem.targets.copy()


@dataclass
class FixedSolver:
    """Returns a fixed vector regardless of the problem."""

    solution: np.ndarray

    def solve(self, problem: QuadraticProgram) -> np.ndarray:
        return self.solution


class FailingSolver:
    """Always fails like a non-convergent backend."""

    def solve(self, problem: QuadraticProgram) -> np.ndarray:
        raise RatiosError(ErrorKind.SOLVER_FAILURE, "did not converge")


@dataclass
class NonFiniteSolver:
    """Returns a vector filled with one non-finite value."""

    fill: float = np.nan

    def solve(self, problem: QuadraticProgram) -> np.ndarray:
        return np.full(problem.targets.shape, self.fill)


# ---------------------------------------------------------------------------
# Constraint matrix and envelope
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_build_monotonic_constraints_shape_and_rows() -> None:
    """Test one row per adjacent pair along every axis."""
    matrix = build_monotonic_constraints([0, 0], [1, 2])

    # 2 x 3 lattice: 3 pairs along axis 0, 2 * 2 along axis 1
    assert matrix.shape == (7, 6)
    assert np.allclose(np.asarray(matrix.sum(axis=1)).ravel(), 0.0)
    assert np.all(matrix @ np.arange(6.0) > 0)


@pytest.mark.unit
def test_build_monotonic_constraints_single_node() -> None:
    """Test a one-node lattice has no constraints."""
    assert build_monotonic_constraints([0], [0]).shape == (0, 1)


@pytest.mark.unit
def test_monotone_envelope() -> None:
    """Test running maximum along every axis."""
    assert monotone_envelope(np.array([1.0, 3.0, 2.0])).tolist() == [1.0, 3.0, 3.0]
    assert monotone_envelope(np.array([[3.0, 1.0], [0.0, 2.0]])).tolist() == [
        [3.0, 3.0],
        [3.0, 3.0],
    ]


@pytest.mark.unit
def test_quadratic_program_rejects_mismatched_shapes() -> None:
    """Test weights must match targets."""
    with pytest.raises(ValueError):
        QuadraticProgram(
            targets=np.ones(3),
            weights=np.ones(2),
            constraints=build_monotonic_constraints([0], [2]),
        )


# ---------------------------------------------------------------------------
# scipy backend
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_scipy_solver_is_a_qp_solver() -> None:
    """Test the backend satisfies the solver protocol."""
    assert isinstance(ScipyQPSolver(), QPSolver)


@pytest.mark.unit
def test_scipy_solver_pools_adjacent_violators() -> None:
    """Test a decreasing pair is pooled to its weighted mean."""
    problem = QuadraticProgram(
        targets=np.array([1.0, 3.0, 2.0]),
        weights=np.ones(3),
        constraints=build_monotonic_constraints([0], [2]),
    )

    solution = ScipyQPSolver().solve(problem)

    assert solution == pytest.approx([1.0, 2.5, 2.5], abs=1e-3)


@pytest.mark.unit
def test_scipy_solver_without_constraints_returns_targets() -> None:
    """Test a single-node problem is solved trivially."""
    problem = QuadraticProgram(
        targets=np.array([0.7]),
        weights=np.ones(1),
        constraints=build_monotonic_constraints([0], [0]),
    )

    assert ScipyQPSolver().solve(problem).tolist() == [0.7]


@pytest.mark.unit
def test_scipy_solver_iteration_limit_is_solver_failure() -> None:
    """Test non-convergence surfaces as SOLVER_FAILURE."""
    problem = QuadraticProgram(
        targets=np.array([5.0, 1.0, 4.0, 0.5]),
        weights=np.ones(4),
        constraints=build_monotonic_constraints([0], [3]),
    )

    with pytest.raises(RatiosError) as exc_info:
        ScipyQPSolver(max_iter=1).solve(problem)

    assert exc_info.value.kind is ErrorKind.SOLVER_FAILURE


# ---------------------------------------------------------------------------
# smooth_ratios
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_smooth_ratios_fills_lattice_monotonically(assert_monotone) -> None:
    """Test the smoothed table covers the lattice and never decreases."""
    ratios = {(0, 0): 1.0, (0, 2): 0.5, (1, 1): 2.0, (2, 0): 4.0, (2, 2): 3.0}
    x_counts = {(0, 0): 10, (0, 2): 3, (2, 2): 1}
    m_counts = {(1, 1): 4, (2, 0): 2, (2, 2): 6}

    result = smooth_ratios(ratios, x_counts, m_counts, [0, 0], [2, 2], RatiosConfig())

    assert result.status is SmoothingStatus.SMOOTHED
    assert result.smoothed
    assert set(result.ratios) == set(iter_lattice([0, 0], [2, 2]))
    assert result.total_nodes == 9
    assert result.observed_nodes == 5
    assert all(value > 0 for value in result.ratios.values())
    assert_monotone(result.ratios)


@pytest.mark.unit
def test_smooth_ratios_keeps_monotone_table() -> None:
    """Test an already monotone full table is left (nearly) unchanged."""
    ratios = {(0, 0): 1.0, (0, 1): 2.0, (1, 0): 2.0, (1, 1): 4.0}

    result = smooth_ratios(ratios, {}, {}, [0, 0], [1, 1], RatiosConfig())

    for profile, value in ratios.items():
        assert result.ratios[profile] == pytest.approx(value, abs=1e-3)


@pytest.mark.unit
def test_smooth_ratios_weights_observed_nodes_by_counts() -> None:
    """Test observed nodes weigh 1 + x + m and filled nodes the filled weight."""
    solver = PassThroughSolver()

    smooth_ratios(
        {(0,): 1.0, (2,): 3.0},
        {(0,): 4},
        {(2,): 2},
        [0],
        [2],
        RatiosConfig(),
        solver=solver,
    )

    problem = solver.problems[0]
    assert problem.weights.tolist() == [5.0, 0.01, 3.0]
    assert problem.targets.tolist() == pytest.approx([1.0, 2.0, 3.0])
    assert problem.constraints.shape == (2, 3)


@pytest.mark.unit
def test_smooth_ratios_envelope_removes_violations() -> None:
    """Test solver output is repaired into a monotone table."""
    result = smooth_ratios(
        {(0,): 3.0, (1,): 1.0}, {}, {}, [0], [1], RatiosConfig(), solver=PassThroughSolver()
    )

    assert result.ratios == {(0,): 3.0, (1,): 3.0}


@pytest.mark.unit
def test_smooth_ratios_clips_to_min_ratio() -> None:
    """Test non-positive solver output is floored."""
    config = RatiosConfig(min_ratio=1e-6)
    solver = FixedSolver(np.array([-1.0, 2.0]))

    result = smooth_ratios({(0,): 0.5, (1,): 2.0}, {}, {}, [0], [1], config, solver=solver)

    assert result.ratios[(0,)] == 1e-6
    assert result.ratios[(1,)] == 2.0


@pytest.mark.unit
def test_smooth_ratios_wrong_solution_length() -> None:
    """Test a backend returning the wrong vector size fails."""
    solver = FixedSolver(np.array([1.0]))

    with pytest.raises(RatiosError) as exc_info:
        smooth_ratios({(0,): 0.5, (1,): 2.0}, {}, {}, [0], [1], RatiosConfig(), solver=solver)

    assert exc_info.value.kind is ErrorKind.SOLVER_FAILURE


@pytest.mark.unit
def test_smooth_ratios_solver_failure_propagates() -> None:
    """Test SOLVER_FAILURE is not swallowed."""
    with pytest.raises(RatiosError) as exc_info:
        smooth_ratios(
            {(0,): 0.5, (1,): 2.0}, {}, {}, [0], [1], RatiosConfig(), solver=FailingSolver()
        )

    assert exc_info.value.kind is ErrorKind.SOLVER_FAILURE


@pytest.mark.unit
def test_smooth_ratios_over_cap_returns_raw_table(tmp_path: Path) -> None:
    """Test lattices over the cap are skipped with a warning, not an error."""
    ratios = {(0, 0): 2.0, (1, 1): 0.5}
    logger = AuditLogger(run_id="test_run", log_path=tmp_path / "events.jsonl")

    result = smooth_ratios(
        ratios,
        {},
        {},
        [0, 0],
        [1, 1],
        RatiosConfig(max_lattice_nodes=3),
        solver=FailingSolver(),
        logger=logger,
        table="joint",
    )
    logger.close()

    assert result.status is SmoothingStatus.LATTICE_TOO_LARGE
    assert not result.smoothed
    assert result.ratios == ratios
    assert result.to_dict() == {
        "status": "lattice_too_large",
        "total_nodes": 4,
        "observed_nodes": 2,
    }

    events = [json.loads(line) for line in (tmp_path / "events.jsonl").read_text().splitlines()]
    assert events[-1]["event"] == "smoothing_skipped"
    assert events[-1]["level"] == "WARN"
    assert events[-1]["data"]["table"] == "joint"


@pytest.mark.unit
@pytest.mark.parametrize("fill", [np.nan, np.inf, -np.inf])
def test_smooth_ratios_non_finite_solution_is_solver_failure(fill: float) -> None:
    """Test NaN or infinite values from any backend fail the pass."""
    with pytest.raises(RatiosError) as exc_info:
        smooth_ratios(
            {(0,): 0.5, (1,): 2.0},
            {},
            {},
            [0],
            [1],
            RatiosConfig(),
            solver=NonFiniteSolver(fill),
        )

    assert exc_info.value.kind is ErrorKind.SOLVER_FAILURE
    assert "non-finite" in str(exc_info.value)


@pytest.mark.unit
def test_default_cap_skips_inventor_joint_lattice() -> None:
    """Test the default cap never hands the 45 000-node joint lattice to a solver."""
    min_sp = [0, 0, 0, 0, 0, 0, 0]
    max_sp = [4, 3, 5, 2, 4, 4, 4]
    ratios = {(4, 3, 5, 2, 4, 4, 4): 10.0, (0, 0, 0, 0, 0, 0, 0): 0.1}

    result = smooth_ratios(ratios, {}, {}, min_sp, max_sp, RatiosConfig(), solver=FailingSolver())

    assert result.status is SmoothingStatus.LATTICE_TOO_LARGE
    assert result.total_nodes == 45_000
    assert result.ratios == ratios


@pytest.mark.unit
@pytest.mark.parametrize(
    ("min_sp", "max_sp", "nodes"),
    [([0, 0, 0], [4, 3, 5], 120), ([0, 0, 0, 0], [2, 4, 4, 4], 375)],
)
def test_default_cap_smooths_inventor_components(
    min_sp: list[int], max_sp: list[int], nodes: int
) -> None:
    """Test both inventor component lattices fit under the default cap."""
    solver = PassThroughSolver()
    ratios = {tuple(min_sp): 0.5, tuple(max_sp): 4.0}

    result = smooth_ratios(ratios, {}, {}, min_sp, max_sp, RatiosConfig(), solver=solver)

    assert result.smoothed
    assert result.total_nodes == nodes
    assert len(solver.problems) == 1
