"""Quadratic program for monotone smoothing and its solver backend.

The smoothing problem is::

    minimize    1/2 * sum_i w_i * (x_i - t_i)^2
    subject to  x_hi - x_lo >= 0   for every lattice-adjacent (lo, hi)

where ``t`` are the gap-filled ratios, ``w`` the per-node weights and the
constraints run along every dimension of the lattice. Backends only see
the flat vectors and the sparse constraint matrix, so they can be swapped
without touching lattice or table logic.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from scipy import sparse
from scipy.optimize import LinearConstraint, minimize

from simratio.errors import ErrorKind, RatiosError
from simratio.smoothing.lattice import lattice_shape

__all__ = [
    "QuadraticProgram",
    "QPSolver",
    "ScipyQPSolver",
    "build_monotonic_constraints",
    "monotone_envelope",
]


@dataclass(frozen=True)
class QuadraticProgram:
    """Weighted least-squares objective with linear ``G x >= 0`` constraints.

    Attributes
    ----------
    targets : np.ndarray
        Target value per lattice node.
    weights : np.ndarray
        Positive objective weight per lattice node.
    constraints : sparse.csr_matrix
        Constraint matrix ``G``, one row per adjacent pair.
    initial : np.ndarray | None
        Optional feasible starting point.
    """

    targets: np.ndarray
    weights: np.ndarray
    constraints: sparse.csr_matrix
    initial: np.ndarray | None = None

    def __post_init__(self) -> None:
        """Check vector and matrix dimensions agree."""
        n = self.targets.shape[0]
        if self.weights.shape != (n,):
            raise ValueError(f"weights shape {self.weights.shape} != ({n},)")
        if self.constraints.shape[1] != n:
            raise ValueError(f"constraints have {self.constraints.shape[1]} columns, expected {n}")
        if self.initial is not None and self.initial.shape != (n,):
            raise ValueError(f"initial shape {self.initial.shape} != ({n},)")

    @property
    def size(self) -> int:
        """Number of variables."""
        return int(self.targets.shape[0])

    def objective(self, x: np.ndarray) -> float:
        """Objective value at ``x``."""
        diff = x - self.targets
        return 0.5 * float(np.dot(self.weights * diff, diff))

    def gradient(self, x: np.ndarray) -> np.ndarray:
        """Objective gradient at ``x``."""
        return self.weights * (x - self.targets)

    def hessian(self) -> sparse.dia_matrix:
        """Constant diagonal Hessian."""
        return sparse.diags(self.weights)


@runtime_checkable
class QPSolver(Protocol):
    """Numerical backend: quadratic program in, solution vector out.

    Implementations raise ``RatiosError`` with kind SOLVER_FAILURE when
    the problem cannot be solved.
    """

    def solve(self, problem: QuadraticProgram) -> np.ndarray:
        """Return the solution vector."""
        ...


@dataclass(frozen=True)
class ScipyQPSolver:
    """QP backend on scipy's ``trust-constr`` interior-point method.

    Attributes
    ----------
    max_iter : int
        Iteration limit.
    tol : float
        Gradient and step tolerance.
    """

    max_iter: int = 5000
    tol: float = 1e-8

    def solve(self, problem: QuadraticProgram) -> np.ndarray:
        """Solve the program.

        Raises
        ------
        RatiosError
            SOLVER_FAILURE if the solver does not converge or fails.
        """
        if problem.constraints.shape[0] == 0:
            return problem.targets.copy()

        x0 = problem.initial if problem.initial is not None else problem.targets
        hessian = problem.hessian()
        constraint = LinearConstraint(problem.constraints, lb=0.0, ub=np.inf)

        try:
            result = minimize(
                problem.objective,
                x0,
                jac=problem.gradient,
                hess=lambda _x: hessian,
                method="trust-constr",
                constraints=[constraint],
                options={"maxiter": self.max_iter, "gtol": self.tol, "xtol": self.tol},
            )
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
            raise RatiosError(ErrorKind.SOLVER_FAILURE, f"QP backend failed: {e}") from e

        if not result.success:
            raise RatiosError(
                ErrorKind.SOLVER_FAILURE,
                f"QP backend did not converge after {result.nit} iterations: {result.message}",
            )

        solution = np.asarray(result.x, dtype=float)
        if not np.all(np.isfinite(solution)):
            raise RatiosError(ErrorKind.SOLVER_FAILURE, "QP backend returned non-finite values")
        return solution


def build_monotonic_constraints(min_sp: Sequence[int], max_sp: Sequence[int]) -> sparse.csr_matrix:
    """Constraint matrix for non-decreasing ratios along every dimension.

    Row ``k`` encodes ``x[hi_k] - x[lo_k] >= 0`` where ``hi_k`` is ``lo_k``
    moved one step up a single dimension.

    Parameters
    ----------
    min_sp : Sequence[int]
        Per-dimension minima.
    max_sp : Sequence[int]
        Per-dimension maxima.

    Returns
    -------
    sparse.csr_matrix
        Matrix of shape (adjacent pairs, lattice nodes).
    """
    shape = lattice_shape(min_sp, max_sp)
    n = int(np.prod(shape))
    ids = np.arange(n).reshape(shape)

    lows: list[np.ndarray] = []
    highs: list[np.ndarray] = []
    for axis, size in enumerate(shape):
        if size < 2:
            continue
        lows.append(np.take(ids, np.arange(size - 1), axis=axis).ravel())
        highs.append(np.take(ids, np.arange(1, size), axis=axis).ravel())

    if not lows:
        return sparse.csr_matrix((0, n))

    lo = np.concatenate(lows)
    hi = np.concatenate(highs)
    m = lo.shape[0]
    rows = np.concatenate([np.arange(m), np.arange(m)])
    cols = np.concatenate([lo, hi])
    data = np.concatenate([-np.ones(m), np.ones(m)])
    return sparse.csr_matrix((data, (rows, cols)), shape=(m, n))


def monotone_envelope(values: np.ndarray) -> np.ndarray:
    """Smallest array >= ``values`` that is non-decreasing along every axis.

    A running maximum along one axis keeps any monotonicity already present
    along the other axes, so one pass per axis is enough.
    """
    result = np.asarray(values, dtype=float)
    for axis in range(result.ndim):
        result = np.maximum.accumulate(result, axis=axis)
    return result
