"""Monotone smoothing of a ratio table over its lattice.

Pipeline for one table:

1. Check the lattice size against ``RatiosConfig.max_lattice_nodes``;
   over the cap the raw ratios are returned unchanged.
2. Fill every lattice point with ``inter_extra_polate``.
3. Build the weighted monotone quadratic program and solve it.
4. Clip to ``min_ratio``, take the monotone envelope and map the flat
   solution back to profiles with ``index2sp``.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

import numpy as np

from simratio.audit.logger import AuditLogger
from simratio.config import RatiosConfig
from simratio.errors import ErrorKind, RatiosError
from simratio.models.profiles import SimilarityProfile
from simratio.smoothing.lattice import (
    compute_total_nodes,
    index2sp,
    lattice_shape,
    sp2index,
)
from simratio.smoothing.qp import (
    QPSolver,
    QuadraticProgram,
    ScipyQPSolver,
    build_monotonic_constraints,
    monotone_envelope,
)
from simratio.smoothing.slices import inter_extra_polate

__all__ = ["SmoothingStatus", "SmoothingResult", "smooth_ratios"]


class SmoothingStatus(StrEnum):
    """Outcome of a smoothing pass."""

    SMOOTHED = "smoothed"
    LATTICE_TOO_LARGE = "lattice_too_large"


@dataclass(frozen=True)
class SmoothingResult:
    """Smoothed table and pass statistics.

    Attributes
    ----------
    ratios : dict[SimilarityProfile, float]
        Smoothed ratios for every lattice point, or the raw ratios when
        smoothing was skipped.
    status : SmoothingStatus
        Whether the pass ran.
    total_nodes : int
        Lattice size.
    observed_nodes : int
        Profiles present before smoothing.
    """

    ratios: dict[SimilarityProfile, float]
    status: SmoothingStatus
    total_nodes: int
    observed_nodes: int

    @property
    def smoothed(self) -> bool:
        """Whether the QP pass ran."""
        return self.status is SmoothingStatus.SMOOTHED

    def to_dict(self) -> dict[str, int | str]:
        """Summary without the table itself."""
        return {
            "status": self.status.value,
            "total_nodes": self.total_nodes,
            "observed_nodes": self.observed_nodes,
        }


def _node_weights(
    profiles: Sequence[SimilarityProfile],
    observed: Mapping[SimilarityProfile, float],
    x_counts: Mapping[SimilarityProfile, int],
    m_counts: Mapping[SimilarityProfile, int],
    filled_weight: float,
) -> np.ndarray:
    weights = np.full(len(profiles), filled_weight, dtype=float)
    for i, profile in enumerate(profiles):
        if profile in observed:
            weights[i] = 1.0 + x_counts.get(profile, 0) + m_counts.get(profile, 0)
    return weights


def smooth_ratios(
    ratios: Mapping[SimilarityProfile, float],
    x_counts: Mapping[SimilarityProfile, int],
    m_counts: Mapping[SimilarityProfile, int],
    min_sp: Sequence[int],
    max_sp: Sequence[int],
    config: RatiosConfig,
    solver: QPSolver | None = None,
    logger: AuditLogger | None = None,
    table: str = "ratios",
) -> SmoothingResult:
    """Smooth a ratio table into a monotone table over the whole lattice.

    Parameters
    ----------
    ratios : Mapping[SimilarityProfile, float]
        Raw (Laplace-corrected) ratios of observed profiles.
    x_counts : Mapping[SimilarityProfile, int]
        Non-match counts, used as objective weights.
    m_counts : Mapping[SimilarityProfile, int]
        Match counts, used as objective weights.
    min_sp : Sequence[int]
        Per-dimension minima.
    max_sp : Sequence[int]
        Per-dimension maxima.
    config : RatiosConfig
        Size cap, weights and solver settings.
    solver : QPSolver | None, optional
        QP backend, by default ``ScipyQPSolver``.
    logger : AuditLogger | None, optional
        Audit logger for events, by default None.
    table : str, optional
        Table label used in events, by default "ratios".

    Returns
    -------
    SmoothingResult
        Smoothed table, or the raw table with LATTICE_TOO_LARGE status.

    Raises
    ------
    RatiosError
        SOLVER_FAILURE if the backend fails; MALFORMED_CONFIGURATION if the
        table is empty or holds out-of-bounds profiles.
    """
    total = compute_total_nodes(min_sp, max_sp)

    if total > config.max_lattice_nodes:
        if logger:
            logger.event(
                "smoothing_skipped",
                data={
                    "table": table,
                    "reason": ErrorKind.LATTICE_TOO_LARGE.value,
                    "total_nodes": total,
                    "max_lattice_nodes": config.max_lattice_nodes,
                },
                level="WARN",
            )
        return SmoothingResult(
            ratios=dict(ratios),
            status=SmoothingStatus.LATTICE_TOO_LARGE,
            total_nodes=total,
            observed_nodes=len(ratios),
        )

    filled = inter_extra_polate(ratios, min_sp, max_sp)

    shape = lattice_shape(min_sp, max_sp)
    profiles: list[SimilarityProfile] = [index2sp(i, min_sp, max_sp) for i in range(total)]
    targets = np.empty(total, dtype=float)
    for profile, value in filled.items():
        targets[sp2index(profile, min_sp, max_sp)] = value

    problem = QuadraticProgram(
        targets=targets,
        weights=_node_weights(profiles, ratios, x_counts, m_counts, config.filled_weight),
        constraints=build_monotonic_constraints(min_sp, max_sp),
        initial=monotone_envelope(targets.reshape(shape)).ravel(),
    )

    backend = solver if solver is not None else ScipyQPSolver(
        max_iter=config.solver_max_iter, tol=config.solver_tol
    )
    solution = np.asarray(backend.solve(problem), dtype=float)
    if solution.shape != targets.shape:
        raise RatiosError(
            ErrorKind.SOLVER_FAILURE,
            f"QP backend returned {solution.shape[0]} values for {total} nodes",
        )
    if not np.all(np.isfinite(solution)):
        raise RatiosError(ErrorKind.SOLVER_FAILURE, "QP backend returned non-finite values")

    solution = monotone_envelope(np.maximum(solution, config.min_ratio).reshape(shape)).ravel()
    smoothed = {profile: float(solution[i]) for i, profile in enumerate(profiles)}

    if logger:
        logger.event(
            "smoothing_finished",
            data={
                "table": table,
                "total_nodes": total,
                "observed_nodes": len(ratios),
                "objective": problem.objective(solution),
            },
        )

    return SmoothingResult(
        ratios=smoothed,
        status=SmoothingStatus.SMOOTHED,
        total_nodes=total,
        observed_nodes=len(ratios),
    )
