"""Monotone interpolation, extrapolation and QP smoothing of ratio tables."""

from simratio.smoothing.engine import SmoothingResult, SmoothingStatus, smooth_ratios
from simratio.smoothing.lattice import (
    compute_total_nodes,
    index2sp,
    iter_lattice,
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
from simratio.smoothing.slices import (
    MonotonicSlices,
    build_monotonic_slices,
    estimate_along_slice,
    inter_extra_polate,
    signature,
)

__all__ = [
    # Lattice codec
    "compute_total_nodes",
    "sp2index",
    "index2sp",
    "iter_lattice",
    "lattice_shape",
    # Slices
    "MonotonicSlices",
    "signature",
    "build_monotonic_slices",
    "estimate_along_slice",
    "inter_extra_polate",
    # QP
    "QuadraticProgram",
    "QPSolver",
    "ScipyQPSolver",
    "build_monotonic_constraints",
    "monotone_envelope",
    # Engine
    "SmoothingResult",
    "SmoothingStatus",
    "smooth_ratios",
]
