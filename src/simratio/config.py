"""Ratio construction and smoothing configuration."""

from dataclasses import asdict, dataclass
from typing import Any

__all__ = ["RatiosConfig"]


@dataclass(frozen=True)
class RatiosConfig:
    """Values threaded through ratio components, joint tables and smoothing.

    Attributes
    ----------
    laplace_base : int
        Pseudo-count added to both match and non-match counts.
    primary_delim : str
        Separator between profile components in text files.
    secondary_delim : str
        Separator between attribute groups (and the trailing value field).
    pair_delim : str | None
        Separator between the two uids of a training pair. None splits on
        whitespace.
    max_lattice_nodes : int
        Largest lattice that smoothing will attempt to solve. The default
        covers both inventor component lattices (120 and 375 nodes) and
        skips the 45 000-node joint lattice, whose raw product of smoothed
        components is already monotone.
    filled_weight : float
        Objective weight of lattice points with no training observation.
    min_ratio : float
        Positive floor applied to smoothed ratios.
    solver_max_iter : int
        Iteration limit passed to the QP backend.
    solver_tol : float
        Convergence tolerance passed to the QP backend.
    """

    laplace_base: int = 1
    primary_delim: str = ","
    secondary_delim: str = "|"
    pair_delim: str | None = None
    max_lattice_nodes: int = 500
    filled_weight: float = 0.01
    min_ratio: float = 1e-9
    solver_max_iter: int = 5000
    solver_tol: float = 1e-8

    def __post_init__(self) -> None:
        """Validate values."""
        if self.laplace_base <= 0:
            raise ValueError(f"laplace_base must be positive, got {self.laplace_base}")

        if not self.primary_delim or not self.secondary_delim:
            raise ValueError("Delimiters must be non-empty")

        if self.primary_delim == self.secondary_delim:
            raise ValueError(
                f"primary_delim and secondary_delim must differ, got {self.primary_delim!r}"
            )

        if self.pair_delim == "":
            raise ValueError("pair_delim must be None or non-empty")

        if self.max_lattice_nodes < 1:
            raise ValueError(f"max_lattice_nodes must be >= 1, got {self.max_lattice_nodes}")

        if self.filled_weight <= 0.0:
            raise ValueError(f"filled_weight must be positive, got {self.filled_weight}")

        if self.min_ratio <= 0.0:
            raise ValueError(f"min_ratio must be positive, got {self.min_ratio}")

        if self.solver_max_iter < 1:
            raise ValueError(f"solver_max_iter must be >= 1, got {self.solver_max_iter}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)
