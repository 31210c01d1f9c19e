"""Ratio tables: per-group components and the joint table."""

from simratio.ratios.component import RatioComponent, laplace_ratio, read_training_pairs
from simratio.ratios.joint import RATIO_FIELD, Ratios

__all__ = [
    "RatioComponent",
    "Ratios",
    "RATIO_FIELD",
    "laplace_ratio",
    "read_training_pairs",
]
