"""Similarity-profile likelihood ratios for inventor disambiguation.

This package provides:
- Errors (simratio.errors): tagged ``RatiosError``
- Configuration (simratio.config): ratio and smoothing settings
- Models (simratio.models): records and similarity profiles
- Attributes (simratio.attributes): attribute registry and comparators
- Smoothing (simratio.smoothing): lattice codec, interpolation, monotone QP
- Ratios (simratio.ratios): per-group components and the joint table
- Engine (simratio.engine): round orchestration
- Audit (simratio.audit): logging and traceability
- CLI (simratio.cli): command-line interface
"""

__version__ = "0.1.0"

from simratio.config import RatiosConfig
from simratio.engine import RoundConfig, RoundResult, run_round
from simratio.errors import ErrorKind, RatiosError
from simratio.ratios import RatioComponent, Ratios

__all__ = [
    "__version__",
    "ErrorKind",
    "RatiosError",
    "RatiosConfig",
    "RatioComponent",
    "Ratios",
    "RoundConfig",
    "RoundResult",
    "run_round",
]
