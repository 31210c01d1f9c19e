"""Round orchestration engine.

This package provides the entry point for one disambiguation round,
including configuration and result types.
"""

from simratio.engine.config import RoundConfig, RoundResult
from simratio.engine.runner import run_round

__all__ = [
    "RoundConfig",
    "RoundResult",
    "run_round",
]
