"""Shared data types for simratio.

Records and similarity profiles are consumed by the ratio components,
the joint table and the smoothing engine.
"""

from simratio.models.profiles import (
    SimilarityProfile,
    format_profile,
    get_max_similarity,
    get_min_similarity,
    parse_profile,
    validate_profile,
)
from simratio.models.records import Record, build_uid_index, load_records

__all__ = [
    # Profiles
    "SimilarityProfile",
    "get_max_similarity",
    "get_min_similarity",
    "validate_profile",
    "format_profile",
    "parse_profile",
    # Records
    "Record",
    "build_uid_index",
    "load_records",
]
