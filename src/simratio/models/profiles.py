"""Similarity profiles and their bounds.

A similarity profile is a plain tuple of small non-negative integers, one
per attribute dimension. Tuples compare lexicographically with dimension 0
most significant, which is the canonical key order of every ratio table.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from simratio.errors import ErrorKind, RatiosError

if TYPE_CHECKING:
    from simratio.attributes.registry import AttributeRegistry

__all__ = [
    "SimilarityProfile",
    "get_max_similarity",
    "get_min_similarity",
    "validate_profile",
    "format_profile",
    "parse_profile",
]

SimilarityProfile = tuple[int, ...]


def _registry(registry: "AttributeRegistry | None") -> "AttributeRegistry":
    if registry is not None:
        return registry
    from simratio.attributes.comparators import DEFAULT_REGISTRY

    return DEFAULT_REGISTRY


def get_max_similarity(
    attribute_names: Sequence[str],
    registry: "AttributeRegistry | None" = None,
) -> list[int]:
    """Per-dimension maximum similarity for an ordered list of attributes.

    Parameters
    ----------
    attribute_names : Sequence[str]
        Attribute names in profile order.
    registry : AttributeRegistry | None, optional
        Attribute metadata, by default the inventor attribute registry.

    Returns
    -------
    list[int]
        Maximum attainable value per dimension.

    Raises
    ------
    RatiosError
        MALFORMED_CONFIGURATION if an attribute is unknown.
    """
    reg = _registry(registry)
    return [reg.get(name).max_similarity for name in attribute_names]


def get_min_similarity(
    attribute_names: Sequence[str],
    registry: "AttributeRegistry | None" = None,
) -> list[int]:
    """Per-dimension minimum similarity for an ordered list of attributes."""
    reg = _registry(registry)
    return [reg.get(name).min_similarity for name in attribute_names]


def validate_profile(
    profile: Sequence[int],
    min_sp: Sequence[int],
    max_sp: Sequence[int],
) -> None:
    """Check profile length and per-dimension bounds.

    Raises
    ------
    RatiosError
        MALFORMED_CONFIGURATION on a length or bound violation.
    """
    if len(profile) != len(max_sp) or len(min_sp) != len(max_sp):
        raise RatiosError(
            ErrorKind.MALFORMED_CONFIGURATION,
            f"Profile {tuple(profile)} has {len(profile)} dimensions, expected {len(max_sp)}",
        )
    for i, (value, lo, hi) in enumerate(zip(profile, min_sp, max_sp, strict=True)):
        if not lo <= value <= hi:
            raise RatiosError(
                ErrorKind.MALFORMED_CONFIGURATION,
                f"Profile {tuple(profile)}: dimension {i} value {value} outside [{lo}, {hi}]",
            )


def format_profile(profile: Sequence[int], delim: str) -> str:
    """Join profile components with a delimiter."""
    return delim.join(str(value) for value in profile)


def parse_profile(text: str, delim: str) -> SimilarityProfile:
    """Parse delimiter-joined components into a profile.

    Raises
    ------
    ValueError
        If a component is not a non-negative integer.
    """
    parts = [part.strip() for part in text.split(delim)]
    values = tuple(int(part) for part in parts)
    if any(value < 0 for value in values):
        raise ValueError(f"Negative similarity in profile: {text!r}")
    return values
