"""Monotonic slices and gap filling.

A monotonic slice fixes every dimension except one (the monotonic
dimension) and lists the known profiles along it in ascending order. Gap
filling estimates an unknown lattice point from the slices through it:
linear interpolation between the bracketing known points, or the value of
the nearest end point when the gap lies past either end.
"""

from bisect import bisect_left
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from simratio.errors import ErrorKind, RatiosError
from simratio.models.profiles import SimilarityProfile, validate_profile
from simratio.smoothing.lattice import iter_lattice

__all__ = [
    "MonotonicSlices",
    "signature",
    "build_monotonic_slices",
    "estimate_along_slice",
    "inter_extra_polate",
]

# other-dimensions signature -> ascending (value, profile) entries
MonotonicSlices = dict[tuple[int, ...], list[tuple[int, SimilarityProfile]]]


def signature(profile: SimilarityProfile, dim: int) -> tuple[int, ...]:
    """Profile with dimension ``dim`` removed."""
    return profile[:dim] + profile[dim + 1 :]


def build_monotonic_slices(profiles: Iterable[SimilarityProfile], dim: int) -> MonotonicSlices:
    """Group profiles by their signature without ``dim``.

    Parameters
    ----------
    profiles : Iterable[SimilarityProfile]
        Known profiles.
    dim : int
        Monotonic dimension.

    Returns
    -------
    MonotonicSlices
        Entries of each slice sorted by their value on ``dim``.
    """
    slices: defaultdict[tuple[int, ...], list[tuple[int, SimilarityProfile]]] = defaultdict(list)
    for profile in profiles:
        slices[signature(profile, dim)].append((profile[dim], profile))
    for entries in slices.values():
        entries.sort()
    return dict(slices)


def estimate_along_slice(
    entries: Sequence[tuple[int, SimilarityProfile]],
    value: int,
    ratios: Mapping[SimilarityProfile, float],
) -> float:
    """Estimate the ratio at ``value`` along one slice.

    Parameters
    ----------
    entries : Sequence[tuple[int, SimilarityProfile]]
        Non-empty ascending slice entries.
    value : int
        Position on the monotonic dimension.
    ratios : Mapping[SimilarityProfile, float]
        Known ratios for the slice profiles.

    Returns
    -------
    float
        Exact value, linear interpolation, or the clamped end value.
    """
    positions = [v for v, _ in entries]
    pos = bisect_left(positions, value)

    if pos < len(positions) and positions[pos] == value:
        return ratios[entries[pos][1]]
    if pos == 0:
        return ratios[entries[0][1]]
    if pos == len(positions):
        return ratios[entries[-1][1]]

    lo_value, lo_profile = entries[pos - 1]
    hi_value, hi_profile = entries[pos]
    lo_ratio = ratios[lo_profile]
    hi_ratio = ratios[hi_profile]
    fraction = (value - lo_value) / (hi_value - lo_value)
    return lo_ratio + fraction * (hi_ratio - lo_ratio)


def inter_extra_polate(
    ratios: Mapping[SimilarityProfile, float],
    min_sp: Sequence[int],
    max_sp: Sequence[int],
) -> dict[SimilarityProfile, float]:
    """Fill every lattice point from the known ratios.

    Each pass estimates every still-unknown point from the slices through
    it along every dimension, using only the values known when the pass
    started, and averages the per-dimension estimates. A point becomes
    known once any slice through it has a known entry, so the lattice is
    full after at most ``len(max_sp)`` passes.

    Parameters
    ----------
    ratios : Mapping[SimilarityProfile, float]
        Known ratios; left unchanged in the result.
    min_sp : Sequence[int]
        Per-dimension minima.
    max_sp : Sequence[int]
        Per-dimension maxima.

    Returns
    -------
    dict[SimilarityProfile, float]
        Ratio for every lattice point.

    Raises
    ------
    RatiosError
        MALFORMED_CONFIGURATION if there are no known ratios or a known
        profile lies outside the bounds.
    """
    if not ratios:
        raise RatiosError(
            ErrorKind.MALFORMED_CONFIGURATION, "Cannot fill a lattice without observed profiles"
        )
    for profile in ratios:
        validate_profile(profile, min_sp, max_sp)

    known: dict[SimilarityProfile, float] = dict(ratios)
    missing = [profile for profile in iter_lattice(min_sp, max_sp) if profile not in known]
    ndim = len(max_sp)

    while missing:
        slices = [build_monotonic_slices(known, dim) for dim in range(ndim)]
        estimates: dict[SimilarityProfile, float] = {}

        for profile in missing:
            values = []
            for dim in range(ndim):
                entries = slices[dim].get(signature(profile, dim))
                if entries:
                    values.append(estimate_along_slice(entries, profile[dim], known))
            if values:
                estimates[profile] = sum(values) / len(values)

        known.update(estimates)
        missing = [profile for profile in missing if profile not in estimates]

    return known
