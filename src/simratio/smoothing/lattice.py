"""Lattice codec.

The similarity lattice is the rectangular set of integer profiles bounded
by ``min_sp`` and ``max_sp``. Profiles are encoded into a flat index with
mixed-radix positional encoding, dimension 0 most significant, so index
order equals profile order and matches a C-order flattened numpy array of
shape ``lattice_shape(min_sp, max_sp)``.
"""

import itertools
import math
from collections.abc import Iterator, Sequence

from simratio.models.profiles import SimilarityProfile

__all__ = [
    "lattice_shape",
    "compute_total_nodes",
    "sp2index",
    "index2sp",
    "iter_lattice",
]


def lattice_shape(min_sp: Sequence[int], max_sp: Sequence[int]) -> tuple[int, ...]:
    """Number of attainable values per dimension.

    Raises
    ------
    ValueError
        If bounds differ in length or a maximum is below its minimum.
    """
    if len(min_sp) != len(max_sp):
        raise ValueError(f"Bounds differ in length: {len(min_sp)} != {len(max_sp)}")
    shape = tuple(hi - lo + 1 for lo, hi in zip(min_sp, max_sp, strict=True))
    if any(size < 1 for size in shape):
        raise ValueError(f"Invalid lattice bounds: min={list(min_sp)}, max={list(max_sp)}")
    return shape


def compute_total_nodes(min_sp: Sequence[int], max_sp: Sequence[int]) -> int:
    """Product over dimensions of ``max_i - min_i + 1``.

    Examples
    --------
    >>> compute_total_nodes([0, 0], [2, 3])
    12
    """
    return math.prod(lattice_shape(min_sp, max_sp))


def sp2index(sp: Sequence[int], min_sp: Sequence[int], max_sp: Sequence[int]) -> int:
    """Encode a profile into its flat lattice index.

    Parameters
    ----------
    sp : Sequence[int]
        Profile within the bounds.
    min_sp : Sequence[int]
        Per-dimension minima.
    max_sp : Sequence[int]
        Per-dimension maxima.

    Returns
    -------
    int
        ``sum_i (sp_i - min_i) * prod_{j > i} (max_j - min_j + 1)``.

    Raises
    ------
    ValueError
        If the profile has the wrong length or lies outside the bounds.
    """
    shape = lattice_shape(min_sp, max_sp)
    if len(sp) != len(shape):
        raise ValueError(f"Profile {tuple(sp)} has {len(sp)} dimensions, expected {len(shape)}")

    index = 0
    for value, lo, size in zip(sp, min_sp, shape, strict=True):
        offset = value - lo
        if not 0 <= offset < size:
            raise ValueError(f"Profile {tuple(sp)} outside lattice bounds")
        index = index * size + offset
    return index


def index2sp(index: int, min_sp: Sequence[int], max_sp: Sequence[int]) -> SimilarityProfile:
    """Decode a flat lattice index into its profile (inverse of ``sp2index``).

    Raises
    ------
    ValueError
        If the index is outside ``[0, compute_total_nodes)``.
    """
    shape = lattice_shape(min_sp, max_sp)
    total = math.prod(shape)
    if not 0 <= index < total:
        raise ValueError(f"Index {index} outside lattice of {total} nodes")

    values: list[int] = []
    for lo, size in zip(reversed(min_sp), reversed(shape), strict=True):
        index, offset = divmod(index, size)
        values.append(lo + offset)
    return tuple(reversed(values))


def iter_lattice(min_sp: Sequence[int], max_sp: Sequence[int]) -> Iterator[SimilarityProfile]:
    """Yield every lattice profile in index order."""
    lattice_shape(min_sp, max_sp)
    return itertools.product(*(range(lo, hi + 1) for lo, hi in zip(min_sp, max_sp, strict=True)))
