"""Default inventor attribute comparators.

Pure, deterministic functions that map two column values to one integer
similarity score. A comparator returns None when the pair cannot be scored
on that attribute at all (for example, a first name is missing on either
side).

Multi-valued columns (coauthors, classes, locations) hold ``/``-separated
values.
"""

import re
from difflib import SequenceMatcher

from simratio.attributes.registry import AttributeRegistry, AttributeSpec, Comparator

__all__ = [
    "compare_firstname",
    "compare_middlename",
    "compare_lastname",
    "compare_location",
    "compare_assignee",
    "compare_coauthors",
    "compare_classes",
    "COMPARATORS",
    "DEFAULT_ATTRIBUTES",
    "DEFAULT_REGISTRY",
]

_NON_ALNUM = re.compile(r"[^0-9A-Z]+")
_MULTI_SEP = "/"


def _norm(value: str | None) -> str:
    if not value:
        return ""
    return _NON_ALNUM.sub("", value.upper())


def _split_multi(value: str | None) -> set[str]:
    if not value:
        return set()
    return {_norm(part) for part in value.split(_MULTI_SEP) if _norm(part)}


def compare_firstname(name_a: str | None, name_b: str | None) -> int | None:
    """Compare first names (0-4).

    Notes
    -----
    - 4: identical after normalization
    - 3: one is a prefix of the other ("ROB" / "ROBERT")
    - 2: first three characters agree
    - 1: initials agree
    - 0: different
    """
    a, b = _norm(name_a), _norm(name_b)
    if not a or not b:
        return None
    if a == b:
        return 4
    if a.startswith(b) or b.startswith(a):
        return 3
    if a[:3] == b[:3]:
        return 2
    if a[0] == b[0]:
        return 1
    return 0


def compare_middlename(name_a: str | None, name_b: str | None) -> int | None:
    """Compare middle names (0-3).

    Missing middle names are common, so this comparator always scores:
    3 identical, 2 both missing or same initial, 1 one missing, 0 conflict.
    """
    a, b = _norm(name_a), _norm(name_b)
    if not a and not b:
        return 2
    if not a or not b:
        return 1
    if a == b:
        return 3
    if a[0] == b[0]:
        return 2
    return 0


def compare_lastname(name_a: str | None, name_b: str | None) -> int | None:
    """Compare last names (0-5).

    Notes
    -----
    - 5: identical (case-insensitive)
    - 4: identical ignoring spaces and punctuation
    - 3: sequence similarity >= 0.9
    - 2: sequence similarity >= 0.75
    - 1: initials agree
    - 0: different
    """
    if not name_a or not name_b:
        return None
    a, b = _norm(name_a), _norm(name_b)
    if not a or not b:
        return None
    if name_a.strip().upper() == name_b.strip().upper():
        return 5
    if a == b:
        return 4
    ratio = SequenceMatcher(None, a, b).ratio()
    if ratio >= 0.9:
        return 3
    if ratio >= 0.75:
        return 2
    if a[0] == b[0]:
        return 1
    return 0


def compare_location(loc_a: str | None, loc_b: str | None) -> int | None:
    """Compare ``COUNTRY/CITY`` locations (0-2).

    2 same country and city, 1 same country, 0 different country.
    """
    if not loc_a or not loc_b:
        return None
    parts_a = [_norm(part) for part in loc_a.split(_MULTI_SEP)]
    parts_b = [_norm(part) for part in loc_b.split(_MULTI_SEP)]
    if parts_a == parts_b:
        return 2
    if parts_a[0] == parts_b[0]:
        return 1
    return 0


def compare_assignee(assignee_a: str | None, assignee_b: str | None) -> int | None:
    """Compare assignee names by word overlap (0-4).

    4 identical, 3 Jaccard >= 0.5, 2 any shared word, 1 either missing,
    0 no shared word.
    """
    if not assignee_a or not assignee_b:
        return 1
    if _norm(assignee_a) == _norm(assignee_b):
        return 4
    words_a = {_norm(w) for w in assignee_a.split() if _norm(w)}
    words_b = {_norm(w) for w in assignee_b.split() if _norm(w)}
    union = words_a | words_b
    if not union:
        return 1
    jaccard = len(words_a & words_b) / len(union)
    if jaccard >= 0.5:
        return 3
    if jaccard > 0.0:
        return 2
    return 0


def _overlap(value_a: str | None, value_b: str | None, cap: int) -> int:
    return min(len(_split_multi(value_a) & _split_multi(value_b)), cap)


def compare_coauthors(coauthors_a: str | None, coauthors_b: str | None) -> int | None:
    """Number of shared coauthors, capped at 4."""
    return _overlap(coauthors_a, coauthors_b, 4)


def compare_classes(classes_a: str | None, classes_b: str | None) -> int | None:
    """Number of shared technology classes, capped at 4."""
    return _overlap(classes_a, classes_b, 4)


# ---------------------------------------------------------------------------
# Registry - name lookup for attribute config files
# ---------------------------------------------------------------------------

COMPARATORS: dict[str, Comparator] = {
    "firstname": compare_firstname,
    "middlename": compare_middlename,
    "lastname": compare_lastname,
    "location": compare_location,
    "assignee": compare_assignee,
    "coauthors": compare_coauthors,
    "classes": compare_classes,
}

DEFAULT_ATTRIBUTES: tuple[AttributeSpec, ...] = (
    AttributeSpec(
        name="firstname", group="personal", max_similarity=4, comparator=compare_firstname
    ),
    AttributeSpec(
        name="middlename", group="personal", max_similarity=3, comparator=compare_middlename
    ),
    AttributeSpec(
        name="lastname", group="personal", max_similarity=5, comparator=compare_lastname
    ),
    AttributeSpec(
        name="location", group="patent", max_similarity=2, comparator=compare_location
    ),
    AttributeSpec(
        name="assignee", group="patent", max_similarity=4, comparator=compare_assignee
    ),
    AttributeSpec(
        name="coauthors", group="patent", max_similarity=4, comparator=compare_coauthors
    ),
    AttributeSpec(
        name="classes", group="patent", max_similarity=4, comparator=compare_classes
    ),
)

DEFAULT_REGISTRY = AttributeRegistry(DEFAULT_ATTRIBUTES)
