"""Pytest configuration and fixtures for test suite."""

import json
import sys
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

import pytest

# Add src directory to path for imports
SRC_PATH = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_PATH))

from simratio.attributes import AttributeRegistry, build_registry  # noqa: E402
from simratio.models import Record, build_uid_index  # noqa: E402

INVENTOR_COLUMNS = (
    "firstname",
    "middlename",
    "lastname",
    "location",
    "assignee",
    "coauthors",
    "classes",
)

SMALL_COLUMNS = ("firstname", "lastname", "location")

# Two groups: personal (5 x 6 lattice) and patent (3 values); joint lattice of 90 nodes.
SMALL_ATTRIBUTE_CONFIG = {
    "attributes": [
        {"name": "firstname", "group": "personal", "max_similarity": 4, "comparator": "firstname"},
        {"name": "lastname", "group": "personal", "max_similarity": 5, "comparator": "lastname"},
        {"name": "location", "group": "patent", "max_similarity": 2, "comparator": "location"},
    ]
}

SMALL_RECORDS = [
    ("r1", "John", "Smith", "US/Boston"),
    ("r2", "John", "Smith", "US/Boston"),
    ("r3", "Jon", "Smith", "US/Austin"),
    ("r4", "Mary", "Jones", "DE/Berlin"),
    ("r5", "Maria", "Jonas", "DE/Munich"),
    ("r6", "Peter", "Brown", "FR/Paris"),
    ("r7", "", "Smith", "US/Boston"),
]

SMALL_MATCH_PAIRS = [("r1", "r2"), ("r1", "r3"), ("r4", "r5"), ("r2", "r3")]

# r7 has no first name (partial personal profile); r99 is not a record.
SMALL_NONMATCH_PAIRS = [
    ("r1", "r4"),
    ("r1", "r6"),
    ("r3", "r6"),
    ("r4", "r6"),
    ("r2", "r5"),
    ("r7", "r1"),
    ("r1", "r99"),
]


@pytest.fixture
def make_record() -> Callable[..., Record]:
    """Factory for records with the inventor column layout.

    Columns not passed as keyword arguments are empty (None).
    """

    def _factory(
        uid: str = "uid_001",
        *,
        columns: tuple[str, ...] = INVENTOR_COLUMNS,
        **values: str | None,
    ) -> Record:
        return Record(
            uid=uid,
            column_names=columns,
            values=tuple(values.get(name) for name in columns),
        )

    return _factory


@pytest.fixture
def small_registry() -> AttributeRegistry:
    """Three-attribute registry with a personal and a patent group."""
    return build_registry(SMALL_ATTRIBUTE_CONFIG)


@pytest.fixture
def small_index() -> dict[str, Record]:
    """uid index over the small record set."""
    records = [
        Record(
            uid=uid,
            column_names=SMALL_COLUMNS,
            values=(first or None, last or None, location or None),
        )
        for uid, first, last, location in SMALL_RECORDS
    ]
    return build_uid_index(records)


@pytest.fixture
def write_pairs(tmp_path: Path) -> Callable[[str, Iterable[tuple[str, str]]], Path]:
    """Write uid pairs, one whitespace-separated pair per line."""

    def _write(name: str, pairs: Iterable[tuple[str, str]]) -> Path:
        path = tmp_path / name
        path.write_text("".join(f"{a} {b}\n" for a, b in pairs), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def round_inputs(tmp_path: Path, write_pairs: Callable[..., Path]) -> dict[str, Path]:
    """Records, training pairs and attribute config for a small round."""
    records_path = tmp_path / "records.csv"
    lines = ["uid,firstname,lastname,location"]
    lines.extend(",".join(row) for row in SMALL_RECORDS)
    records_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    attribute_config = tmp_path / "attributes.json"
    attribute_config.write_text(json.dumps(SMALL_ATTRIBUTE_CONFIG), encoding="utf-8")

    return {
        "records": records_path,
        "match": write_pairs("match_pairs.txt", SMALL_MATCH_PAIRS),
        "nonmatch": write_pairs("nonmatch_pairs.txt", SMALL_NONMATCH_PAIRS),
        "attribute_config": attribute_config,
    }


@pytest.fixture
def assert_monotone() -> Callable[..., None]:
    """Assert ratios never decrease when one dimension steps up."""

    def _check(table: Mapping[tuple[int, ...], float], tol: float = 1e-12) -> None:
        for profile, value in table.items():
            for dim in range(len(profile)):
                up = profile[:dim] + (profile[dim] + 1,) + profile[dim + 1 :]
                if up in table:
                    assert value <= table[up] + tol, f"{profile} -> {up}: {value} > {table[up]}"

    return _check
