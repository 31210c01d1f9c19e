"""Record model and uid index.

Records are the rows of the inventor table: one unique identifier plus a
fixed, ordered set of named attribute columns. All records loaded from one
file share the same column layout.
"""

import csv
import io
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from simratio.errors import ErrorKind, RatiosError
from simratio.utils import read_text_utf8

__all__ = ["Record", "build_uid_index", "load_records"]


@dataclass(frozen=True, slots=True)
class Record:
    """One inventor record.

    Attributes
    ----------
    uid : str
        Unique record identifier.
    column_names : tuple[str, ...]
        Attribute column names in layout order.
    values : tuple[str | None, ...]
        Column values aligned with ``column_names``; None when empty.
    """

    uid: str
    column_names: tuple[str, ...]
    values: tuple[str | None, ...]

    def __post_init__(self) -> None:
        """Check that values line up with column names."""
        if len(self.column_names) != len(self.values):
            raise ValueError(
                f"Record {self.uid}: {len(self.values)} values for "
                f"{len(self.column_names)} columns"
            )

    def column_index(self, name: str) -> int:
        """Position of a named column.

        Raises
        ------
        KeyError
            If the record has no such column.
        """
        try:
            return self.column_names.index(name)
        except ValueError:
            raise KeyError(name) from None

    def get(self, name: str) -> str | None:
        """Value of a named column."""
        return self.values[self.column_index(name)]

    def value_at(self, position: int) -> str | None:
        """Value at a column position."""
        return self.values[position]


def build_uid_index(records: Iterable[Record]) -> dict[str, Record]:
    """Build index of records by uid for fast lookup.

    Parameters
    ----------
    records : Iterable[Record]
        Records to index.

    Returns
    -------
    dict[str, Record]
        Mapping of uid to record.

    Raises
    ------
    RatiosError
        MALFORMED_CONFIGURATION if a uid repeats.
    """
    index: dict[str, Record] = {}
    for record in records:
        if record.uid in index:
            raise RatiosError(
                ErrorKind.MALFORMED_CONFIGURATION, f"Duplicate record uid: {record.uid}"
            )
        index[record.uid] = record
    return index


def load_records(
    path: Path | str,
    uid_column: str = "uid",
    delimiter: str = ",",
) -> list[Record]:
    """Load records from a delimited text file with a header row.

    The uid column is removed from the attribute layout; every other
    column becomes an attribute column in header order. Empty cells are
    stored as None.

    Parameters
    ----------
    path : Path | str
        Records file.
    uid_column : str, optional
        Header name of the uid column, by default "uid".
    delimiter : str, optional
        Field delimiter, by default ",".

    Returns
    -------
    list[Record]
        Records in file order.

    Raises
    ------
    RatiosError
        IO_FAILURE if the file is missing or not valid UTF-8, has no uid
        column, or a row has the wrong number of fields.
    """
    path = Path(path)
    text = read_text_utf8(path, "records file")

    with io.StringIO(text, newline="") as f:
        reader = csv.reader(f, delimiter=delimiter)
        header = next(reader, None)
        if not header:
            raise RatiosError(ErrorKind.IO_FAILURE, f"Records file {path} is empty")

        header = [name.strip() for name in header]
        if uid_column not in header:
            raise RatiosError(
                ErrorKind.IO_FAILURE,
                f"Records file {path} has no '{uid_column}' column",
            )

        uid_pos = header.index(uid_column)
        column_names = tuple(name for i, name in enumerate(header) if i != uid_pos)

        records: list[Record] = []
        for line_num, row in enumerate(reader, 2):
            if not row:
                continue
            if len(row) != len(header):
                raise RatiosError(
                    ErrorKind.IO_FAILURE,
                    f"{path}:{line_num}: expected {len(header)} fields, got {len(row)}",
                )
            values = tuple(
                (cell.strip() or None) for i, cell in enumerate(row) if i != uid_pos
            )
            records.append(
                Record(uid=row[uid_pos].strip(), column_names=column_names, values=values)
            )

    return records
