"""Loading of expected table sets from CSV or TSV fixture directories."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

from fixture_diff.types import ColumnName, Row, Table, TableSet

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = getLogger(__name__)

type FixtureFormat = Literal["csv", "tsv"]

DELIMITERS: dict[FixtureFormat, str] = {"csv": ",", "tsv": "\t"}
TABLE_ORDERING_FILE = "table-ordering.txt"


class FixtureLoadError(ValueError):
    """Raised when a fixture directory or file cannot be read."""


def load_directory(directory: Path, fmt: FixtureFormat = "csv") -> TableSet:
    """Load every fixture file in a directory as one table each.

    Files are read in name order unless a ``table-ordering.txt`` file lists
    the table names (one per line), in which case that order is used.

    Args:
        directory: Directory holding ``<TABLE>.csv`` or ``<TABLE>.tsv`` files
        fmt: Fixture file format

    Returns:
        Table set with one table per file, named after the file stem

    Raises:
        FixtureLoadError: If the directory or a file cannot be read

    """
    if not directory.is_dir():
        msg = f"Not a directory: {directory}"
        raise FixtureLoadError(msg)

    logger.debug("Loading %s fixtures from %s", fmt, directory)
    files = {
        path.stem: path
        for path in sorted(directory.iterdir())
        if path.is_file() and path.suffix.lower() == f".{fmt}"
    }

    ordering = directory / TABLE_ORDERING_FILE
    names = _read_ordering(ordering, files) if ordering.is_file() else list(files)

    tables = TableSet(load_file(files[name], fmt) for name in names)
    logger.debug("Loaded %d tables from %s", len(tables), directory)
    return tables


def _read_ordering(ordering: Path, files: dict[str, Path]) -> list[str]:
    names = [
        line.strip()
        for line in ordering.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]
    if missing := [name for name in names if name not in files]:
        msg = f"{ordering} lists tables without fixture files: {', '.join(missing)}"
        raise FixtureLoadError(msg)
    # Files not listed keep name order after the listed ones
    return names + [name for name in files if name not in names]


def load_file(location: Path, fmt: FixtureFormat = "csv") -> Table:
    """Load a single fixture file; the first record is the header.

    Every cell is read as text. Empty cells, and cells missing from short
    records, are NULL; ``NA`` or ``null`` spellings stay text.
    """
    try:
        frame = pd.read_csv(
            location,
            sep=DELIMITERS[fmt],
            header=None,
            dtype=str,
            keep_default_na=False,
            na_values=[""],
            skip_blank_lines=True,
            quotechar='"',
            escapechar="\\",
            encoding="utf-8",
        )
    except EmptyDataError as err:
        msg = f"File is empty: {location}"
        raise FixtureLoadError(msg) from err
    except (OSError, ParserError, UnicodeDecodeError) as err:
        msg = f"Failed to parse file: {location}"
        raise FixtureLoadError(msg) from err

    header, *body = frame.itertuples(index=False, name=None)
    try:
        columns = [ColumnName(_text(name) or "") for name in header]
    except ValueError as err:
        msg = f"Blank column name in header of {location}"
        raise FixtureLoadError(msg) from err

    rows = [
        Row({column: _text(value) for column, value in zip(columns, record, strict=True)})
        for record in body
        if not _is_blank(record)
    ]
    logger.debug(
        "Parsed table %s with %d columns and %d rows",
        location.stem,
        len(columns),
        len(rows),
    )
    return Table(location.stem, columns, rows)


def _text(value: object) -> str | None:
    # Missing values come back as float NaN
    return value if isinstance(value, str) else None


def _is_blank(record: Sequence[object]) -> bool:
    return all(not (_text(value) or "").strip() for value in record)
