"""Value model for expected and actual table snapshots."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import StrEnum, auto
from logging import getLogger
from typing import IO, Any, ClassVar

logger = getLogger(__name__)


class StreamedText:
    """Read-once handle over a driver-owned large text value.

    The underlying source is drained on first access and the text is cached,
    so the source is never read twice.
    """

    def __init__(self, source: Callable[[], str] | IO[str]) -> None:
        """Wrap a reader callable or a text stream."""
        self._source = source
        self._text: str | None = None

    @property
    def consumed(self) -> bool:
        """Whether the source has already been drained."""
        return self._text is not None

    def materialize(self) -> str:
        """Return the full text, draining the source on first call only."""
        if self._text is None:
            try:
                self._text = self._read()
            except Exception as err:  # noqa: BLE001
                logger.warning("Failed to read streamed text, using fallback: %s", err)
                self._text = repr(self._source)
        return self._text

    def _read(self) -> str:
        if callable(self._source):
            return self._source()
        return self._source.read()

    def __repr__(self) -> str:
        """Describe the handle without draining it."""
        state = "consumed" if self.consumed else "pending"
        return f"StreamedText({state})"


type Scalar = (
    str | int | Decimal | float | bool | date | datetime | time | bytes | StreamedText
)


class ScalarKind(StrEnum):
    """Closed set of payload kinds a cell may hold."""

    TEXT = auto()
    INTEGER = auto()
    DECIMAL = auto()
    FLOAT = auto()
    BOOLEAN = auto()
    TEMPORAL = auto()
    BINARY = auto()
    STREAMED_TEXT = auto()


NUMBER_KINDS = frozenset({ScalarKind.INTEGER, ScalarKind.DECIMAL, ScalarKind.FLOAT})


def scalar_kind(value: object) -> ScalarKind:
    """Classify a payload into its scalar kind."""
    # bool before int since bool is an int subclass
    if isinstance(value, bool):
        return ScalarKind.BOOLEAN
    if isinstance(value, str):
        return ScalarKind.TEXT
    if isinstance(value, int):
        return ScalarKind.INTEGER
    if isinstance(value, Decimal):
        return ScalarKind.DECIMAL
    if isinstance(value, float):
        return ScalarKind.FLOAT
    if isinstance(value, date | time):
        return ScalarKind.TEMPORAL
    if isinstance(value, bytes):
        return ScalarKind.BINARY
    if isinstance(value, StreamedText):
        return ScalarKind.STREAMED_TEXT
    msg = f"Unsupported cell payload of type {type(value).__name__}: {value!r}"
    raise TypeError(msg)


def render_scalar(value: Scalar) -> str:
    """Return the text form of a payload used for coercion and reporting."""
    match scalar_kind(value):
        case ScalarKind.BOOLEAN:
            return "true" if value else "false"
        case ScalarKind.TEMPORAL if isinstance(value, datetime):
            return _render_datetime(value)
        case ScalarKind.TEMPORAL:
            return value.isoformat()  # type: ignore[union-attr]
        case ScalarKind.BINARY:
            return value.hex()  # type: ignore[union-attr]
        case ScalarKind.STREAMED_TEXT:
            return value.materialize()  # type: ignore[union-attr]
        case _:
            return str(value)


def _render_datetime(value: datetime) -> str:
    # Driver style: at least one fractional digit, trailing zeros dropped
    seconds = value.replace(microsecond=0, tzinfo=None).isoformat(sep=" ")
    fraction = f"{value.microsecond:06d}".rstrip("0") or "0"
    offset = value.replace(microsecond=0).isoformat()[19:]
    return f"{seconds}.{fraction}{offset}"


@dataclass(frozen=True, slots=True, eq=False)
class CellValue:
    """A cell payload, where ``None`` stands for SQL NULL or an empty CSV cell.

    Cell values have no structural equality: two cells are only ever judged
    equivalent through a comparison policy.
    """

    NULL: ClassVar[CellValue]

    payload: Scalar | None = None

    def __post_init__(self) -> None:
        """Reject payloads outside the closed scalar set."""
        if self.payload is not None:
            scalar_kind(self.payload)

    @property
    def is_null(self) -> bool:
        """Whether the cell holds no payload."""
        return self.payload is None

    @property
    def kind(self) -> ScalarKind | None:
        """Scalar kind of the payload, ``None`` for NULL."""
        return None if self.payload is None else scalar_kind(self.payload)

    def text(self) -> str | None:
        """Text form of the payload, ``None`` for NULL."""
        return None if self.payload is None else render_scalar(self.payload)


CellValue.NULL = CellValue()


def as_cell(value: CellValue | Scalar | None) -> CellValue:
    """Wrap a raw payload into a cell value."""
    if isinstance(value, CellValue):
        return value
    if value is None:
        return CellValue.NULL
    return CellValue(value)


class ColumnName:
    """Case-insensitive column identifier that keeps its original spelling."""

    __slots__ = ("_key", "value")

    def __init__(self, value: str) -> None:
        """Trim and validate the name."""
        trimmed = value.strip()
        if not trimmed:
            msg = "Column name must not be blank"
            raise ValueError(msg)
        self.value = trimmed
        self._key = trimmed.upper()

    def __eq__(self, other: object) -> bool:
        """Compare names ignoring case."""
        if not isinstance(other, ColumnName):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        """Hash consistently with case-insensitive equality."""
        return hash(self._key)

    def __str__(self) -> str:
        """Return the original spelling."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"ColumnName({self.value!r})"


def as_column(name: ColumnName | str) -> ColumnName:
    """Coerce a plain string to a column name."""
    return name if isinstance(name, ColumnName) else ColumnName(name)


@dataclass(frozen=True)
class ColumnMetadata:
    """Declared column information used to enrich reported differences."""

    type_name: str | None = None
    nullable: bool = True
    primary_key: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, omitting unset fields."""
        info: dict[str, Any] = {}
        if self.type_name is not None:
            info["type"] = self.type_name
        info["nullable"] = self.nullable
        if self.primary_key:
            info["primary_key"] = True
        return info


class Row:
    """Ordered mapping of columns to cells; absent columns read as NULL."""

    def __init__(
        self,
        values: Mapping[ColumnName | str, CellValue | Scalar | None] | None = None,
    ) -> None:
        """Normalize keys to column names and values to cells."""
        self._values: dict[ColumnName, CellValue] = {
            as_column(name): as_cell(value) for name, value in (values or {}).items()
        }

    @property
    def columns(self) -> tuple[ColumnName, ...]:
        """Columns present in this row, in insertion order."""
        return tuple(self._values)

    def value(self, column: ColumnName | str) -> CellValue:
        """Return the cell for a column, or NULL when the column is absent."""
        return self._values.get(as_column(column), CellValue.NULL)

    def __getitem__(self, column: ColumnName | str) -> CellValue:
        """Alias for :meth:`value`."""
        return self.value(column)

    def __contains__(self, column: object) -> bool:
        """Whether the row carries the column at all."""
        if isinstance(column, str):
            column = ColumnName(column)
        return column in self._values

    def items(self) -> Iterator[tuple[ColumnName, CellValue]]:
        """Iterate column and cell pairs."""
        return iter(self._values.items())

    def __len__(self) -> int:
        """Number of columns in the row."""
        return len(self._values)

    def __repr__(self) -> str:
        """Debug representation."""
        cells = ", ".join(f"{name}={cell.payload!r}" for name, cell in self.items())
        return f"Row({cells})"


class Table:
    """Named snapshot of rows; row order is significant."""

    def __init__(
        self,
        name: str,
        columns: Iterable[ColumnName | str],
        rows: Iterable[Row] = (),
        metadata: Mapping[ColumnName | str, ColumnMetadata] | None = None,
    ) -> None:
        """Initialize the table with ordered columns and rows."""
        if not name.strip():
            msg = "Table name must not be blank"
            raise ValueError(msg)
        self.name = name
        self.columns = tuple(as_column(column) for column in columns)
        self.rows = tuple(rows)
        self.metadata = {
            as_column(column): info for column, info in (metadata or {}).items()
        }

    @classmethod
    def from_records(
        cls,
        name: str,
        columns: Iterable[ColumnName | str],
        records: Iterable[Iterable[CellValue | Scalar | None]],
        metadata: Mapping[ColumnName | str, ColumnMetadata] | None = None,
    ) -> Table:
        """Build a table from positional records."""
        columns = tuple(as_column(column) for column in columns)
        rows = (Row(dict(zip(columns, record, strict=True))) for record in records)
        return cls(name, columns, rows, metadata)

    @property
    def row_count(self) -> int:
        """Number of rows in the table."""
        return len(self.rows)

    def column_metadata(self, column: ColumnName | str) -> ColumnMetadata | None:
        """Return declared metadata for a column when known."""
        return self.metadata.get(as_column(column))

    def __repr__(self) -> str:
        """Debug representation."""
        return f"Table({self.name!r}, columns={len(self.columns)}, rows={self.row_count})"


class TableSet:
    """Ordered collection of tables, unique by name."""

    def __init__(self, tables: Iterable[Table] = ()) -> None:
        """Index tables by name, rejecting duplicates."""
        self._tables: dict[str, Table] = {}
        for table in tables:
            if table.name in self._tables:
                msg = f"Duplicate table name in table set: {table.name}"
                raise ValueError(msg)
            self._tables[table.name] = table

    @property
    def tables(self) -> tuple[Table, ...]:
        """Tables in declaration order."""
        return tuple(self._tables.values())

    @property
    def names(self) -> tuple[str, ...]:
        """Table names in declaration order."""
        return tuple(self._tables)

    def table(self, name: str) -> Table | None:
        """Look up a table by exact name."""
        return self._tables.get(name)

    def __contains__(self, name: object) -> bool:
        """Whether a table with the exact name exists."""
        return name in self._tables

    def __iter__(self) -> Iterator[Table]:
        """Iterate tables in declaration order."""
        return iter(self._tables.values())

    def __len__(self) -> int:
        """Number of tables."""
        return len(self._tables)
