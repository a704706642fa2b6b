"""Materialization of live database tables into comparable snapshots."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import Engine, MetaData, create_engine, inspect, select, text
from sqlalchemy import Table as SQLTable
from sqlalchemy.exc import CompileError

from fixture_diff.types import (
    ColumnMetadata,
    ColumnName,
    Row,
    StreamedText,
    Table,
    TableSet,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from sqlalchemy import Column

    from fixture_diff.types import Scalar

logger = getLogger(__name__)


def read_only_sqlite(sqlite_location: Path) -> Engine:
    """Create a read-only SQLAlchemy engine for SQLite database."""
    connection_string = f"sqlite:///file:{sqlite_location}?mode=ro&uri=true"
    return create_engine(connection_string)


def to_scalar(raw_value: Any) -> Scalar | None:  # noqa: ANN401
    """Convert a driver value into a cell payload."""
    if raw_value is None or isinstance(
        raw_value,
        str | bool | int | float | Decimal | date | time | bytes,
    ):
        return raw_value
    if isinstance(raw_value, bytearray | memoryview):
        return bytes(raw_value)
    # Large object handles are drained lazily, once
    if callable(getattr(raw_value, "read", None)):
        return StreamedText(raw_value)
    return str(raw_value)


def column_metadata(column: Column[Any]) -> ColumnMetadata:
    """Derive ColumnMetadata from a reflected SQLAlchemy column."""
    try:
        type_name = str(column.type)
    except CompileError:
        type_name = type(column.type).__name__.upper()
    return ColumnMetadata(
        type_name=type_name,
        nullable=bool(column.nullable),
        primary_key=column.primary_key,
    )


def reflect_table(engine: Engine, table_name: str) -> SQLTable:
    """Reflect a single table definition from the database."""
    return SQLTable(table_name, MetaData(), autoload_with=engine)


def read_table(
    engine: Engine,
    table_name: str,
    columns: Iterable[ColumnName | str] | None = None,
) -> Table:
    """Read all rows of a table, optionally restricted to some columns.

    Args:
        engine: Engine connected to the database
        table_name: Table to read; the snapshot keeps this exact name
        columns: Columns to select (case-insensitive); all columns if omitted

    Returns:
        Table snapshot with column metadata attached

    """
    table = reflect_table(engine, table_name)
    by_name = {ColumnName(column.name): column for column in table.columns}

    if columns is None:
        selected = list(table.columns)
    else:
        requested = [ColumnName(str(name)) for name in columns]
        if missing := [name for name in requested if name not in by_name]:
            logger.warning(
                "Table %s has no column(s) %s",
                table_name,
                ", ".join(map(str, missing)),
            )
        # Unknown columns read as NULL; select everything if none are known
        selected = [by_name[name] for name in requested if name in by_name] or list(
            table.columns,
        )

    with engine.connect() as connection:
        records = connection.execute(select(*selected)).all()

    logger.debug("Read %d rows from table %s", len(records), table_name)
    return _snapshot(
        table_name,
        [column.name for column in selected],
        records,
        {column.name: column_metadata(column) for column in selected},
    )


def read_query(engine: Engine, table_name: str, sql: str) -> Table:
    """Execute a raw SQL query and materialize its result as a table."""
    with engine.connect() as connection:
        cursor = connection.execute(text(sql))
        names = list(cursor.keys())
        records = cursor.all()

    logger.debug("Query for %s returned %d rows", table_name, len(records))
    return _snapshot(table_name, names, records)


def read_table_set(engine: Engine, expected: TableSet) -> TableSet:
    """Read the actual counterpart of every expected table.

    Each table is restricted to the expected table's columns. Expected tables
    that do not exist in the database are left out so that the comparison
    reports them as missing.
    """
    existing = {name.lower() for name in _table_names(engine)}
    return TableSet(
        read_table(engine, table.name, table.columns)
        for table in expected
        if table.name.lower() in existing
    )


def _table_names(engine: Engine) -> list[str]:
    inspector = inspect(engine)
    return [*inspector.get_table_names(), *inspector.get_view_names()]


def _snapshot(
    table_name: str,
    names: Sequence[str],
    records: Iterable[Sequence[Any]],
    metadata: dict[str, ColumnMetadata] | None = None,
) -> Table:
    rows = [
        Row({name: to_scalar(value) for name, value in zip(names, record, strict=True)})
        for record in records
    ]
    return Table(table_name, names, rows, metadata)
