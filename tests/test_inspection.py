"""Tests for reading database tables into snapshots."""

import io
from decimal import Decimal
from pathlib import Path
from sqlite3 import connect

import pytest
from sqlalchemy import Engine

from fixture_diff.inspection import (
    read_only_sqlite,
    read_query,
    read_table,
    read_table_set,
    to_scalar,
)
from fixture_diff.types import ColumnMetadata, StreamedText, Table, TableSet


@pytest.fixture(name="database")
def create_database(tmp_path: Path) -> Path:
    """Create a SQLite database with a table and a view."""
    location = tmp_path / "test.db"
    with connect(location) as connection:
        connection.executescript(
            """
            CREATE TABLE Users (
                Id INTEGER PRIMARY KEY,
                Name VARCHAR(50) NOT NULL,
                Avatar BLOB
            );
            INSERT INTO Users VALUES (1, 'Alice', X'01FF');
            INSERT INTO Users VALUES (2, 'Bob', NULL);
            CREATE VIEW ACTIVE_USERS AS SELECT Id, Name FROM Users WHERE Id = 1;
            """,
        )
    connection.close()
    return location


@pytest.fixture(name="engine")
def create_engine(database: Path) -> Engine:
    """Create a read-only engine over the test database."""
    return read_only_sqlite(database)


def test_to_scalar() -> None:
    """Test driver values are converted to cell payloads."""
    assert to_scalar(None) is None
    assert to_scalar(Decimal("1.5")) == Decimal("1.5")
    assert to_scalar(memoryview(b"\x01")) == b"\x01"
    assert to_scalar(bytearray(b"\x02")) == b"\x02"
    assert to_scalar(Path("a")) == "a"


def test_to_scalar_wraps_readers_lazily() -> None:
    """Test large object readers become streamed text."""
    reader = io.StringIO("clob body")

    value = to_scalar(reader)

    assert isinstance(value, StreamedText)
    assert not value.consumed
    assert value.materialize() == "clob body"


def test_read_table(engine: Engine) -> None:
    """Test a whole table is read with metadata."""
    table = read_table(engine, "Users")

    assert table.name == "Users"
    assert [str(column) for column in table.columns] == ["Id", "Name", "Avatar"]
    assert table.rows[0].value("AVATAR").payload == b"\x01\xff"
    assert table.rows[1].value("avatar").is_null
    assert table.column_metadata("NAME") == ColumnMetadata(
        "VARCHAR(50)",
        nullable=False,
    )
    metadata = table.column_metadata("ID")
    assert metadata is not None
    assert metadata.primary_key


def test_read_table_selected_columns(engine: Engine) -> None:
    """Test columns are selected case-insensitively and unknown ones skipped."""
    table = read_table(engine, "Users", ["NAME", "missing"])

    assert [str(column) for column in table.columns] == ["Name"]
    assert [row.value("NAME").payload for row in table.rows] == ["Alice", "Bob"]
    assert table.rows[0].value("missing").is_null


def test_read_query(engine: Engine) -> None:
    """Test a query result becomes a table with the given name."""
    table = read_query(engine, "NAMES", "SELECT Name AS N FROM Users ORDER BY Id DESC")

    assert table.name == "NAMES"
    assert [row.value("n").payload for row in table.rows] == ["Bob", "Alice"]


def test_read_table_set(engine: Engine) -> None:
    """Test expected tables are read back, missing ones left out."""
    expected = TableSet(
        [
            Table.from_records("Users", ["ID"], [("1",), ("2",)]),
            Table.from_records("ACTIVE_USERS", ["NAME"], [("Alice",)]),
            Table.from_records("ORDERS", ["ID"], []),
        ],
    )

    actual = read_table_set(engine, expected)

    assert actual.names == ("Users", "ACTIVE_USERS")
    users = actual.table("Users")
    assert users is not None
    assert [str(column) for column in users.columns] == ["Id"]
    view = actual.table("ACTIVE_USERS")
    assert view is not None
    assert view.rows[0].value("name").payload == "Alice"


def test_read_table_set_matches_names_case_insensitively(engine: Engine) -> None:
    """Test an expected table name in another case still finds its table."""
    expected = TableSet([Table.from_records("USERS", ["ID"], [("1",), ("2",)])])

    actual = read_table_set(engine, expected)

    assert actual.names == ("USERS",)
