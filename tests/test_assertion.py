"""Tests for the public assertion API."""

from pathlib import Path
from sqlite3 import connect

import pytest
from sqlalchemy import Engine, create_engine

from fixture_diff.assertion import (
    ComparisonFailedError,
    assert_equals,
    assert_equals_by_query,
    assert_equals_ignore_columns,
    assert_equals_with_columns,
    assert_equals_with_policies,
    compare,
    verify_expectation,
)
from fixture_diff.policy import CASE_INSENSITIVE, IGNORE, NOT_NULL, regex
from fixture_diff.types import Table, TableSet


class RecordingSink:
    """Failure sink that records every call."""

    def __init__(self) -> None:
        """Start with no calls."""
        self.calls: list[tuple[str, object, object]] = []

    def __call__(self, message: str, expected: object, actual: object) -> None:
        """Record one failure."""
        self.calls.append((message, expected, actual))


@pytest.fixture(name="expected")
def create_expected() -> TableSet:
    """Create an expected table set with one USERS table."""
    return TableSet(
        [Table.from_records("USERS", ["ID", "NAME"], [("1", "Alice"), ("2", "Bob")])],
    )


@pytest.fixture(name="engine")
def create_engine_with_users(tmp_path: Path) -> Engine:
    """Create a SQLite database holding a USERS table."""
    location = tmp_path / "users.db"
    with connect(location) as connection:
        connection.execute("CREATE TABLE USERS (ID INTEGER PRIMARY KEY, NAME TEXT)")
        connection.executemany(
            "INSERT INTO USERS VALUES (?, ?)",
            [(1, "Alice"), (2, "Bob")],
        )
    return create_engine(f"sqlite:///{location}")


def users(*records: tuple[object, object]) -> TableSet:
    """Build an actual table set with a USERS table."""
    return TableSet([Table.from_records("USERS", ["ID", "NAME"], records)])


def test_assert_equals_passes(expected: TableSet) -> None:
    """Test equivalent table sets pass silently."""
    assert_equals(expected, users((1, "Alice"), (2, "Bob")))


def test_assert_equals_raises_once_with_full_report(expected: TableSet) -> None:
    """Test every difference is reported in one failure."""
    actual = users((1, "alice"), (3, "Bob"))

    with pytest.raises(ComparisonFailedError) as excinfo:
        assert_equals(expected, actual)

    message = str(excinfo.value)
    assert message.startswith("2 differences in USERS")
    assert "row[0].NAME" in message
    assert "row[1].ID" in message
    assert len(excinfo.value.result) == 2
    assert isinstance(excinfo.value, AssertionError)


def test_failure_sink_receives_first_difference(expected: TableSet) -> None:
    """Test the sink is called once with the first difference's values."""
    sink = RecordingSink()

    assert_equals(expected, users((1, "Alicia"), (2, "Bobby")), sink)

    assert len(sink.calls) == 1
    message, expected_value, actual_value = sink.calls[0]
    assert message.startswith("2 differences in USERS")
    assert (expected_value, actual_value) == ("Alice", "Alicia")


def test_failure_sink_not_called_when_clean(expected: TableSet) -> None:
    """Test a clean comparison never calls the sink."""
    sink = RecordingSink()

    assert_equals(expected, users((1, "Alice"), (2, "Bob")), sink)

    assert sink.calls == []


def test_compare_rejects_mixed_shapes(expected: TableSet) -> None:
    """Test a table cannot be compared against a table set."""
    with pytest.raises(TypeError, match="both be tables or both be table sets"):
        compare(expected, expected.tables[0])


def test_assert_equals_with_policies() -> None:
    """Test per-column policies passed by name."""
    expected = Table.from_records("T", ["ID", "NAME", "TOKEN"], [("x", "Alice", "")])
    actual = Table.from_records("T", ["ID", "NAME", "TOKEN"], [(7, "ALICE", "ab12")])

    assert_equals_with_policies(
        expected,
        actual,
        {"id": IGNORE, "name": CASE_INSENSITIVE, "token": regex("[a-z0-9]{4}")},
    )


def test_assert_equals_with_policies_reports_violation() -> None:
    """Test a NOT_NULL column fails on a NULL actual value."""
    expected = Table.from_records("T", ["ID"], [("anything",)])
    actual = Table.from_records("T", ["ID"], [(None,)])

    with pytest.raises(ComparisonFailedError, match=r"row\[0\]\.ID"):
        assert_equals_with_policies(expected, actual, {"ID": NOT_NULL})


def test_assert_equals_with_columns() -> None:
    """Test extra columns beyond the expected ones are compared."""
    expected = Table.from_records("T", ["A"], [("1",)])
    actual = Table.from_records("T", ["A", "B"], [(1, None)])

    assert_equals_with_columns(expected, actual, ["B"])
    with pytest.raises(ComparisonFailedError, match=r"row\[0\]\.B"):
        assert_equals_with_columns(
            expected,
            Table.from_records("T", ["A", "B"], [(1, "x")]),
            ["B"],
        )


def test_assert_equals_ignore_columns_on_tables() -> None:
    """Test ignored columns are left out of a table comparison."""
    expected = Table.from_records("T", ["ID", "UPDATED"], [("1", "yesterday")])
    actual = Table.from_records("T", ["ID", "UPDATED"], [(1, "today")])

    assert_equals_ignore_columns(expected, actual, ["updated"])


def test_assert_equals_ignore_columns_by_table_name(expected: TableSet) -> None:
    """Test a single table of a table set is selected by name."""
    actual = TableSet(
        [
            Table.from_records("USERS", ["ID", "NAME"], [(1, "X"), (2, "Y")]),
            Table.from_records("OTHER", ["ID"], [(1,)]),
        ],
    )

    assert_equals_ignore_columns(expected, actual, ["NAME"], table_name="USERS")


def test_assert_equals_ignore_columns_unknown_table(expected: TableSet) -> None:
    """Test naming a table missing from the expectation is a usage error."""
    with pytest.raises(ValueError, match="Expected table not found: ORDERS"):
        assert_equals_ignore_columns(expected, expected, [], table_name="ORDERS")


def test_assert_equals_ignore_columns_missing_actual_table(expected: TableSet) -> None:
    """Test a missing actual table is reported as a difference."""
    sink = RecordingSink()

    assert_equals_ignore_columns(
        expected,
        TableSet(),
        ["NAME"],
        table_name="USERS",
        failure_sink=sink,
    )

    message, expected_value, actual_value = sink.calls[0]
    assert message.startswith("1 difference in USERS")
    assert (expected_value, actual_value) == ("USERS", None)


def test_assert_equals_by_query(expected: TableSet, engine: Engine) -> None:
    """Test a query result is compared against the named expected table."""
    assert_equals_by_query(
        expected,
        engine,
        "USERS",
        "SELECT ID, NAME FROM USERS ORDER BY ID",
    )


def test_assert_equals_by_query_ignoring_columns(engine: Engine) -> None:
    """Test ignored columns are skipped for query results."""
    expected = Table.from_records("USERS", ["ID", "NAME"], [("2", "nobody")])

    assert_equals_by_query(
        expected,
        engine,
        "USERS",
        "SELECT ID, NAME FROM USERS WHERE ID = 2",
        ignore_columns=["NAME"],
    )


def test_verify_expectation(expected: TableSet, engine: Engine) -> None:
    """Test an expectation is read back from the database and compared."""
    verify_expectation(expected, engine)


def test_verify_expectation_reports_missing_table(engine: Engine) -> None:
    """Test a table absent from the database is reported, not raised."""
    expected = TableSet([Table.from_records("ORDERS", ["ID"], [("1",)])])

    with pytest.raises(ComparisonFailedError) as excinfo:
        verify_expectation(expected, engine)

    kinds = [str(d.path) for d in excinfo.value.result.differences]
    assert kinds == ["table_count", "table"]
