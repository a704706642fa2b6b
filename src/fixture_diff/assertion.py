"""Public assertion API and failure handling.

Every ``assert_*`` call compares its inputs completely, then signals failure
exactly once: either by raising :class:`ComparisonFailedError` with the full
rendered report, or by calling a caller-supplied failure sink.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Mapping
from logging import getLogger
from typing import TYPE_CHECKING

from fixture_diff.comparator import ColumnSelection, Comparator
from fixture_diff.inspection import read_query, read_table_set
from fixture_diff.policy import PolicyRegistry
from fixture_diff.result import ComparisonResult
from fixture_diff.types import Table, TableSet

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from fixture_diff.policy import ComparisonPolicy

logger = getLogger(__name__)

type FailureSink = Callable[[str, object, object], None]
type Snapshot = Table | TableSet


class ComparisonFailedError(AssertionError):
    """Raised once per comparison call when any difference was found."""

    def __init__(self, result: ComparisonResult) -> None:
        """Carry the rendered report as message and the result itself."""
        super().__init__(result.render())
        self.result = result


def compare(
    expected: Snapshot,
    actual: Snapshot,
    *,
    policies: PolicyRegistry | None = None,
    selection: ColumnSelection | None = None,
) -> ComparisonResult:
    """Compare two table sets or two tables without raising.

    Args:
        expected: Expected table set or table
        actual: Actual snapshot of the same shape
        policies: Column policies, strict comparison when omitted
        selection: Columns to compare, all expected columns when omitted

    Returns:
        Result holding every difference found

    Raises:
        TypeError: If a table is compared against a table set

    """
    comparator = Comparator(policies, selection)
    if isinstance(expected, TableSet) and isinstance(actual, TableSet):
        return comparator.compare_table_sets(expected, actual)
    if isinstance(expected, Table) and isinstance(actual, Table):
        return comparator.compare_tables(expected, actual)
    msg = (
        "Expected and actual must both be tables or both be table sets, got "
        f"{type(expected).__name__} and {type(actual).__name__}"
    )
    raise TypeError(msg)


def report(result: ComparisonResult, failure_sink: FailureSink | None = None) -> None:
    """Signal a non-empty result once, via the sink or by raising."""
    message = result.render()
    if not result.has_differences():
        return

    logger.debug("Comparison failed: %s", result.summary())
    if failure_sink is None:
        raise ComparisonFailedError(result)

    first = result.first()
    failure_sink(
        message,
        first.expected_value if first else None,
        first.actual_value if first else None,
    )


def assert_equals(
    expected: Snapshot,
    actual: Snapshot,
    failure_sink: FailureSink | None = None,
    *,
    policies: PolicyRegistry | None = None,
) -> None:
    """Assert two table sets or two tables are equivalent."""
    report(compare(expected, actual, policies=policies), failure_sink)


def assert_equals_with_columns(
    expected: Table,
    actual: Table,
    extra_columns: Iterable[str],
    failure_sink: FailureSink | None = None,
) -> None:
    """Assert equivalence over the expected columns plus extra columns."""
    selection = ColumnSelection.superset(extra_columns)
    report(compare(expected, actual, selection=selection), failure_sink)


def assert_equals_ignore_columns(
    expected: Snapshot,
    actual: Snapshot,
    ignore_columns: Collection[str],
    *,
    table_name: str | None = None,
    failure_sink: FailureSink | None = None,
) -> None:
    """Assert equivalence over the expected columns minus ignored columns.

    Args:
        expected: Expected table or table set
        actual: Actual snapshot of the same shape
        ignore_columns: Column names left out of the comparison
        table_name: With table sets, compare only this table
        failure_sink: Optional callback instead of raising

    Raises:
        ValueError: If ``table_name`` is not part of the expected table set

    """
    selection = ColumnSelection.ignoring(ignore_columns)
    if table_name is not None and isinstance(expected, TableSet):
        expected_table = expected.table(table_name)
        if expected_table is None:
            msg = f"Expected table not found: {table_name}"
            raise ValueError(msg)
        actual_table = actual.table(table_name) if isinstance(actual, TableSet) else None
        if actual_table is None:
            result = ComparisonResult()
            result.add_missing_table(table_name)
            report(result, failure_sink)
            return
        expected, actual = expected_table, actual_table
    report(compare(expected, actual, selection=selection), failure_sink)


def assert_equals_with_policies(
    expected: Table,
    actual: Table,
    policies: Mapping[str, ComparisonPolicy],
    failure_sink: FailureSink | None = None,
) -> None:
    """Assert equivalence using per-column comparison policies."""
    registry = PolicyRegistry.of(policies)
    report(compare(expected, actual, policies=registry), failure_sink)


def assert_equals_by_query(  # noqa: PLR0913
    expected: Snapshot,
    engine: Engine,
    table_name: str,
    sql: str,
    ignore_columns: Collection[str] = (),
    failure_sink: FailureSink | None = None,
) -> None:
    """Assert the result of a SQL query matches an expected table.

    With a table set, the table named ``table_name`` is the expectation.
    """
    if isinstance(expected, TableSet):
        expected_table = expected.table(table_name)
        if expected_table is None:
            msg = f"Expected table not found: {table_name}"
            raise ValueError(msg)
        expected = expected_table

    actual = read_query(engine, table_name, sql)
    selection = ColumnSelection.ignoring(ignore_columns)
    report(compare(expected, actual, selection=selection), failure_sink)


def verify_expectation(
    expected: TableSet,
    engine: Engine,
    policies: PolicyRegistry | None = None,
    failure_sink: FailureSink | None = None,
) -> None:
    """Read every expected table from the database and compare the whole set."""
    logger.debug("Verifying expectation for %d tables", len(expected))
    actual = read_table_set(engine, expected)
    result = compare(expected, actual, policies=policies)
    report(result, failure_sink)
    logger.debug("Finished verifying expectation for %d tables", len(expected))
