"""Table set, table and row differ."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto
from logging import getLogger
from typing import TYPE_CHECKING

from fixture_diff.coercion import values_equal
from fixture_diff.policy import PolicyRegistry
from fixture_diff.result import ComparisonResult
from fixture_diff.types import ColumnName, as_column

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fixture_diff.types import Row, Table, TableSet

logger = getLogger(__name__)


class SelectionMode(StrEnum):
    """Which columns of a table take part in the comparison."""

    ALL = auto()
    SUPERSET = auto()
    IGNORE = auto()


@dataclass(frozen=True)
class ColumnSelection:
    """Column selection for one comparison call."""

    mode: SelectionMode = SelectionMode.ALL
    names: tuple[ColumnName, ...] = ()

    @classmethod
    def superset(cls, extra_columns: Iterable[ColumnName | str]) -> ColumnSelection:
        """Expected columns plus the given extra columns."""
        return cls(SelectionMode.SUPERSET, tuple(map(as_column, extra_columns)))

    @classmethod
    def ignoring(cls, ignore_columns: Iterable[ColumnName | str]) -> ColumnSelection:
        """Expected columns minus the given ignored columns."""
        return cls(SelectionMode.IGNORE, tuple(map(as_column, ignore_columns)))

    def select(self, columns: Iterable[ColumnName]) -> tuple[ColumnName, ...]:
        """Select columns to compare, expected columns first and in order."""
        columns = tuple(columns)
        match self.mode:
            case SelectionMode.ALL:
                return columns
            case SelectionMode.IGNORE:
                ignored = set(self.names)
                return tuple(column for column in columns if column not in ignored)
            case SelectionMode.SUPERSET:
                extras = (
                    name for name in dict.fromkeys(self.names) if name not in columns
                )
                return (*columns, *extras)


class Comparator:
    """Walks expected and actual snapshots and records every divergence.

    Traversal is driven by the expected side: tables and columns that only
    exist in the actual data are not reported.
    """

    def __init__(
        self,
        policies: PolicyRegistry | None = None,
        selection: ColumnSelection | None = None,
    ) -> None:
        """Initialize the comparator with column policies and selection."""
        self.policies = policies if policies is not None else PolicyRegistry()
        self.selection = selection or ColumnSelection()

    def compare_table_sets(
        self,
        expected: TableSet,
        actual: TableSet,
        result: ComparisonResult | None = None,
    ) -> ComparisonResult:
        """Compare all expected tables against the actual table set."""
        result = result if result is not None else ComparisonResult()
        result.count_tables(len(expected), len(actual))

        if len(expected) != len(actual):
            result.add_table_count_mismatch(len(expected), len(actual))

        for expected_table in expected:
            actual_table = actual.table(expected_table.name)
            if actual_table is None:
                logger.debug("Table %s not found in actual data", expected_table.name)
                result.add_missing_table(expected_table.name)
                continue
            self.compare_tables(expected_table, actual_table, result)

        return result

    def compare_tables(
        self,
        expected: Table,
        actual: Table,
        result: ComparisonResult | None = None,
    ) -> ComparisonResult:
        """Compare two tables row by row, by position."""
        result = result if result is not None else ComparisonResult()
        result.count_rows(expected.row_count, actual.row_count)

        logger.debug(
            "Comparing table %s: expected %d rows, actual %d rows",
            expected.name,
            expected.row_count,
            actual.row_count,
        )

        if expected.row_count != actual.row_count:
            result.add_row_count_mismatch(
                expected.name,
                expected.row_count,
                actual.row_count,
            )

        columns = self.selection.select(expected.columns)
        for index, (expected_row, actual_row) in enumerate(
            zip(expected.rows, actual.rows, strict=False),
        ):
            self.compare_rows(
                expected,
                actual,
                index,
                (expected_row, actual_row),
                columns,
                result,
            )

        return result

    def compare_rows(  # noqa: PLR0913
        self,
        expected: Table,
        actual: Table,
        index: int,
        rows: tuple[Row, Row],
        columns: Iterable[ColumnName],
        result: ComparisonResult,
    ) -> None:
        """Compare the selected columns of one row pair."""
        expected_row, actual_row = rows
        for column in columns:
            expected_value = expected_row.value(column)
            actual_value = actual_row.value(column)
            policy = self.policies.policy_for(column, expected.name)

            if not values_equal(expected_value, actual_value, policy):
                result.add_value_mismatch(
                    expected.name,
                    index,
                    column,
                    expected_value,
                    actual_value,
                    actual.column_metadata(column)
                    or expected.column_metadata(column),
                )
