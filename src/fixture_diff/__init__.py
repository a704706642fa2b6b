"""Collect-all comparison of expected table fixtures against database snapshots."""

from fixture_diff.assertion import (
    ComparisonFailedError,
    FailureSink,
    assert_equals,
    assert_equals_by_query,
    assert_equals_ignore_columns,
    assert_equals_with_columns,
    assert_equals_with_policies,
    compare,
    verify_expectation,
)
from fixture_diff.coercion import values_equal
from fixture_diff.comparator import ColumnSelection, Comparator
from fixture_diff.policy import (
    CASE_INSENSITIVE,
    IGNORE,
    NOT_NULL,
    NUMERIC,
    STRICT,
    TIMESTAMP_FLEXIBLE,
    ComparisonPolicy,
    PolicyKind,
    PolicyRegistry,
    regex,
)
from fixture_diff.result import ComparisonResult, Difference, DifferenceKind
from fixture_diff.types import (
    CellValue,
    ColumnMetadata,
    ColumnName,
    Row,
    StreamedText,
    Table,
    TableSet,
)

__all__ = [
    "CASE_INSENSITIVE",
    "IGNORE",
    "NOT_NULL",
    "NUMERIC",
    "STRICT",
    "TIMESTAMP_FLEXIBLE",
    "CellValue",
    "ColumnMetadata",
    "ColumnName",
    "ColumnSelection",
    "Comparator",
    "ComparisonFailedError",
    "ComparisonPolicy",
    "ComparisonResult",
    "Difference",
    "DifferenceKind",
    "FailureSink",
    "PolicyKind",
    "PolicyRegistry",
    "Row",
    "StreamedText",
    "Table",
    "TableSet",
    "assert_equals",
    "assert_equals_by_query",
    "assert_equals_ignore_columns",
    "assert_equals_with_columns",
    "assert_equals_with_policies",
    "compare",
    "regex",
    "values_equal",
    "verify_expectation",
]
