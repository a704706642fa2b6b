"""Accumulation of differences found during one comparison call."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from fixture_diff.reporting import result_to_json, result_to_yaml

if TYPE_CHECKING:
    from fixture_diff.types import CellValue, ColumnMetadata, ColumnName

DATASET_KEY = "(dataset)"


class DifferenceKind(StrEnum):
    """Where a difference was found."""

    TABLE_COUNT = auto()
    MISSING_TABLE = auto()
    ROW_COUNT = auto()
    CELL = auto()


@dataclass(frozen=True)
class DifferencePath:
    """Location of a difference within the compared table set."""

    kind: DifferenceKind
    table: str | None = None
    row: int | None = None
    column: str | None = None

    @property
    def group(self) -> str:
        """Report section the difference belongs to."""
        return self.table if self.table is not None else DATASET_KEY

    def __str__(self) -> str:
        """Path as shown in rendered reports."""
        match self.kind:
            case DifferenceKind.TABLE_COUNT:
                return "table_count"
            case DifferenceKind.MISSING_TABLE:
                return "table"
            case DifferenceKind.ROW_COUNT:
                return "row_count"
            case DifferenceKind.CELL:
                return f"row[{self.row}].{self.column}"


@dataclass(frozen=True)
class Difference:
    """One recorded divergence between expected and actual data."""

    path: DifferencePath
    expected: str | None
    actual: str | None
    metadata: ColumnMetadata | None = None
    # Raw payloads handed to custom failure sinks
    expected_value: object = field(default=None, repr=False, compare=False)
    actual_value: object = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form used by the structured report."""
        entry: dict[str, Any] = {
            "path": str(self.path),
            "expected": self.expected,
            "actual": self.actual,
        }
        if self.metadata is not None:
            entry["column"] = self.metadata.to_dict()
        return entry


class ComparisonResult:
    """Append-only record of the differences of one top-level comparison.

    Differences are kept in the order they were recorded and are never
    overwritten or deduplicated. Once rendered, the result is frozen.
    """

    def __init__(self) -> None:
        """Start an empty result."""
        self._differences: list[Difference] = []
        self._frozen = False
        self.expected_tables = 0
        self.actual_tables = 0
        self.expected_rows = 0
        self.actual_rows = 0

    def record(self, difference: Difference) -> None:
        """Append a difference."""
        if self._frozen:
            msg = "Cannot record differences on a frozen comparison result"
            raise RuntimeError(msg)
        self._differences.append(difference)

    def count_tables(self, expected: int, actual: int) -> None:
        """Add to the compared table counts."""
        self.expected_tables += expected
        self.actual_tables += actual

    def count_rows(self, expected: int, actual: int) -> None:
        """Add to the compared row counts."""
        self.expected_rows += expected
        self.actual_rows += actual

    def add_table_count_mismatch(self, expected: int, actual: int) -> None:
        """Record differing table counts."""
        self.record(
            Difference(
                DifferencePath(DifferenceKind.TABLE_COUNT),
                str(expected),
                str(actual),
                expected_value=expected,
                actual_value=actual,
            ),
        )

    def add_missing_table(self, table: str) -> None:
        """Record an expected table absent from the actual data."""
        self.record(
            Difference(
                DifferencePath(DifferenceKind.MISSING_TABLE, table),
                "exists",
                "not found",
                expected_value=table,
            ),
        )

    def add_row_count_mismatch(self, table: str, expected: int, actual: int) -> None:
        """Record differing row counts for a table."""
        self.record(
            Difference(
                DifferencePath(DifferenceKind.ROW_COUNT, table),
                str(expected),
                str(actual),
                expected_value=expected,
                actual_value=actual,
            ),
        )

    def add_value_mismatch(  # noqa: PLR0913
        self,
        table: str,
        row: int,
        column: ColumnName,
        expected: CellValue,
        actual: CellValue,
        metadata: ColumnMetadata | None = None,
    ) -> None:
        """Record a cell whose values are not equivalent."""
        self.record(
            Difference(
                DifferencePath(DifferenceKind.CELL, table, row, str(column)),
                expected.text(),
                actual.text(),
                metadata,
                expected_value=expected.payload,
                actual_value=actual.payload,
            ),
        )

    @property
    def differences(self) -> tuple[Difference, ...]:
        """All differences in recording order."""
        return tuple(self._differences)

    @property
    def frozen(self) -> bool:
        """Whether the result no longer accepts differences."""
        return self._frozen

    def freeze(self) -> None:
        """Stop accepting differences."""
        self._frozen = True

    def has_differences(self) -> bool:
        """Whether any difference was recorded."""
        return bool(self._differences)

    def first(self) -> Difference | None:
        """First recorded difference, if any."""
        return self._differences[0] if self._differences else None

    def by_table(self) -> dict[str, list[Difference]]:
        """Differences grouped by report section, in first-seen order."""
        grouped: dict[str, list[Difference]] = defaultdict(list)
        for difference in self._differences:
            grouped[difference.path.group].append(difference)
        return dict(grouped)

    def summary(self) -> str:
        """One-line summary with counts only."""
        if not self._differences:
            return "No differences found"
        total = len(self._differences)
        noun = "difference" if total == 1 else "differences"
        return f"{total} {noun} in {', '.join(self.by_table())}"

    def to_dict(self) -> dict[str, Any]:
        """Structured report keyed by table name."""
        return {
            "summary": {
                "status": "FAILED" if self._differences else "PASSED",
                "total_differences": len(self._differences),
                "expected_tables": self.expected_tables,
                "actual_tables": self.actual_tables,
                "expected_rows": self.expected_rows,
                "actual_rows": self.actual_rows,
            },
            "tables": {
                table: {"differences": [d.to_dict() for d in differences]}
                for table, differences in self.by_table().items()
            },
        }

    def to_yaml(self) -> str:
        """Structured report as a YAML document."""
        return result_to_yaml(self)

    def to_json(self) -> str:
        """Structured report as a JSON document."""
        return result_to_json(self)

    def render(self) -> str:
        """Summary line followed by the YAML report; freezes the result."""
        self.freeze()
        if not self._differences:
            return self.summary()
        return f"{self.summary()}\n{self.to_yaml()}".rstrip()

    def __len__(self) -> int:
        """Number of recorded differences."""
        return len(self._differences)

    def __repr__(self) -> str:
        """Debug representation."""
        return f"ComparisonResult({self.summary()!r})"
