"""Per-column comparison policies and their name-based registry.

Policies are plain data: a closed set of kinds, one of which carries a regular
expression. The registry resolves the policy for a column by name, preferring
table-specific overrides, then column-wide overrides, then the default.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from fixture_diff.types import ColumnName, as_column

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


class PolicyKind(StrEnum):
    """Kinds of per-column equivalence rules."""

    STRICT = auto()
    IGNORE = auto()
    NUMERIC = auto()
    CASE_INSENSITIVE = auto()
    TIMESTAMP_FLEXIBLE = auto()
    NOT_NULL = auto()
    REGEX = auto()


@dataclass(frozen=True)
class ComparisonPolicy:
    """How two cells of one column are judged equivalent."""

    kind: PolicyKind
    pattern: str | None = None
    _compiled: re.Pattern[str] | None = field(
        default=None,
        init=False,
        repr=False,
        compare=False,
    )

    def __post_init__(self) -> None:
        """Validate the pattern against the kind and precompile it."""
        if self.kind is PolicyKind.REGEX:
            if self.pattern is None:
                msg = "REGEX policy requires a pattern"
                raise ValueError(msg)
            try:
                compiled = re.compile(self.pattern)
            except re.error as err:
                msg = f"Invalid regex pattern {self.pattern!r}: {err}"
                raise ValueError(msg) from err
            object.__setattr__(self, "_compiled", compiled)
        elif self.pattern is not None:
            msg = f"{self.kind.name} policy does not take a pattern"
            raise ValueError(msg)

    def full_match(self, text: str) -> bool:
        """Whether the text matches the whole pattern of a REGEX policy."""
        if self._compiled is None:
            msg = f"{self.kind.name} policy has no pattern to match"
            raise ValueError(msg)
        return self._compiled.fullmatch(text) is not None

    def __str__(self) -> str:
        """Policy name as used in configuration files."""
        if self.kind is PolicyKind.REGEX:
            return f"regex:{self.pattern}"
        return str(self.kind)


STRICT = ComparisonPolicy(PolicyKind.STRICT)
IGNORE = ComparisonPolicy(PolicyKind.IGNORE)
NUMERIC = ComparisonPolicy(PolicyKind.NUMERIC)
CASE_INSENSITIVE = ComparisonPolicy(PolicyKind.CASE_INSENSITIVE)
TIMESTAMP_FLEXIBLE = ComparisonPolicy(PolicyKind.TIMESTAMP_FLEXIBLE)
NOT_NULL = ComparisonPolicy(PolicyKind.NOT_NULL)


def regex(pattern: str) -> ComparisonPolicy:
    """Create a policy that accepts actual values fully matching the pattern."""
    return ComparisonPolicy(PolicyKind.REGEX, pattern)


def parse_policy(value: str | Mapping[str, Any]) -> ComparisonPolicy:
    """Parse a policy from its configuration form.

    Args:
        value: A policy name such as ``"case-insensitive"`` (case and ``-``/``_``
            are not significant), a ``"regex:<pattern>"`` string, or a mapping
            with a single ``regex`` key

    Returns:
        The parsed policy

    Raises:
        ValueError: If the name is unknown or the mapping is malformed

    """
    if isinstance(value, str):
        if value.lower().startswith("regex:"):
            return regex(value[len("regex:") :])
        name = value.strip().lower().replace("-", "_")
        try:
            kind = PolicyKind(name)
        except ValueError as err:
            msg = f"Unknown comparison policy: {value!r}"
            raise ValueError(msg) from err
        if kind is PolicyKind.REGEX:
            msg = "REGEX policy requires a pattern, use {regex = '<pattern>'}"
            raise ValueError(msg)
        return ComparisonPolicy(kind)

    if set(value) != {"regex"} or not isinstance(value["regex"], str):
        msg = f"Policy mapping must have exactly one string 'regex' key: {value!r}"
        raise ValueError(msg)
    return regex(value["regex"])


class PolicyRegistry:
    """Name-based registry of comparison policies."""

    def __init__(self, default: ComparisonPolicy = STRICT) -> None:
        """Initialize an empty registry with a table-set default policy."""
        self.default = default
        self._columns: dict[ColumnName, ComparisonPolicy] = {}
        self._tables: dict[tuple[str, ColumnName], ComparisonPolicy] = {}

    @classmethod
    def of(
        cls,
        policies: Mapping[str, ComparisonPolicy],
        default: ComparisonPolicy = STRICT,
    ) -> PolicyRegistry:
        """Create a registry from a column name to policy mapping."""
        registry = cls(default)
        for column, policy in policies.items():
            registry.column(column, policy)
        return registry

    def column(
        self,
        name: ColumnName | str,
        policy: ComparisonPolicy,
        *,
        table: str | None = None,
    ) -> None:
        """Register a policy for a column, optionally scoped to one table."""
        if table is None:
            self._columns[as_column(name)] = policy
        else:
            self._tables[table, as_column(name)] = policy

    def policy_for(
        self,
        column: ColumnName | str,
        table: str | None = None,
    ) -> ComparisonPolicy:
        """Resolve the policy for a column, first match wins.

        Args:
            column: Column to look up (case-insensitive)
            table: Table the column belongs to, for table-scoped overrides

        Returns:
            Table-scoped override, column-wide override, or the default

        """
        column = as_column(column)
        if table is not None and (policy := self._tables.get((table, column))):
            return policy
        return self._columns.get(column, self.default)

    def rules(self) -> Iterator[tuple[str | None, ColumnName, ComparisonPolicy]]:
        """Iterate ``(table, column, policy)`` rules, column-wide rules first."""
        for column, policy in self._columns.items():
            yield None, column, policy
        for (table, column), policy in self._tables.items():
            yield table, column, policy

    def __len__(self) -> int:
        """Number of registered rules."""
        return len(self._columns) + len(self._tables)
