"""Loading of column comparison policies from TOML files.

Example::

    default = "strict"

    [columns]
    NAME = "case-insensitive"
    ID = { regex = "[0-9a-f-]{36}" }

    [tables.USERS.columns]
    UPDATED_AT = "ignore"
"""

from collections.abc import Mapping
from pathlib import Path
from tomllib import load
from typing import Any

from fixture_diff.policy import STRICT, PolicyRegistry, parse_policy


def _section(data: Mapping[str, Any], key: str, where: str) -> Mapping[str, Any]:
    """Return a sub-table, treating a missing key as empty."""
    section = data.get(key, {})
    if not isinstance(section, Mapping):
        msg = f"'{key}' in {where} must be a table"
        raise ValueError(msg)
    return section


def registry_from_mapping(data: Mapping[str, Any]) -> PolicyRegistry:
    """Build a policy registry from parsed configuration data."""
    unknown = set(data) - {"default", "columns", "tables"}
    if unknown:
        msg = f"Unknown configuration keys: {', '.join(sorted(unknown))}"
        raise ValueError(msg)

    default = parse_policy(data["default"]) if "default" in data else STRICT
    registry = PolicyRegistry(default)

    for column, policy in _section(data, "columns", "configuration").items():
        registry.column(column, parse_policy(policy))

    for table, table_data in _section(data, "tables", "configuration").items():
        if not isinstance(table_data, Mapping):
            msg = f"Table '{table}' configuration must be a table"
            raise ValueError(msg)
        for column, policy in _section(table_data, "columns", table).items():
            registry.column(column, parse_policy(policy), table=table)

    return registry


def load_config(config_location: Path) -> PolicyRegistry:
    """Load a policy registry from a TOML file."""
    with config_location.open("rb") as f:
        return registry_from_mapping(load(f))
