"""Tests for comparison policies and the policy registry."""

import pytest

from fixture_diff.policy import (
    CASE_INSENSITIVE,
    IGNORE,
    NUMERIC,
    STRICT,
    TIMESTAMP_FLEXIBLE,
    ComparisonPolicy,
    PolicyKind,
    PolicyRegistry,
    parse_policy,
    regex,
)


def test_regex_policy_matches_whole_text() -> None:
    """Test regex policies require a full match."""
    policy = regex(r"[a-f0-9-]{36}")

    assert policy.full_match("123e4567-e89b-12d3-a456-426614174000")
    assert not policy.full_match("id-123e4567-e89b-12d3-a456-426614174000")


def test_regex_policy_requires_valid_pattern() -> None:
    """Test invalid patterns are rejected at construction."""
    with pytest.raises(ValueError, match="Invalid regex pattern"):
        regex("[unclosed")
    with pytest.raises(ValueError, match="requires a pattern"):
        ComparisonPolicy(PolicyKind.REGEX)


def test_non_regex_policy_rejects_pattern() -> None:
    """Test only regex policies carry a pattern."""
    with pytest.raises(ValueError, match="does not take a pattern"):
        ComparisonPolicy(PolicyKind.STRICT, ".*")


def test_policies_are_values() -> None:
    """Test policies compare by kind and pattern."""
    assert regex("a+") == regex("a+")
    assert regex("a+") != regex("b+")
    assert ComparisonPolicy(PolicyKind.NUMERIC) == NUMERIC


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("strict", STRICT),
        ("IGNORE", IGNORE),
        ("case-insensitive", CASE_INSENSITIVE),
        ("timestamp_flexible", TIMESTAMP_FLEXIBLE),
        ("regex:\\d+", regex("\\d+")),
    ],
)
def test_parse_policy_names(text: str, expected: ComparisonPolicy) -> None:
    """Test policy names from configuration files."""
    assert parse_policy(text) == expected


def test_parse_policy_mapping() -> None:
    """Test the regex table form."""
    assert parse_policy({"regex": "[0-9]+"}) == regex("[0-9]+")


def test_parse_policy_rejects_unknown() -> None:
    """Test unknown names and malformed mappings raise."""
    with pytest.raises(ValueError, match="Unknown comparison policy"):
        parse_policy("fuzzy")
    with pytest.raises(ValueError, match="requires a pattern"):
        parse_policy("regex")
    with pytest.raises(ValueError, match="exactly one string 'regex' key"):
        parse_policy({"pattern": "x"})


def test_registry_resolution_order() -> None:
    """Test table override, then column override, then default."""
    registry = PolicyRegistry(default=NUMERIC)
    registry.column("name", CASE_INSENSITIVE)
    registry.column("NAME", IGNORE, table="USERS")

    assert registry.policy_for("Name", "USERS") == IGNORE
    assert registry.policy_for("NAME", "ORDERS") == CASE_INSENSITIVE
    assert registry.policy_for("NAME") == CASE_INSENSITIVE
    assert registry.policy_for("AMOUNT", "ORDERS") == NUMERIC


def test_registry_defaults_to_strict() -> None:
    """Test unspecified columns compare strictly."""
    registry = PolicyRegistry.of({"ID": IGNORE})

    assert registry.policy_for("id") == IGNORE
    assert registry.policy_for("other") == STRICT
    assert len(registry) == 1


def test_registry_rules_listing() -> None:
    """Test rules are listed column-wide first."""
    registry = PolicyRegistry()
    registry.column("A", IGNORE, table="T")
    registry.column("B", NUMERIC)

    rules = [(table, str(column), policy) for table, column, policy in registry.rules()]

    assert rules == [(None, "B", NUMERIC), ("T", "A", IGNORE)]
