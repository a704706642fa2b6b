"""Type-coercing equivalence rules for cell values.

Fixture cells are plain text while database cells come back natively typed.
This module reconciles the two without requiring either side to be
pre-normalized. For the default policy the coercion rules are applied in a
fixed precedence order and the first applicable rule decides the outcome:

1. direct equality of payloads of the same kind
2. streamed text against anything, compared by text form
3. text against a number, parsed into the number's domain
4. number against number, by value (epsilon for floating point)
5. boolean against text, using common boolean spellings
6. normalized text forms (timestamp sub-second zeros stripped)
"""

from __future__ import annotations

import math
import re
import string
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from fixture_diff.policy import STRICT, ComparisonPolicy, PolicyKind
from fixture_diff.types import NUMBER_KINDS, ScalarKind, render_scalar, scalar_kind

if TYPE_CHECKING:
    from fixture_diff.types import CellValue, Scalar

EPSILON = 1e-6

TRUE_STRINGS = frozenset({"1", "true", "yes", "y"})
FALSE_STRINGS = frozenset({"0", "false", "no", "n"})

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)
_TIMESTAMP_TRAILING_ZEROS = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(\.0+)?")
_DECIMAL_TEXT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_FLOAT_TEXT = re.compile(
    r"[+-]?(NaN|Infinity|(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?)",
)
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

type Number = int | Decimal | float


def values_equal(
    expected: CellValue,
    actual: CellValue,
    policy: ComparisonPolicy = STRICT,
) -> bool:
    """Decide whether two cells are equivalent under a policy."""
    match policy.kind:
        case PolicyKind.IGNORE:
            return True
        case PolicyKind.NOT_NULL:
            return not actual.is_null
        case PolicyKind.REGEX:
            return actual.payload is not None and policy.full_match(
                render_scalar(actual.payload),
            )

    if expected.payload is None or actual.payload is None:
        return expected.is_null and actual.is_null

    match policy.kind:
        case PolicyKind.CASE_INSENSITIVE:
            return _ascii_lower(render_scalar(expected.payload)) == _ascii_lower(
                render_scalar(actual.payload),
            )
        case PolicyKind.NUMERIC:
            return numeric_equal(expected.payload, actual.payload)
        case PolicyKind.TIMESTAMP_FLEXIBLE:
            return timestamps_equal(expected.payload, actual.payload)
        case _:
            return coerced_equal(expected.payload, actual.payload)


def coerced_equal(expected: Scalar, actual: Scalar) -> bool:  # noqa: PLR0911
    """Compare two non-null payloads with the type-coercion ladder."""
    expected_kind, actual_kind = scalar_kind(expected), scalar_kind(actual)

    if (
        expected_kind is actual_kind
        and expected_kind is not ScalarKind.STREAMED_TEXT
        and expected == actual
    ):
        return True

    match expected_kind, actual_kind:
        case (ScalarKind.STREAMED_TEXT, _) | (_, ScalarKind.STREAMED_TEXT):
            return render_scalar(expected) == render_scalar(actual)
        case (ScalarKind.TEXT, kind) if kind in NUMBER_KINDS:
            return text_equals_number(expected, actual)  # type: ignore[arg-type]
        case (kind, ScalarKind.TEXT) if kind in NUMBER_KINDS:
            return text_equals_number(actual, expected)  # type: ignore[arg-type]
        case (left, right) if left in NUMBER_KINDS and right in NUMBER_KINDS:
            return numbers_equal(expected, actual)  # type: ignore[arg-type]
        case (ScalarKind.TEXT, ScalarKind.BOOLEAN):
            return text_equals_boolean(expected, actual)  # type: ignore[arg-type]
        case (ScalarKind.BOOLEAN, ScalarKind.TEXT):
            return text_equals_boolean(actual, expected)  # type: ignore[arg-type]

    return normalize_text(render_scalar(expected)) == normalize_text(
        render_scalar(actual),
    )


def text_equals_number(text: str, number: Number) -> bool:
    """Compare fixture text with a native number in the number's domain.

    Text that does not parse as a number is compared with the number's text
    form instead of raising.
    """
    stripped = text.strip()
    try:
        if isinstance(number, float):
            return floats_close(parse_float(stripped), number)

        if "." not in stripped:
            parsed = parse_integer(stripped)
            if isinstance(number, Decimal):
                if number.is_finite() and number == number.to_integral_value():
                    return parsed == int(number)
                return parse_decimal(stripped) == number
            return parsed == number

        return parse_decimal(stripped) == Decimal(number)
    except (ValueError, InvalidOperation):
        return text == render_scalar(number)


def numbers_equal(expected: Number, actual: Number) -> bool:
    """Compare two numbers of possibly different representations by value."""
    if isinstance(expected, float) or isinstance(actual, float):
        return floats_close(as_float(expected), as_float(actual))
    return Decimal(expected) == Decimal(actual)


def floats_close(expected: float, actual: float) -> bool:
    """Compare floating point values with a relative/absolute epsilon."""
    if math.isnan(expected) and math.isnan(actual):
        return True
    if math.isinf(expected) and math.isinf(actual):
        return expected == actual

    diff = abs(expected - actual)
    largest = max(abs(expected), abs(actual))

    # Near zero a relative error is meaningless
    if largest < EPSILON:
        return diff < EPSILON
    return diff / largest < EPSILON


def text_equals_boolean(text: str, flag: bool) -> bool:  # noqa: FBT001
    """Match text against a boolean using common database spellings."""
    normalized = text.strip().lower()
    return normalized in (TRUE_STRINGS if flag else FALSE_STRINGS)


def normalize_text(value: str) -> str:
    """Strip zero sub-second digits from ``YYYY-MM-DD HH:MM:SS.0`` timestamps."""
    if _TIMESTAMP_TRAILING_ZEROS.fullmatch(value):
        return re.sub(r"\.0+$", "", value)
    return value


def parse_integer(text: str) -> int:
    """Parse an optionally signed run of digits."""
    if not re.fullmatch(r"[+-]?\d+", text):
        msg = f"Not an integer: {text!r}"
        raise ValueError(msg)
    return int(text)


def parse_float(text: str) -> float:
    """Parse decimal notation or the literal NaN and Infinity spellings."""
    if not _FLOAT_TEXT.fullmatch(text):
        msg = f"Not a floating point number: {text!r}"
        raise ValueError(msg)
    return float(text)


def as_float(value: Number) -> float:
    """Convert a number to float, saturating to infinity out of range."""
    return float(Decimal(value)) if isinstance(value, int) else float(value)


def parse_decimal(text: str) -> Decimal:
    """Parse plain or exponent decimal notation, rejecting NaN and infinities."""
    if not _DECIMAL_TEXT.fullmatch(text):
        msg = f"Not a decimal number: {text!r}"
        raise ValueError(msg)
    return Decimal(text)


def numeric_equal(expected: Scalar, actual: Scalar) -> bool:
    """Compare both payloads as numbers, falling back to the coercion ladder."""
    left, right = as_number(expected), as_number(actual)
    if left is None or right is None:
        return coerced_equal(expected, actual)
    return numbers_equal(left, right)


def as_number(value: Scalar) -> Number | None:
    """Interpret a payload as a number, ``None`` when it is not numeric."""
    kind = scalar_kind(value)
    if kind in NUMBER_KINDS:
        return value  # type: ignore[return-value]
    if kind in {ScalarKind.TEXT, ScalarKind.STREAMED_TEXT}:
        try:
            return parse_decimal(render_scalar(value).strip())
        except ValueError:
            return None
    return None


def timestamps_equal(expected: Scalar, actual: Scalar) -> bool:
    """Compare both payloads as instants at second precision.

    Naive timestamps are read as UTC. Payloads that are not timestamps fall
    back to the coercion ladder.
    """
    left, right = epoch_seconds(expected), epoch_seconds(actual)
    if left is None or right is None:
        return coerced_equal(expected, actual)
    return left == right


def epoch_seconds(value: Scalar) -> int | None:
    """Seconds since the epoch for a timestamp payload, ``None`` otherwise."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date) or scalar_kind(value) not in {
        ScalarKind.TEXT,
        ScalarKind.STREAMED_TEXT,
    }:
        return None
    else:
        normalized = render_scalar(value).strip().replace(" ", "T")
        if "T" not in normalized:
            return None
        try:
            moment = datetime.fromisoformat(normalized)
        except ValueError:
            return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - _EPOCH) // timedelta(seconds=1)


def _ascii_lower(value: str) -> str:
    return value.translate(_ASCII_LOWER)
