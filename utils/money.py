"""
Money arithmetic helpers
Exact Decimal arithmetic for invoice amounts
"""

from decimal import (
    Context,
    Decimal,
    DecimalException,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
    ROUND_HALF_UP,
)
from typing import Iterable, Union

from models.errors import ComputationError


# Any operation that would have to round raises instead of drifting
EXACT = Context(
    prec=34,
    rounding=ROUND_HALF_UP,
    traps=[InvalidOperation, Overflow, DivisionByZero, Inexact],
)

ROUNDING = Context(
    prec=34,
    rounding=ROUND_HALF_UP,
    traps=[InvalidOperation, Overflow, DivisionByZero],
)

ZERO = Decimal("0")
WHOLE_UNIT = Decimal("1")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float drift"""

    if isinstance(value, bool):
        raise ValueError("boolean is not a number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}")
    else:
        raise ValueError(f"not a number: {value!r}")

    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")

    return result


def multiply(a: Decimal, b: Decimal) -> Decimal:
    try:
        return EXACT.multiply(a, b)
    except DecimalException as e:
        raise ComputationError(f"cannot multiply {a} by {b} exactly") from e


def percent_of(amount: Decimal, rate: Decimal) -> Decimal:
    """amount × rate / 100, applied before any rounding"""

    try:
        return EXACT.multiply(amount, rate).scaleb(-2, EXACT)
    except DecimalException as e:
        raise ComputationError(f"cannot apply {rate}% to {amount} exactly") from e


def add_all(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    try:
        for value in values:
            total = EXACT.add(total, value)
    except DecimalException as e:
        raise ComputationError("sum exceeds supported precision") from e
    return total


def subtract(a: Decimal, b: Decimal) -> Decimal:
    try:
        return EXACT.subtract(a, b)
    except DecimalException as e:
        raise ComputationError(f"cannot subtract {b} from {a} exactly") from e


def round_to_unit(value: Decimal) -> Decimal:
    """Round half-up to the nearest whole currency unit"""

    try:
        return value.quantize(WHOLE_UNIT, context=ROUNDING)
    except DecimalException as e:
        raise ComputationError(f"cannot round {value}") from e


def to_json_number(value: Decimal) -> Union[int, float]:
    """Plain JSON number for a Decimal (int when integral)"""

    if value == value.to_integral_value():
        return int(value)
    return float(value)
