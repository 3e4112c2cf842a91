"""
Money arithmetic in integer minor units.

All split and balance math runs on integer cents (and basis points for
percentages) so totals add up exactly. Decimals only appear at the
edges: parsing input and rendering output.
"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence

from .exceptions import ExpenseValidationError

CENT = Decimal('0.01')
RECONCILIATION_TOLERANCE = Decimal('0.01')
MAX_EXPENSE_AMOUNT = Decimal('999999.99')
FULL_PERCENTAGE_BP = 10000

# Largest decimal exponent accepted before scaling to minor units
MAX_INPUT_EXPONENT = 15


def _to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ExpenseValidationError(
            f"{field} must be a number", field=field, value=value
        )

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float, str)):
        try:
            # str() keeps floats like 0.1 at their shortest repr
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise ExpenseValidationError(
                f"{field} must be a number", field=field, value=value
            )
    else:
        raise ExpenseValidationError(
            f"{field} must be a number", field=field, value=value
        )

    if not number.is_finite():
        raise ExpenseValidationError(
            f"{field} must be a finite number", field=field, value=str(value)
        )
    if number and number.adjusted() > MAX_INPUT_EXPONENT:
        raise ExpenseValidationError(
            f"{field} is too large", field=field, value=str(value)
        )
    return number


def _scaled(value, field: str, label: str) -> int:
    number = _to_decimal(value, field)
    try:
        quantized = number.quantize(CENT)
    except ArithmeticError:
        quantized = None
    if quantized is None or quantized != number:
        raise ExpenseValidationError(
            f"{label} can have at most 2 decimal places",
            field=field,
            value=str(value),
        )
    return int(quantized * 100)


def to_minor_units(value, field: str = 'amount') -> int:
    """
    Convert a money value to integer cents.

    Accepts Decimal, int, float or numeric strings.

    Raises:
        ExpenseValidationError: For non-numeric, non-finite or
            over-precise values
    """
    return _scaled(value, field, 'Amount')


def from_minor_units(units: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal."""
    return (Decimal(units) / 100).quantize(CENT)


def to_basis_points(value, field: str = 'percentage') -> int:
    """Convert a percentage (e.g. ``33.33``) to basis points (``3333``)."""
    return _scaled(value, field, 'Percentage')


def from_basis_points(bp: int) -> Decimal:
    return (Decimal(bp) / 100).quantize(CENT)


def _round_half_up(numerator: int, denominator: int) -> int:
    quotient, remainder = divmod(numerator, denominator)
    if 2 * remainder >= denominator:
        quotient += 1
    return quotient


def distribute(
    total_units: int,
    weights: Sequence[int],
    denominator: Optional[int] = None
) -> List[int]:
    """
    Split ``total_units`` by weight, last part absorbing the rounding.

    Every part but the last is ``total * weight / denominator`` rounded
    half up to a whole unit; the last part is whatever remains, so the
    parts sum to ``total_units`` exactly. Splitting 100.00 six ways gives
    16.67 five times and 16.65 for the last.

    When the rounded-up parts would leave the last one negative (a few
    cents over many participants) the split falls back to ``apportion``.

    Args:
        total_units: Non-negative integer total
        weights: Non-negative integer weights, at least one positive
        denominator: Weight total to divide by, ``sum(weights)`` if omitted

    Returns:
        List of integer parts in the order of ``weights``

    Raises:
        ValueError: If weights are empty or all zero
    """
    if not weights:
        raise ValueError("At least one weight required")

    weight_sum = sum(weights)
    if weight_sum <= 0:
        raise ValueError("Weights must not all be zero")

    denominator = denominator or weight_sum
    parts = [
        _round_half_up(total_units * weight, denominator)
        for weight in weights[:-1]
    ]
    last = total_units - sum(parts)
    if last < 0:
        return apportion(total_units, weights)

    parts.append(last)
    return parts


def apportion(total_units: int, weights: Sequence[int]) -> List[int]:
    """
    Split ``total_units`` in proportion to ``weights``.

    Largest-remainder method: every part gets the floor of its exact
    share, then the leftover units go one each to the parts with the
    largest fractional remainder. Ties go to the later position, so
    0.05 split seven ways is 0, 0, 1, 1, 1, 1, 1 cents.

    The parts always sum to ``total_units`` and each part is within one
    unit of its exact share.

    Args:
        total_units: Non-negative integer total
        weights: Non-negative integer weights, at least one positive

    Returns:
        List of integer parts in the order of ``weights``

    Raises:
        ValueError: If weights are empty or all zero
    """
    if not weights:
        raise ValueError("At least one weight required")

    weight_sum = sum(weights)
    if weight_sum <= 0:
        raise ValueError("Weights must not all be zero")

    parts = []
    remainders = []
    for index, weight in enumerate(weights):
        share, remainder = divmod(total_units * weight, weight_sum)
        parts.append(share)
        remainders.append((remainder, index))

    leftover = total_units - sum(parts)
    # Largest remainder first, later index first on ties
    for _, index in sorted(remainders, reverse=True)[:leftover]:
        parts[index] += 1

    return parts
