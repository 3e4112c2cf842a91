"""
Split calculation service.

Pure computation: turns an amount and a split strategy into per-member
rows whose amounts add up to the amount exactly. Nothing here touches
the database.

Example:
    Equal split among three members::

        rows = calculate_split(
            amount=Decimal('100.00'),
            split=EqualSplit(participants=(
                Participant(id=a.id), Participant(id=b.id), Participant(id=c.id),
            )),
        )
        # 33.33, 33.33, 33.34
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from .exceptions import (
    DuplicateParticipantError,
    ExpenseValidationError,
    InvalidSplitTypeError,
    ReconciliationError,
)
from .money import (
    FULL_PERCENTAGE_BP,
    MAX_EXPENSE_AMOUNT,
    RECONCILIATION_TOLERANCE,
    distribute,
    from_basis_points,
    from_minor_units,
    to_basis_points,
    to_minor_units,
)

logger = logging.getLogger(__name__)

MAX_EXPENSE_UNITS = to_minor_units(MAX_EXPENSE_AMOUNT)
TOLERANCE_UNITS = to_minor_units(RECONCILIATION_TOLERANCE)


class SplitType(str, Enum):
    EQUAL = 'equal'
    EXACT = 'exact'
    PERCENTAGE = 'percentage'


# ==========================================
# Split inputs
# ==========================================

@dataclass(frozen=True)
class Participant:
    id: Any
    name: str = ''


@dataclass(frozen=True)
class ExactShare:
    user_id: Any
    amount: Any
    name: str = ''


@dataclass(frozen=True)
class PercentageShare:
    user_id: Any
    percentage: Any
    name: str = ''


@dataclass(frozen=True)
class EqualSplit:
    participants: Tuple[Participant, ...]

    split_type = SplitType.EQUAL


@dataclass(frozen=True)
class ExactSplit:
    shares: Tuple[ExactShare, ...]

    split_type = SplitType.EXACT


@dataclass(frozen=True)
class PercentageSplit:
    shares: Tuple[PercentageShare, ...]

    split_type = SplitType.PERCENTAGE


Split = Union[EqualSplit, ExactSplit, PercentageSplit]


@dataclass(frozen=True)
class SplitRow:
    """One member's computed share of an expense."""

    user_id: Any
    amount: Decimal
    percentage: Decimal
    user_name: str = ''

    def as_dict(self):
        return {
            'userId': str(self.user_id),
            'userName': self.user_name,
            'amount': str(self.amount),
            'percentage': str(self.percentage),
        }


# ==========================================
# Validation helpers
# ==========================================

def _validate_amount(amount) -> int:
    units = to_minor_units(amount, 'amount')
    if units <= 0:
        raise ExpenseValidationError(
            "Amount must be greater than 0", field='amount', value=str(amount)
        )
    if units > MAX_EXPENSE_UNITS:
        raise ExpenseValidationError(
            f"Amount must not exceed {MAX_EXPENSE_AMOUNT}",
            field='amount',
            value=str(amount),
        )
    return units


def _check_ids(ids: Sequence[Any], field: str) -> None:
    if not ids:
        raise ExpenseValidationError(
            "At least one participant is required", field=field, value=[]
        )

    seen = set()
    for member_id in ids:
        key = str(member_id)
        if key in seen:
            raise DuplicateParticipantError(
                f"Participant {key} appears more than once",
                field=field,
                value=key,
            )
        seen.add(key)


# ==========================================
# Strategies
# ==========================================

def _split_equal(units: int, split: EqualSplit) -> List[SplitRow]:
    participants = split.participants
    _check_ids([p.id for p in participants], 'participants')

    weights = [1] * len(participants)
    amounts = distribute(units, weights)
    percentages = distribute(FULL_PERCENTAGE_BP, weights)

    return [
        SplitRow(
            user_id=p.id,
            amount=from_minor_units(cents),
            percentage=from_basis_points(bp),
            user_name=p.name,
        )
        for p, cents, bp in zip(participants, amounts, percentages)
    ]


def _absorb_difference(amounts: List[int], difference: int) -> None:
    # Last row that can take the difference without going negative
    for index in reversed(range(len(amounts))):
        if amounts[index] + difference >= 0:
            amounts[index] += difference
            return


def _split_exact(units: int, split: ExactSplit) -> List[SplitRow]:
    shares = split.shares
    _check_ids([s.user_id for s in shares], 'splits')

    amounts = []
    for share in shares:
        cents = to_minor_units(share.amount, 'splits')
        if cents < 0:
            raise ExpenseValidationError(
                "Split amounts must not be negative",
                field='splits',
                value=str(share.amount),
            )
        amounts.append(cents)

    total = sum(amounts)
    if abs(total - units) > TOLERANCE_UNITS:
        expected, actual = from_minor_units(units), from_minor_units(total)
        logger.warning("Exact split does not reconcile: %s != %s", actual, expected)
        raise ReconciliationError(
            f"Split amounts ({actual}) must equal expense amount ({expected})",
            expected=expected,
            actual=actual,
        )
    if total != units:
        _absorb_difference(amounts, units - total)

    percentages = distribute(FULL_PERCENTAGE_BP, amounts)

    return [
        SplitRow(
            user_id=share.user_id,
            amount=from_minor_units(cents),
            percentage=from_basis_points(bp),
            user_name=share.name,
        )
        for share, cents, bp in zip(shares, amounts, percentages)
    ]


def _split_percentage(units: int, split: PercentageSplit) -> List[SplitRow]:
    shares = split.shares
    _check_ids([s.user_id for s in shares], 'splits')

    bps = []
    for share in shares:
        bp = to_basis_points(share.percentage, 'splits')
        if bp < 0 or bp > FULL_PERCENTAGE_BP:
            raise ExpenseValidationError(
                "Percentages must be between 0 and 100",
                field='splits',
                value=str(share.percentage),
            )
        bps.append(bp)

    total_bp = sum(bps)
    # Within 0.01 of 100 is accepted
    if abs(total_bp - FULL_PERCENTAGE_BP) > 1:
        expected, actual = from_basis_points(FULL_PERCENTAGE_BP), from_basis_points(total_bp)
        logger.warning("Percentage split does not reconcile: %s != %s", actual, expected)
        raise ReconciliationError(
            f"Split percentages ({actual}) must add up to {expected}",
            expected=expected,
            actual=actual,
        )

    amounts = distribute(units, bps, FULL_PERCENTAGE_BP)

    return [
        SplitRow(
            user_id=share.user_id,
            amount=from_minor_units(cents),
            percentage=from_basis_points(bp),
            user_name=share.name,
        )
        for share, cents, bp in zip(shares, amounts, bps)
    ]


_STRATEGIES = {
    EqualSplit: _split_equal,
    ExactSplit: _split_exact,
    PercentageSplit: _split_percentage,
}


def calculate_split(*, amount, split: Split) -> List[SplitRow]:
    """
    Calculate per-member shares of an expense.

    Rows come back in participant input order. Amounts always sum to
    ``amount`` exactly; the last participant absorbs the rounding.

    Args:
        amount: Positive expense amount with at most 2 decimals
        split: One of EqualSplit, ExactSplit, PercentageSplit

    Returns:
        List of SplitRow

    Raises:
        ExpenseValidationError: Invalid amount, empty or bad participants
        DuplicateParticipantError: Same participant listed twice
        ReconciliationError: Exact amounts or percentages don't add up
        InvalidSplitTypeError: Unknown split variant
    """
    strategy = _STRATEGIES.get(type(split))
    if strategy is None:
        raise InvalidSplitTypeError(
            "Split type must be one of: equal, exact, percentage",
            field='splitType',
            value=type(split).__name__,
        )

    units = _validate_amount(amount)
    return strategy(units, split)


def parse_split_type(value) -> SplitType:
    """
    Resolve a split type name.

    Raises:
        InvalidSplitTypeError: If the name is not a known split type
    """
    if isinstance(value, SplitType):
        return value
    try:
        return SplitType(value)
    except ValueError:
        raise InvalidSplitTypeError(
            "Split type must be one of: equal, exact, percentage",
            field='splitType',
            value=value,
        )


def _share_field(share, *names):
    for name in names:
        if isinstance(share, dict):
            if name in share:
                return share[name]
        elif hasattr(share, name):
            return getattr(share, name)
    return None


def build_split(
    split_type,
    *,
    participants: Optional[Iterable[Any]] = None,
    shares: Optional[Iterable[Any]] = None
) -> Split:
    """
    Build a split variant from loose request data.

    ``participants`` is a list of member ids or Participant objects
    (equal splits). ``shares`` is a list of dicts with ``userId`` and
    ``amount`` or ``percentage`` (exact and percentage splits).

    Raises:
        InvalidSplitTypeError: Unknown split type
        ExpenseValidationError: Missing participants or shares
    """
    split_type = parse_split_type(split_type)

    if split_type is SplitType.EQUAL:
        if participants is None and shares is not None:
            participants = [_share_field(s, 'userId', 'user_id', 'id') for s in shares]
        items = []
        for p in participants or ():
            if isinstance(p, Participant):
                items.append(p)
            else:
                items.append(Participant(id=p))
        return EqualSplit(participants=tuple(items))

    if not shares:
        raise ExpenseValidationError(
            f"Splits are required for {split_type.value} split type",
            field='splits',
            value=[],
        )

    if split_type is SplitType.EXACT:
        return ExactSplit(shares=tuple(
            ExactShare(
                user_id=_share_field(s, 'userId', 'user_id'),
                amount=_share_field(s, 'amount'),
                name=_share_field(s, 'userName', 'name') or '',
            )
            for s in shares
        ))

    return PercentageSplit(shares=tuple(
        PercentageShare(
            user_id=_share_field(s, 'userId', 'user_id'),
            percentage=_share_field(s, 'percentage'),
            name=_share_field(s, 'userName', 'name') or '',
        )
        for s in shares
    ))
