"""
Balance aggregation service.

Folds a group's expense history into a signed net balance per member:
the payer is credited the full amount, every split participant is
debited their share. Balances are always computed on read, never
stored.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from .exceptions import ExpenseValidationError
from .expense_management import fetch_group_expenses_with_splits, fetch_group_members
from .money import from_minor_units, to_minor_units
from .split_calculation import EqualSplit, Participant, SplitRow, calculate_split

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerShare:
    user_id: Any
    amount: Decimal


@dataclass(frozen=True)
class LedgerEntry:
    """An expense as the aggregator sees it."""

    amount: Decimal
    paid_by: Any
    splits: Sequence[Any] = ()


@dataclass
class GroupBalances:
    total_amount: Decimal = Decimal('0.00')
    expense_count: int = 0
    balances: Dict[str, Decimal] = field(default_factory=dict)

    def as_dict(self):
        return {
            'totalAmount': str(self.total_amount),
            'expenseCount': self.expense_count,
            'balances': {k: str(v) for k, v in self.balances.items()},
        }


@dataclass(frozen=True)
class Settlement:
    from_member: str
    to_member: str
    amount: Decimal

    def as_dict(self):
        return {'from': self.from_member, 'to': self.to_member, 'amount': str(self.amount)}


@dataclass
class MemberSummary:
    member_id: str
    name: str = ''
    email: str = ''
    paid_total: Decimal = Decimal('0.00')
    owed_total: Decimal = Decimal('0.00')
    net: Decimal = Decimal('0.00')
    is_member: bool = True

    def as_dict(self):
        return {
            'memberId': self.member_id,
            'name': self.name,
            'email': self.email,
            'paidTotal': str(self.paid_total),
            'owedTotal': str(self.owed_total),
            'net': str(self.net),
            'isMember': self.is_member,
        }


def _entry_from_expense(expense) -> LedgerEntry:
    return LedgerEntry(
        amount=expense.amount,
        paid_by=expense.paid_by_id,
        splits=tuple(LedgerShare(user_id=s.member_id, amount=s.amount) for s in expense.splits.all()),
    )


def aggregate_balances(entries: Iterable[LedgerEntry]) -> GroupBalances:
    """
    Fold expenses into per-member net balances.

    Positive means the member is owed money, negative means they owe.
    Only members that appear in an expense get an entry; the balances
    of a consistent ledger sum to zero.

    Args:
        entries: LedgerEntry items (or anything with amount, paid_by
            and splits of user_id/amount)

    Returns:
        GroupBalances with totals in two-place Decimals
    """
    totals: Dict[str, int] = OrderedDict()
    total_units = 0
    count = 0

    for entry in entries:
        units = to_minor_units(entry.amount)
        payer = str(entry.paid_by)
        totals[payer] = totals.get(payer, 0) + units
        for share in entry.splits:
            key = str(share.user_id)
            totals[key] = totals.get(key, 0) - to_minor_units(share.amount)
        total_units += units
        count += 1

    return GroupBalances(
        total_amount=from_minor_units(total_units),
        expense_count=count,
        balances={k: from_minor_units(v) for k, v in totals.items()},
    )


def compute_group_balances(*, group_id: UUID) -> GroupBalances:
    """
    Net balance per member for a group.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    expenses = fetch_group_expenses_with_splits(group_id)
    result = aggregate_balances(_entry_from_expense(e) for e in expenses)
    logger.debug(
        "Computed balances for group %s over %d expenses", group_id, result.expense_count
    )
    return result


def get_member_summaries(*, group_id: UUID) -> List[MemberSummary]:
    """
    Paid, owed and net totals per member.

    Every current member appears (zeros if untouched), in join order,
    followed by former members that still show up in the ledger.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    members = fetch_group_members(group_id)
    expenses = fetch_group_expenses_with_splits(group_id)

    paid: Dict[str, int] = {}
    owed: Dict[str, int] = {}
    people: Dict[str, Any] = OrderedDict((str(m.id), m) for m in members)
    former: Dict[str, Any] = OrderedDict()

    for expense in expenses:
        payer = str(expense.paid_by_id)
        paid[payer] = paid.get(payer, 0) + to_minor_units(expense.amount)
        if payer not in people:
            former.setdefault(payer, expense.paid_by)
        for split in expense.splits.all():
            key = str(split.member_id)
            owed[key] = owed.get(key, 0) + to_minor_units(split.amount)
            if key not in people:
                former.setdefault(key, split.member)

    summaries = []
    for key, member in list(people.items()) + list(former.items()):
        p, o = paid.get(key, 0), owed.get(key, 0)
        summaries.append(MemberSummary(
            member_id=key,
            name=member.name,
            email=member.email,
            paid_total=from_minor_units(p),
            owed_total=from_minor_units(o),
            net=from_minor_units(p - o),
            is_member=key in people,
        ))
    return summaries


def suggest_settlements(balances: Dict[Any, Decimal]) -> List[Settlement]:
    """
    Transfers that bring every balance to zero.

    Greedy: the largest debtor pays the largest creditor as much as
    possible, repeated until nothing is left. Ties are ordered by
    member id so the result is deterministic.
    """
    units = {str(k): to_minor_units(v) for k, v in balances.items()}
    creditors = {k: v for k, v in units.items() if v > 0}
    debtors = {k: -v for k, v in units.items() if v < 0}

    settlements = []
    while creditors and debtors:
        creditor = min(creditors, key=lambda k: (-creditors[k], k))
        debtor = min(debtors, key=lambda k: (-debtors[k], k))
        transfer = min(creditors[creditor], debtors[debtor])

        settlements.append(Settlement(
            from_member=debtor,
            to_member=creditor,
            amount=from_minor_units(transfer),
        ))

        creditors[creditor] -= transfer
        debtors[debtor] -= transfer
        if not creditors[creditor]:
            del creditors[creditor]
        if not debtors[debtor]:
            del debtors[debtor]

    return settlements


def calculate_equal_split_for_group(
    *,
    group_id: UUID,
    amount,
    participant_ids: Optional[Iterable[UUID]] = None
) -> List[SplitRow]:
    """
    Equal split of ``amount`` among a group's members.

    Args:
        group_id: Group whose members take part
        amount: Amount to split
        participant_ids: Subset of members (defaults to everyone)

    Raises:
        GroupNotFoundError: If group doesn't exist
        ExpenseValidationError: Group has no members, or a participant
            is not a member
    """
    members = fetch_group_members(group_id)

    if participant_ids:
        by_id = {str(m.id): m for m in members}
        ids = [str(i) for i in participant_ids]
        outsiders = [i for i in ids if i not in by_id]
        if outsiders:
            raise ExpenseValidationError(
                f"Participants are not members of this group: {', '.join(outsiders)}",
                field='participants',
                value=outsiders,
            )
        participants = tuple(Participant(id=by_id[i].id, name=by_id[i].name) for i in ids)
    else:
        participants = tuple(Participant(id=m.id, name=m.name) for m in members)

    return calculate_split(amount=amount, split=EqualSplit(participants=participants))


def get_group_expense_stats(*, group_id: UUID) -> dict:
    """
    Headline numbers for a group.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    members = fetch_group_members(group_id)
    result = compute_group_balances(group_id=group_id)

    if result.expense_count:
        average_units = to_minor_units(result.total_amount) // result.expense_count
    else:
        average_units = 0

    return {
        'totalAmount': str(result.total_amount),
        'expenseCount': result.expense_count,
        'averageAmount': str(from_minor_units(average_units)),
        'memberCount': len(members),
        'balances': {k: str(v) for k, v in result.balances.items()},
    }
