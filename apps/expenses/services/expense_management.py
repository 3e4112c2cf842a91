"""
Expense management service.

Creates, reads, updates and deletes expenses. Every write stores the
expense together with its split rows in one transaction.
"""

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Iterable, List, Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Prefetch, Q, QuerySet
from django.utils import timezone

from apps.expenses.models import Expense, ExpenseSplit
from apps.groups.models import Group, GroupMembership, Member
from apps.groups.services.exceptions import GroupNotFoundError, MemberNotFoundError

from .exceptions import ExpenseNotFoundError, ExpenseValidationError
from .split_calculation import (
    ExactShare,
    ExactSplit,
    EqualSplit,
    Participant,
    PercentageShare,
    PercentageSplit,
    SplitRow,
    SplitType,
    build_split,
    calculate_split,
    parse_split_type,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
MAX_EXPENSE_AGE = timedelta(days=365)

_UNSET = object()


# ==========================================
# Persistence
# ==========================================

def _get_group(group_id: UUID) -> Group:
    try:
        return Group.objects.get(id=group_id)
    except (Group.DoesNotExist, DjangoValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


def fetch_group_members(group_id: UUID) -> List[Member]:
    """
    Current members of a group, in join order.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = _get_group(group_id)
    memberships = (
        GroupMembership.objects
        .filter(group=group)
        .select_related('member')
        .order_by('joined_at', 'id')
    )
    return [m.member for m in memberships]


def fetch_group_expenses_with_splits(group_id: UUID) -> QuerySet[Expense]:
    """
    All expenses of a group with their split rows prefetched.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = _get_group(group_id)
    return (
        Expense.objects
        .filter(group=group)
        .select_related('paid_by')
        .prefetch_related(
            Prefetch('splits', queryset=ExpenseSplit.objects.select_related('member'))
        )
        .order_by('date', 'created_at')
    )


@transaction.atomic
def persist_expense_and_splits(expense: Expense, rows: Iterable[SplitRow]) -> Expense:
    """
    Save an expense and replace its split rows atomically.

    If any row fails to save, the expense write is rolled back too.
    """
    expense.save()
    ExpenseSplit.objects.filter(expense=expense).delete()
    ExpenseSplit.objects.bulk_create([
        ExpenseSplit(
            expense=expense,
            member_id=row.user_id,
            amount=row.amount,
            percentage=row.percentage,
            position=position,
        )
        for position, row in enumerate(rows)
    ])
    return expense


# ==========================================
# Validation
# ==========================================

def _validate_title(title: str) -> str:
    if title is None or not str(title).strip():
        raise ExpenseValidationError("Title is required", field='title', value=title)
    title = str(title).strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ExpenseValidationError(
            f"Title must be between 1 and {MAX_TITLE_LENGTH} characters",
            field='title',
            value=title,
        )
    return title


def _validate_description(description: str) -> str:
    description = (description or '').strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ExpenseValidationError(
            f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters",
            field='description',
            value=description,
        )
    return description


def _validate_date(date: Optional[datetime]) -> datetime:
    now = timezone.now()
    if date is None:
        return now
    if not isinstance(date, datetime):
        # Plain dates are taken as midnight UTC
        date = datetime(date.year, date.month, date.day)
    if timezone.is_naive(date):
        date = timezone.make_aware(date, dt_timezone.utc)

    if date > now:
        raise ExpenseValidationError(
            "Date cannot be in the future", field='date', value=date.isoformat()
        )
    if date < now - MAX_EXPENSE_AGE:
        raise ExpenseValidationError(
            "Date cannot be more than 1 year in the past",
            field='date',
            value=date.isoformat(),
        )
    return date


def _get_member(member_id: UUID) -> Member:
    try:
        return Member.objects.get(id=member_id)
    except (Member.DoesNotExist, DjangoValidationError, ValueError):
        raise MemberNotFoundError(f"Member with ID {member_id} not found")


def _resolve_participants(split, members: List[Member]):
    """
    Check every participant belongs to the group and attach names.

    An equal split with no participants means the whole group.
    """
    by_id = {str(m.id): m for m in members}

    if isinstance(split, EqualSplit):
        if not split.participants:
            return EqualSplit(participants=tuple(
                Participant(id=m.id, name=m.name) for m in members
            ))
        ids = [p.id for p in split.participants]
    else:
        ids = [s.user_id for s in split.shares]

    outsiders = [str(i) for i in ids if str(i) not in by_id]
    if outsiders:
        raise ExpenseValidationError(
            f"Participants are not members of this group: {', '.join(outsiders)}",
            field='splits',
            value=outsiders,
        )

    if isinstance(split, EqualSplit):
        return EqualSplit(participants=tuple(
            Participant(id=by_id[str(p.id)].id, name=by_id[str(p.id)].name)
            for p in split.participants
        ))
    if isinstance(split, ExactSplit):
        return ExactSplit(shares=tuple(
            ExactShare(user_id=by_id[str(s.user_id)].id, amount=s.amount,
                       name=by_id[str(s.user_id)].name)
            for s in split.shares
        ))
    return PercentageSplit(shares=tuple(
        PercentageShare(user_id=by_id[str(s.user_id)].id, percentage=s.percentage,
                        name=by_id[str(s.user_id)].name)
        for s in split.shares
    ))


def _check_payer_in_group(payer: Member, members: List[Member]) -> None:
    if str(payer.id) not in {str(m.id) for m in members}:
        raise ExpenseValidationError(
            "Payer must be a member of the group",
            field='paidBy',
            value=str(payer.id),
        )


# ==========================================
# Operations
# ==========================================

def create_expense(
    *,
    title: str,
    amount,
    paid_by_id: UUID,
    group_id: UUID,
    split_type,
    date: Optional[datetime] = None,
    description: str = '',
    participants: Optional[Iterable] = None,
    shares: Optional[Iterable] = None
) -> Expense:
    """
    Record an expense and its split rows.

    Args:
        title: Short description (1-200 characters)
        amount: Positive amount with at most 2 decimals
        paid_by_id: Member who paid; must belong to the group
        group_id: Group the expense belongs to
        split_type: 'equal', 'exact' or 'percentage'
        date: When the expense happened (defaults to now)
        description: Optional longer description
        participants: Member ids for an equal split (defaults to all members)
        shares: ``{userId, amount}`` or ``{userId, percentage}`` items

    Returns:
        Created Expense with splits saved

    Raises:
        GroupNotFoundError: If group doesn't exist
        MemberNotFoundError: If the payer doesn't exist
        ExpenseValidationError: Invalid input, payer or participants
            outside the group
        ReconciliationError: Exact amounts or percentages don't add up
    """
    title = _validate_title(title)
    description = _validate_description(description)
    date = _validate_date(date)
    split_type = parse_split_type(split_type)

    group = _get_group(group_id)
    payer = _get_member(paid_by_id)
    members = fetch_group_members(group.id)
    _check_payer_in_group(payer, members)

    split = build_split(split_type, participants=participants, shares=shares)
    split = _resolve_participants(split, members)
    rows = calculate_split(amount=amount, split=split)

    expense = Expense(
        title=title,
        description=description,
        amount=sum((row.amount for row in rows)),
        paid_by=payer,
        group=group,
        split_type=split_type.value,
        date=date,
    )
    persist_expense_and_splits(expense, rows)

    logger.info(
        "Created expense %s in group %s: %s split %s ways",
        expense.id, group.id, expense.amount, len(rows),
    )
    return expense


def get_expense_by_id(*, expense_id: UUID) -> Expense:
    """
    Get an expense with payer, group and splits loaded.

    Raises:
        ExpenseNotFoundError: If expense doesn't exist
    """
    try:
        return (
            Expense.objects
            .select_related('paid_by', 'group')
            .prefetch_related(
                Prefetch('splits', queryset=ExpenseSplit.objects.select_related('member'))
            )
            .get(id=expense_id)
        )
    except (Expense.DoesNotExist, DjangoValidationError, ValueError):
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")


def _expense_queryset() -> QuerySet[Expense]:
    return (
        Expense.objects
        .select_related('paid_by', 'group')
        .prefetch_related(
            Prefetch('splits', queryset=ExpenseSplit.objects.select_related('member'))
        )
        .order_by('-date', '-created_at')
    )


def list_expenses() -> QuerySet[Expense]:
    return _expense_queryset()


def list_group_expenses(*, group_id: UUID) -> QuerySet[Expense]:
    """
    Expenses of a group, newest first.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    group = _get_group(group_id)
    return _expense_queryset().filter(group=group)


def list_member_expenses(*, member_id: UUID) -> QuerySet[Expense]:
    """
    Expenses a member paid for or shares in, newest first.

    Raises:
        MemberNotFoundError: If member doesn't exist
    """
    member = _get_member(member_id)
    return (
        _expense_queryset()
        .filter(Q(paid_by=member) | Q(splits__member=member))
        .distinct()
    )


def search_expenses(*, query: str, group_id: Optional[UUID] = None) -> QuerySet[Expense]:
    """
    Case-insensitive search over title and description.

    Raises:
        ExpenseValidationError: If the query is blank
        GroupNotFoundError: If group_id is given and doesn't exist
    """
    if not query or not query.strip():
        raise ExpenseValidationError("Search query is required", field='search', value=query)

    query = query.strip()
    queryset = _expense_queryset().filter(
        Q(title__icontains=query) | Q(description__icontains=query)
    )
    if group_id is not None:
        queryset = queryset.filter(group=_get_group(group_id))
    return queryset


def list_expenses_by_date_range(
    *,
    start_date: datetime,
    end_date: datetime,
    group_id: Optional[UUID] = None
) -> QuerySet[Expense]:
    """
    Expenses dated within ``[start_date, end_date]``.

    Raises:
        ExpenseValidationError: If start_date is after end_date
    """
    if start_date > end_date:
        raise ExpenseValidationError(
            "Start date must be before end date",
            field='start_date',
            value=str(start_date),
        )

    queryset = _expense_queryset().filter(date__gte=start_date, date__lte=end_date)
    if group_id is not None:
        queryset = queryset.filter(group=_get_group(group_id))
    return queryset


def _stored_split(expense: Expense, split_type: SplitType):
    """Rebuild a split input from the rows already stored for an expense."""
    splits = list(expense.splits.all())
    if split_type is SplitType.EQUAL:
        return EqualSplit(participants=tuple(
            Participant(id=s.member_id) for s in splits
        ))
    if split_type is SplitType.EXACT:
        return ExactSplit(shares=tuple(
            ExactShare(user_id=s.member_id, amount=s.amount) for s in splits
        ))
    return PercentageSplit(shares=tuple(
        PercentageShare(user_id=s.member_id, percentage=s.percentage) for s in splits
    ))


@transaction.atomic
def update_expense(
    *,
    expense_id: UUID,
    title=_UNSET,
    amount=_UNSET,
    paid_by_id=_UNSET,
    split_type=_UNSET,
    date=_UNSET,
    description=_UNSET,
    participants=_UNSET,
    shares=_UNSET
) -> Expense:
    """
    Partially update an expense.

    Split rows are recomputed when the amount, split type, participants
    or shares change. Inputs not supplied are taken from the stored
    rows; stored exact amounts must still add up to a new amount.

    Raises:
        ExpenseNotFoundError: If expense doesn't exist
        MemberNotFoundError: If a new payer doesn't exist
        ExpenseValidationError: Invalid input
        ReconciliationError: Splits don't add up
    """
    try:
        expense = (
            Expense.objects
            .select_for_update()
            .select_related('group', 'paid_by')
            .get(id=expense_id)
        )
    except (Expense.DoesNotExist, DjangoValidationError, ValueError):
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")

    members = fetch_group_members(expense.group_id)

    if title is not _UNSET:
        expense.title = _validate_title(title)
    if description is not _UNSET:
        expense.description = _validate_description(description)
    if date is not _UNSET:
        expense.date = _validate_date(date)
    if paid_by_id is not _UNSET:
        payer = _get_member(paid_by_id)
        _check_payer_in_group(payer, members)
        expense.paid_by = payer

    resplit = any(v is not _UNSET for v in (amount, split_type, participants, shares))
    if not resplit:
        expense.save()
        logger.info("Updated expense %s", expense.id)
        return expense

    new_type = parse_split_type(expense.split_type if split_type is _UNSET else split_type)
    new_amount = expense.amount if amount is _UNSET else amount

    if participants is _UNSET and shares is _UNSET:
        if new_type.value == expense.split_type:
            split = _stored_split(expense, new_type)
        elif new_type is SplitType.EQUAL:
            split = EqualSplit(participants=tuple(
                Participant(id=s.member_id) for s in expense.splits.all()
            ))
        else:
            raise ExpenseValidationError(
                f"Splits are required when changing to {new_type.value} split type",
                field='splits',
                value=[],
            )
    else:
        split = build_split(
            new_type,
            participants=None if participants is _UNSET else participants,
            shares=None if shares is _UNSET else shares,
        )

    split = _resolve_participants(split, members)
    rows = calculate_split(amount=new_amount, split=split)

    expense.amount = sum((row.amount for row in rows))
    expense.split_type = new_type.value
    persist_expense_and_splits(expense, rows)

    logger.info("Updated expense %s and recomputed %d splits", expense.id, len(rows))
    return expense


@transaction.atomic
def delete_expense(*, expense_id: UUID) -> None:
    """
    Delete an expense. Split rows are removed by cascade.

    Raises:
        ExpenseNotFoundError: If expense doesn't exist
    """
    try:
        expense = Expense.objects.select_for_update().get(id=expense_id)
    except (Expense.DoesNotExist, DjangoValidationError, ValueError):
        raise ExpenseNotFoundError(f"Expense with ID {expense_id} not found")

    expense.delete()
    logger.info("Deleted expense %s", expense_id)
