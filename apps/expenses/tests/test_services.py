"""
Service layer unit tests for expenses app.

Tests cover:
- Expense creation with each split type
- Atomic persistence of expense and split rows
- Partial updates that recompute splits
- Queries by group, member, text and date
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from django.utils import timezone

from apps.expenses.models import Expense, ExpenseSplit
from apps.expenses.services import (
    create_expense,
    delete_expense,
    fetch_group_members,
    get_expense_by_id,
    list_expenses_by_date_range,
    list_group_expenses,
    list_member_expenses,
    search_expenses,
    update_expense,
)
from apps.expenses.services.exceptions import (
    DuplicateParticipantError,
    ExpenseNotFoundError,
    ExpenseValidationError,
    InvalidSplitTypeError,
    ReconciliationError,
)
from apps.groups.services.exceptions import GroupNotFoundError, MemberNotFoundError


def split_amounts(expense):
    return [(s.member_id, s.amount) for s in expense.splits.order_by('position')]


# =============================================================================
# Create Expense
# =============================================================================

@pytest.mark.django_db
class TestCreateExpense:
    """Tests for create_expense()."""

    def test_equal_split_defaults_to_whole_group(self, group, alice, bob, carol):
        expense = create_expense(
            title='Groceries',
            amount=Decimal('100.00'),
            paid_by_id=alice.id,
            group_id=group.id,
            split_type='equal',
        )

        assert expense.amount == Decimal('100.00')
        assert expense.split_type == 'equal'
        assert split_amounts(expense) == [
            (alice.id, Decimal('33.33')),
            (bob.id, Decimal('33.33')),
            (carol.id, Decimal('33.34')),
        ]

    def test_equal_split_subset(self, group, alice, bob):
        expense = create_expense(
            title='Coffee',
            amount='7.00',
            paid_by_id=alice.id,
            group_id=group.id,
            split_type='equal',
            participants=[str(bob.id)],
        )

        assert split_amounts(expense) == [(bob.id, Decimal('7.00'))]

    def test_exact_split(self, group, alice, bob):
        expense = create_expense(
            title='Tickets',
            amount='75.00',
            paid_by_id=bob.id,
            group_id=group.id,
            split_type='exact',
            shares=[
                {'userId': str(alice.id), 'amount': '50.00'},
                {'userId': str(bob.id), 'amount': '25.00'},
            ],
        )

        assert split_amounts(expense) == [
            (alice.id, Decimal('50.00')),
            (bob.id, Decimal('25.00')),
        ]

    def test_percentage_split(self, group, alice, bob):
        expense = create_expense(
            title='Utilities',
            amount='50.00',
            paid_by_id=alice.id,
            group_id=group.id,
            split_type='percentage',
            shares=[
                {'userId': str(alice.id), 'percentage': 60},
                {'userId': str(bob.id), 'percentage': 40},
            ],
        )

        rows = list(expense.splits.order_by('position'))
        assert [r.amount for r in rows] == [Decimal('30.00'), Decimal('20.00')]
        assert [r.percentage for r in rows] == [Decimal('60.00'), Decimal('40.00')]

    def test_reconciliation_failure_writes_nothing(self, group, alice, bob):
        with pytest.raises(ReconciliationError):
            create_expense(
                title='Broken',
                amount='100.00',
                paid_by_id=alice.id,
                group_id=group.id,
                split_type='exact',
                shares=[
                    {'userId': str(alice.id), 'amount': '40.00'},
                    {'userId': str(bob.id), 'amount': '40.00'},
                ],
            )

        assert not Expense.objects.exists()
        assert not ExpenseSplit.objects.exists()

    def test_split_write_failure_rolls_back_expense(self, group, alice):
        with patch(
            'apps.expenses.services.expense_management.ExpenseSplit.objects.bulk_create',
            side_effect=RuntimeError('disk full'),
        ):
            with pytest.raises(RuntimeError):
                create_expense(
                    title='Doomed',
                    amount='10.00',
                    paid_by_id=alice.id,
                    group_id=group.id,
                    split_type='equal',
                )

        assert not Expense.objects.exists()

    def test_payer_not_participant_allowed(self, group, alice, bob, carol):
        expense = create_expense(
            title='Gift',
            amount='20.00',
            paid_by_id=alice.id,
            group_id=group.id,
            split_type='equal',
            participants=[str(bob.id), str(carol.id)],
        )

        assert alice.id not in [m for m, _ in split_amounts(expense)]

    def test_payer_outside_group(self, group, outsider):
        with pytest.raises(ExpenseValidationError) as exc_info:
            create_expense(
                title='Sneaky',
                amount='10.00',
                paid_by_id=outsider.id,
                group_id=group.id,
                split_type='equal',
            )

        assert exc_info.value.field == 'paidBy'

    def test_participant_outside_group(self, group, alice, outsider):
        with pytest.raises(ExpenseValidationError) as exc_info:
            create_expense(
                title='Sneaky',
                amount='10.00',
                paid_by_id=alice.id,
                group_id=group.id,
                split_type='equal',
                participants=[str(alice.id), str(outsider.id)],
            )

        assert str(outsider.id) in exc_info.value.value

    def test_duplicate_participant(self, group, alice, bob):
        with pytest.raises(DuplicateParticipantError):
            create_expense(
                title='Twice',
                amount='10.00',
                paid_by_id=alice.id,
                group_id=group.id,
                split_type='equal',
                participants=[str(bob.id), str(bob.id)],
            )

    def test_unknown_group(self, alice):
        with pytest.raises(GroupNotFoundError):
            create_expense(
                title='Lost', amount='10.00', paid_by_id=alice.id,
                group_id=uuid4(), split_type='equal',
            )

    def test_unknown_payer(self, group):
        with pytest.raises(MemberNotFoundError):
            create_expense(
                title='Ghost', amount='10.00', paid_by_id=uuid4(),
                group_id=group.id, split_type='equal',
            )

    def test_unknown_split_type(self, group, alice):
        with pytest.raises(InvalidSplitTypeError):
            create_expense(
                title='Odd', amount='10.00', paid_by_id=alice.id,
                group_id=group.id, split_type='shares',
            )

    @pytest.mark.parametrize('title', ['', '   ', 't' * 201])
    def test_invalid_title(self, group, alice, title):
        with pytest.raises(ExpenseValidationError) as exc_info:
            create_expense(
                title=title, amount='10.00', paid_by_id=alice.id,
                group_id=group.id, split_type='equal',
            )

        assert exc_info.value.field == 'title'

    def test_description_too_long(self, group, alice):
        with pytest.raises(ExpenseValidationError) as exc_info:
            create_expense(
                title='Long', amount='10.00', paid_by_id=alice.id,
                group_id=group.id, split_type='equal', description='d' * 1001,
            )

        assert exc_info.value.field == 'description'

    @pytest.mark.parametrize('delta', [timedelta(days=1), timedelta(days=-400)])
    def test_date_out_of_range(self, group, alice, delta):
        with pytest.raises(ExpenseValidationError) as exc_info:
            create_expense(
                title='When', amount='10.00', paid_by_id=alice.id,
                group_id=group.id, split_type='equal',
                date=timezone.now() + delta,
            )

        assert exc_info.value.field == 'date'

    def test_float_amount_is_exact(self, group, alice):
        expense = create_expense(
            title='Float', amount=0.1, paid_by_id=alice.id,
            group_id=group.id, split_type='equal', participants=[str(alice.id)],
        )

        assert expense.amount == Decimal('0.10')


# =============================================================================
# Read Operations
# =============================================================================

@pytest.mark.django_db
class TestExpenseQueries:

    @pytest.fixture
    def expenses(self, group, alice, bob, carol):
        now = timezone.now()
        first = create_expense(
            title='Hotel', amount='300.00', paid_by_id=alice.id,
            group_id=group.id, split_type='equal', date=now - timedelta(days=10),
            description='Two nights downtown',
        )
        second = create_expense(
            title='Museum', amount='45.00', paid_by_id=bob.id,
            group_id=group.id, split_type='equal', date=now - timedelta(days=2),
            participants=[str(alice.id), str(bob.id)],
        )
        return first, second

    def test_get_expense_by_id(self, expenses):
        expense = get_expense_by_id(expense_id=expenses[0].id)

        assert expense.title == 'Hotel'
        assert expense.splits.count() == 3

    def test_get_expense_not_found(self, db):
        with pytest.raises(ExpenseNotFoundError):
            get_expense_by_id(expense_id=uuid4())

    def test_list_group_expenses_newest_first(self, group, expenses):
        assert [e.title for e in list_group_expenses(group_id=group.id)] == ['Museum', 'Hotel']

    def test_list_member_expenses(self, carol, bob, expenses):
        assert [e.title for e in list_member_expenses(member_id=carol.id)] == ['Hotel']
        assert [e.title for e in list_member_expenses(member_id=bob.id)] == ['Museum', 'Hotel']

    def test_search_expenses(self, expenses):
        assert [e.title for e in search_expenses(query='downtown')] == ['Hotel']
        assert [e.title for e in search_expenses(query='museum')] == ['Museum']

    def test_search_blank(self, db):
        with pytest.raises(ExpenseValidationError):
            search_expenses(query=' ')

    def test_date_range(self, expenses):
        now = timezone.now()
        found = list_expenses_by_date_range(start_date=now - timedelta(days=5), end_date=now)

        assert [e.title for e in found] == ['Museum']

    def test_date_range_reversed(self, db):
        now = timezone.now()
        with pytest.raises(ExpenseValidationError):
            list_expenses_by_date_range(start_date=now, end_date=now - timedelta(days=1))

    def test_fetch_group_members_join_order(self, group, alice, bob, carol):
        assert fetch_group_members(group.id) == [alice, bob, carol]


# =============================================================================
# Update and Delete
# =============================================================================

@pytest.mark.django_db
class TestUpdateExpense:

    @pytest.fixture
    def expense(self, group, alice):
        return create_expense(
            title='Dinner', amount='90.00', paid_by_id=alice.id,
            group_id=group.id, split_type='equal',
        )

    def test_update_title_keeps_splits(self, expense):
        before = split_amounts(expense)

        updated = update_expense(expense_id=expense.id, title='Late dinner')

        assert updated.title == 'Late dinner'
        assert split_amounts(updated) == before

    def test_update_amount_recomputes_equal_split(self, expense):
        updated = update_expense(expense_id=expense.id, amount='100.00')

        assert updated.amount == Decimal('100.00')
        assert [a for _, a in split_amounts(updated)] == [
            Decimal('33.33'), Decimal('33.33'), Decimal('33.34')
        ]

    def test_switch_to_exact(self, expense, alice, bob):
        updated = update_expense(
            expense_id=expense.id,
            split_type='exact',
            shares=[
                {'userId': str(alice.id), 'amount': '80.00'},
                {'userId': str(bob.id), 'amount': '10.00'},
            ],
        )

        assert updated.split_type == 'exact'
        assert split_amounts(updated) == [
            (alice.id, Decimal('80.00')),
            (bob.id, Decimal('10.00')),
        ]

    def test_switch_to_exact_without_shares(self, expense):
        with pytest.raises(ExpenseValidationError):
            update_expense(expense_id=expense.id, split_type='exact')

    def test_amount_change_must_still_reconcile_exact(self, group, alice, bob):
        expense = create_expense(
            title='Split bill', amount='30.00', paid_by_id=alice.id,
            group_id=group.id, split_type='exact',
            shares=[
                {'userId': str(alice.id), 'amount': '10.00'},
                {'userId': str(bob.id), 'amount': '20.00'},
            ],
        )

        with pytest.raises(ReconciliationError):
            update_expense(expense_id=expense.id, amount='40.00')

        expense.refresh_from_db()
        assert expense.amount == Decimal('30.00')

    def test_update_payer_outside_group(self, expense, outsider):
        with pytest.raises(ExpenseValidationError):
            update_expense(expense_id=expense.id, paid_by_id=outsider.id)

    def test_update_not_found(self, db):
        with pytest.raises(ExpenseNotFoundError):
            update_expense(expense_id=uuid4(), title='x')

    def test_delete_cascades_splits(self, expense):
        delete_expense(expense_id=expense.id)

        assert not Expense.objects.filter(id=expense.id).exists()
        assert not ExpenseSplit.objects.filter(expense_id=expense.id).exists()

    def test_delete_not_found(self, db):
        with pytest.raises(ExpenseNotFoundError):
            delete_expense(expense_id=uuid4())
