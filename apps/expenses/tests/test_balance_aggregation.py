"""
Tests for balance aggregation.

The first classes exercise the pure fold; the rest go through the
database-backed service functions.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from apps.expenses.services import (
    LedgerEntry,
    LedgerShare,
    aggregate_balances,
    calculate_equal_split_for_group,
    compute_group_balances,
    create_expense,
    get_group_expense_stats,
    get_member_summaries,
    suggest_settlements,
)
from apps.expenses.services.exceptions import ExpenseValidationError
from apps.groups.models import GroupMembership
from apps.groups.services.exceptions import GroupNotFoundError


def entry(amount, paid_by, **shares):
    return LedgerEntry(
        amount=Decimal(amount),
        paid_by=paid_by,
        splits=tuple(LedgerShare(user_id=k, amount=Decimal(v)) for k, v in shares.items()),
    )


# =============================================================================
# Pure Aggregation
# =============================================================================

class TestAggregateBalances:

    def test_no_expenses(self):
        result = aggregate_balances([])

        assert result.as_dict() == {'totalAmount': '0.00', 'expenseCount': 0, 'balances': {}}

    def test_payer_credited_participants_debited(self):
        result = aggregate_balances([entry('90.00', 'a', a='30.00', b='30.00', c='30.00')])

        assert result.balances == {
            'a': Decimal('60.00'),
            'b': Decimal('-30.00'),
            'c': Decimal('-30.00'),
        }
        assert result.total_amount == Decimal('90.00')
        assert result.expense_count == 1

    def test_payer_sole_participant_nets_zero(self):
        result = aggregate_balances([entry('12.50', 'a', a='12.50')])

        assert result.balances == {'a': Decimal('0.00')}

    def test_payer_outside_split(self):
        result = aggregate_balances([entry('20.00', 'a', b='10.00', c='10.00')])

        assert result.balances['a'] == Decimal('20.00')
        assert sum(result.balances.values()) == Decimal('0.00')

    def test_balances_sum_to_zero(self):
        result = aggregate_balances([
            entry('90.00', 'a', a='30.00', b='30.00', c='30.00'),
            entry('100.00', 'b', a='33.33', b='33.33', c='33.34'),
            entry('0.05', 'c', a='0.01', b='0.02', c='0.02'),
        ])

        assert sum(result.balances.values()) == Decimal('0.00')
        assert result.total_amount == Decimal('190.05')


class TestSuggestSettlements:

    def test_nothing_to_settle(self):
        assert suggest_settlements({}) == []
        assert suggest_settlements({'a': Decimal('0.00')}) == []

    def test_settlements_clear_all_balances(self):
        balances = {
            'a': Decimal('26.67'),
            'b': Decimal('36.67'),
            'c': Decimal('-63.34'),
        }
        settlements = suggest_settlements(balances)

        remaining = dict(balances)
        for s in settlements:
            remaining[s.from_member] += s.amount
            remaining[s.to_member] -= s.amount
        assert all(v == 0 for v in remaining.values())
        assert settlements[0].to_member == 'b'

    def test_deterministic_on_ties(self):
        settlements = suggest_settlements({
            'b': Decimal('10.00'),
            'a': Decimal('10.00'),
            'z': Decimal('-10.00'),
            'y': Decimal('-10.00'),
        })

        assert [(s.from_member, s.to_member) for s in settlements] == [('y', 'a'), ('z', 'b')]


# =============================================================================
# Database-backed Aggregation
# =============================================================================

@pytest.mark.django_db
class TestComputeGroupBalances:

    def test_end_to_end_figures(self, group, alice, bob, carol):
        create_expense(
            title='Dinner', amount='90.00', paid_by_id=alice.id,
            group_id=group.id, split_type='equal',
        )
        create_expense(
            title='Fuel', amount='100.00', paid_by_id=bob.id,
            group_id=group.id, split_type='equal',
        )

        result = compute_group_balances(group_id=group.id)

        assert result.total_amount == Decimal('190.00')
        assert result.expense_count == 2
        assert result.balances == {
            str(alice.id): Decimal('26.67'),
            str(bob.id): Decimal('36.67'),
            str(carol.id): Decimal('-63.34'),
        }
        assert sum(result.balances.values()) == Decimal('0.00')

    def test_empty_group(self, group):
        result = compute_group_balances(group_id=group.id)

        assert result.as_dict() == {'totalAmount': '0.00', 'expenseCount': 0, 'balances': {}}

    def test_group_not_found(self, db):
        with pytest.raises(GroupNotFoundError):
            compute_group_balances(group_id=uuid4())

    def test_former_member_stays_in_ledger(self, group, alice, carol):
        create_expense(
            title='Rent', amount='30.00', paid_by_id=alice.id,
            group_id=group.id, split_type='equal',
        )
        GroupMembership.objects.filter(group=group, member=carol).delete()

        result = compute_group_balances(group_id=group.id)

        assert result.balances[str(carol.id)] == Decimal('-10.00')


@pytest.mark.django_db
class TestMemberSummaries:

    def test_members_seeded_at_zero(self, group, alice, bob, carol):
        summaries = get_member_summaries(group_id=group.id)

        assert [s.member_id for s in summaries] == [str(alice.id), str(bob.id), str(carol.id)]
        assert all(s.net == Decimal('0.00') for s in summaries)

    def test_paid_owed_net(self, group, alice, bob):
        create_expense(
            title='Pizza', amount='30.00', paid_by_id=alice.id,
            group_id=group.id, split_type='exact',
            shares=[{'userId': str(alice.id), 'amount': '10.00'},
                    {'userId': str(bob.id), 'amount': '20.00'}],
        )

        by_name = {s.name: s for s in get_member_summaries(group_id=group.id)}

        assert by_name['Alice'].paid_total == Decimal('30.00')
        assert by_name['Alice'].owed_total == Decimal('10.00')
        assert by_name['Alice'].net == Decimal('20.00')
        assert by_name['Bob'].net == Decimal('-20.00')
        assert by_name['Carol'].net == Decimal('0.00')

    def test_former_member_listed_last(self, group, alice, bob):
        create_expense(
            title='Taxi', amount='10.00', paid_by_id=bob.id,
            group_id=group.id, split_type='equal',
        )
        GroupMembership.objects.filter(group=group, member=bob).delete()

        summaries = get_member_summaries(group_id=group.id)

        assert summaries[-1].member_id == str(bob.id)
        assert summaries[-1].is_member is False


@pytest.mark.django_db
class TestEqualSplitForGroup:

    def test_all_members(self, group, alice, bob, carol):
        rows = calculate_equal_split_for_group(group_id=group.id, amount='100.00')

        assert [r.user_id for r in rows] == [alice.id, bob.id, carol.id]
        assert [r.amount for r in rows] == [Decimal('33.33'), Decimal('33.33'), Decimal('33.34')]
        assert rows[0].user_name == 'Alice'

    def test_subset(self, group, alice, carol):
        rows = calculate_equal_split_for_group(
            group_id=group.id, amount='10.00', participant_ids=[carol.id, alice.id]
        )

        assert [r.user_id for r in rows] == [carol.id, alice.id]

    def test_outsider_rejected(self, group, outsider):
        with pytest.raises(ExpenseValidationError):
            calculate_equal_split_for_group(
                group_id=group.id, amount='10.00', participant_ids=[outsider.id]
            )

    def test_group_not_found(self, db):
        with pytest.raises(GroupNotFoundError):
            calculate_equal_split_for_group(group_id=uuid4(), amount='10.00')

    def test_group_without_members(self, empty_group):
        with pytest.raises(ExpenseValidationError):
            calculate_equal_split_for_group(group_id=empty_group.id, amount='10.00')


@pytest.mark.django_db
class TestGroupExpenseStats:

    def test_stats(self, group, alice):
        create_expense(
            title='A', amount='10.00', paid_by_id=alice.id,
            group_id=group.id, split_type='equal',
        )
        create_expense(
            title='B', amount='5.01', paid_by_id=alice.id,
            group_id=group.id, split_type='equal',
        )

        stats = get_group_expense_stats(group_id=group.id)

        assert stats['totalAmount'] == '15.01'
        assert stats['expenseCount'] == 2
        assert stats['averageAmount'] == '7.50'
        assert stats['memberCount'] == 3

    def test_stats_empty(self, group):
        stats = get_group_expense_stats(group_id=group.id)

        assert stats['averageAmount'] == '0.00'
        assert stats['balances'] == {}
