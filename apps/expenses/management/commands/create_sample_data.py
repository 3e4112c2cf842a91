"""
Management command to create sample data for trying out the API.

Usage:
    python manage.py create_sample_data [--clear]

This creates:
- 10 members
- 4 groups (Weekend Trip, Office Lunch, House Sharing, Gym Membership)
- Expenses using every split type
"""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.expenses.models import Expense
from apps.expenses.services import create_expense
from apps.groups.models import Group, Member
from apps.groups.services import create_group, get_or_create_member


MEMBERS = [
    ('Rishab', 'rishab@example.com'),
    ('Sarah', 'sarah@example.com'),
    ('Alex', 'alex@example.com'),
    ('Emma', 'emma@example.com'),
    ('John', 'john@example.com'),
    ('Lisa', 'lisa@example.com'),
    ('Mike', 'mike@example.com'),
    ('Anna', 'anna@example.com'),
    ('David', 'david@example.com'),
    ('Sophie', 'sophie@example.com'),
]

GROUPS = [
    ('Weekend Trip', 'Friends going on a weekend getaway', ['Rishab', 'Sarah', 'Alex', 'Emma']),
    ('Office Lunch', 'Team lunch expenses', ['John', 'Lisa', 'Mike']),
    ('House Sharing', 'Shared household expenses', ['Anna', 'David', 'Sophie']),
    ('Gym Membership', 'Shared gym membership costs', ['Rishab', 'John', 'Anna']),
]


class Command(BaseCommand):
    help = 'Create sample members, groups and expenses'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        members = self.create_members()
        groups = self.create_groups(members)
        count = self.create_expenses(members, groups)

        self.stdout.write(self.style.SUCCESS(
            f'Created {len(members)} members, {len(groups)} groups and {count} expenses'
        ))

    def clear_data(self):
        """Clear all data from the database."""
        Expense.objects.all().delete()
        Group.objects.all().delete()
        Member.objects.all().delete()

    def create_members(self):
        members = {}
        for name, email in MEMBERS:
            member, _ = get_or_create_member(name=name, email=email)
            members[name] = member
        return members

    def create_groups(self, members):
        groups = {}
        for name, description, member_names in GROUPS:
            groups[name] = create_group(
                name=name,
                description=description,
                member_ids=[members[n].id for n in member_names],
            )
        return groups

    def create_expenses(self, members, groups):
        now = timezone.now()
        m = members

        expenses = [
            dict(
                title='Dinner at Restaurant', amount='1200.00', paid_by_id=m['Rishab'].id,
                group_id=groups['Weekend Trip'].id, split_type='equal',
                description='Group dinner at a nice restaurant',
                date=now - timedelta(days=3, hours=2),
            ),
            dict(
                title='Petrol for Road Trip', amount='800.00', paid_by_id=m['Sarah'].id,
                group_id=groups['Weekend Trip'].id, split_type='equal',
                description='Fuel for the weekend road trip',
                date=now - timedelta(days=3, hours=11),
            ),
            dict(
                title='Office Lunch', amount='450.00', paid_by_id=m['John'].id,
                group_id=groups['Office Lunch'].id, split_type='equal',
                description='Team lunch at office cafeteria',
                date=now - timedelta(days=2),
            ),
            dict(
                title='Grocery Shopping', amount='1200.00', paid_by_id=m['Anna'].id,
                group_id=groups['House Sharing'].id, split_type='percentage',
                description='Weekly grocery shopping for the house',
                date=now - timedelta(days=1),
                shares=[
                    {'userId': m['Anna'].id, 'percentage': '40'},
                    {'userId': m['David'].id, 'percentage': '30'},
                    {'userId': m['Sophie'].id, 'percentage': '30'},
                ],
            ),
            dict(
                title='Gym Membership', amount='150.00', paid_by_id=m['Rishab'].id,
                group_id=groups['Gym Membership'].id, split_type='exact',
                description='Monthly gym membership',
                date=now - timedelta(hours=5),
                shares=[
                    {'userId': m['Rishab'].id, 'amount': '50.00'},
                    {'userId': m['John'].id, 'amount': '60.00'},
                    {'userId': m['Anna'].id, 'amount': '40.00'},
                ],
            ),
        ]

        for data in expenses:
            create_expense(**data)
        return len(expenses)
