import pytest
from rest_framework.test import APIClient
from apps.groups.models import Group, GroupMembership, Member


@pytest.fixture
def api_client():
    """Return an API client."""
    return APIClient()


@pytest.fixture
def alice(db):
    return Member.objects.create(name='Alice', email='alice@example.com')


@pytest.fixture
def bob(db):
    return Member.objects.create(name='Bob', email='bob@example.com')


@pytest.fixture
def carol(db):
    return Member.objects.create(name='Carol', email='carol@example.com')


@pytest.fixture
def outsider(db):
    """Member that belongs to no group."""
    return Member.objects.create(name='Olivia Outsider', email='olivia@example.com')


@pytest.fixture
def group(db, alice, bob, carol):
    """Group with Alice, Bob and Carol, joined in that order."""
    group = Group.objects.create(name='Flat 4B', description='Shared flat costs')
    for member in (alice, bob, carol):
        GroupMembership.objects.create(group=group, member=member)
    return group


@pytest.fixture
def empty_group(db):
    """Group without members."""
    return Group.objects.create(name='Empty')


@pytest.fixture
def expense_payload(group, alice):
    """Valid POST body for an equal split among the whole group."""
    return {
        'title': 'Groceries',
        'amount': '100.00',
        'paidBy': str(alice.id),
        'groupId': str(group.id),
        'splitType': 'equal',
    }
