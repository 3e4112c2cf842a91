import pytest
from rest_framework.test import APIClient
from apps.groups.models import Group, GroupMembership, Member


@pytest.fixture
def api_client():
    """Return an API client."""
    return APIClient()


@pytest.fixture
def alice(db):
    """Create and return a member."""
    return Member.objects.create(name='Alice', email='alice@example.com')


@pytest.fixture
def bob(db):
    """Create and return a member."""
    return Member.objects.create(name='Bob', email='bob@example.com')


@pytest.fixture
def carol(db):
    """Create and return a member."""
    return Member.objects.create(name='Carol', email='carol@example.com')


@pytest.fixture
def outsider(db):
    """Create and return a member not in any group."""
    return Member.objects.create(name='Olivia Outsider', email='olivia@example.com')


@pytest.fixture
def group(db):
    """Create and return an empty group."""
    return Group.objects.create(
        name='Weekend Trip',
        description='Cabin weekend in the mountains',
    )


@pytest.fixture
def group_with_members(group, alice, bob, carol):
    """Group with Alice, Bob and Carol, joined in that order."""
    for member in (alice, bob, carol):
        GroupMembership.objects.create(group=group, member=member)
    return group
