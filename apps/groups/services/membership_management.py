"""
Membership management service.

Handles adding and removing group members.
"""

import logging
from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, IntegrityError
from django.db.models import QuerySet

from apps.groups.models import Group, GroupMembership

from .exceptions import (
    GroupNotFoundError,
    AlreadyMemberError,
    NotMemberError,
    InvalidGroupDataError,
)
from .member_management import get_member_by_id, get_or_create_member

logger = logging.getLogger(__name__)


def _lock_group(group_id: UUID) -> Group:
    try:
        return (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except (Group.DoesNotExist, DjangoValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


@transaction.atomic
def add_member(
    *,
    group_id: UUID,
    member_id: Optional[UUID] = None,
    name: Optional[str] = None,
    email: Optional[str] = None
) -> GroupMembership:
    """
    Add a member to a group.

    Either an existing ``member_id`` or a ``name``/``email`` pair must be
    given. An unknown email registers a new member first.

    Args:
        group_id: UUID of the group
        member_id: Existing member to add
        name: Name for a new member
        email: Email identifying the member

    Returns:
        Created GroupMembership instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        MemberNotFoundError: If member_id doesn't exist
        InvalidGroupDataError: If neither identification is given
        AlreadyMemberError: If the member is already in the group
    """
    group = _lock_group(group_id)

    if member_id is not None:
        member = get_member_by_id(member_id=member_id)
    elif email:
        member, _ = get_or_create_member(name=name or '', email=email)
    else:
        raise InvalidGroupDataError(
            "Either memberId or name and email are required",
            field='email',
            value=email,
        )

    if group.has_member(member.id):
        raise AlreadyMemberError(f"{member.name} is already a member of {group.name}")

    try:
        membership = GroupMembership.objects.create(member=member, group=group)
    except IntegrityError:
        raise AlreadyMemberError(f"{member.name} is already a member of {group.name}")

    logger.info("Added member %s to group %s", member.id, group.id)
    return membership


@transaction.atomic
def remove_member(*, group_id: UUID, member_id: UUID) -> None:
    """
    Remove a member from a group.

    Expenses the member paid or shared stay in the ledger.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If the member is not in the group
    """
    group = _lock_group(group_id)

    try:
        membership = GroupMembership.objects.get(group=group, member_id=member_id)
    except (GroupMembership.DoesNotExist, DjangoValidationError, ValueError):
        raise NotMemberError(f"Member {member_id} is not in group {group.name}")

    membership.delete()
    logger.info("Removed member %s from group %s", member_id, group.id)


def get_group_members(*, group_id: UUID) -> QuerySet[GroupMembership]:
    """
    Get all memberships of a group, oldest first.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        group = Group.objects.get(id=group_id)
    except (Group.DoesNotExist, DjangoValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    return (
        GroupMembership.objects
        .filter(group=group)
        .select_related('member')
        .order_by('joined_at', 'id')
    )
