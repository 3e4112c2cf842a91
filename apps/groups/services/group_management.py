"""
Group management service.

Handles group CRUD operations with proper transaction safety.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Prefetch, Q, QuerySet

from apps.groups.models import Group, GroupMembership, Member

from .exceptions import (
    GroupNotFoundError,
    MemberNotFoundError,
    InvalidGroupDataError,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


def _validate_name(name: str) -> str:
    if name is None or not name.strip():
        raise InvalidGroupDataError("Group name is required", field='name', value=name)
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidGroupDataError(
            f"Group name must be between 1 and {MAX_NAME_LENGTH} characters",
            field='name',
            value=name,
        )
    return name


def _validate_description(description: str) -> str:
    description = (description or '').strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidGroupDataError(
            f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters",
            field='description',
            value=description,
        )
    return description


def create_group(
    *,
    name: str,
    description: str = '',
    member_ids: Iterable[UUID] = ()
) -> Group:
    """
    Create a new group, optionally with an initial set of members.

    Group and memberships are created in one transaction.

    Args:
        name: Group name (1-100 characters)
        description: Optional group description
        member_ids: IDs of existing members to add

    Returns:
        Created Group instance

    Raises:
        InvalidGroupDataError: If name or description is invalid
        MemberNotFoundError: If any member ID doesn't exist
    """
    name = _validate_name(name)
    description = _validate_description(description)
    member_ids = list(dict.fromkeys(member_ids))

    with transaction.atomic():
        members = list(Member.objects.filter(id__in=member_ids))
        found = {str(m.id) for m in members}
        missing = [str(m) for m in member_ids if str(m) not in found]
        if missing:
            raise MemberNotFoundError(f"Members not found: {', '.join(missing)}")

        group = Group.objects.create(name=name, description=description)

        # Preserve the caller's ordering so joined_at follows it
        by_id = {str(m.id): m for m in members}
        for member_id in member_ids:
            GroupMembership.objects.create(group=group, member=by_id[str(member_id)])

    logger.info("Created group %s with %d members", group.id, len(member_ids))
    return group


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID with optimized queries.

    Args:
        group_id: UUID of the group

    Returns:
        Group instance

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .prefetch_related(
                Prefetch(
                    'memberships',
                    queryset=GroupMembership.objects.select_related('member')
                )
            )
            .get(id=group_id)
        )
    except (Group.DoesNotExist, DjangoValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


def list_groups(*, search: Optional[str] = None) -> QuerySet[Group]:
    """List groups newest first, optionally filtered by a search term."""
    if search:
        return search_groups(query=search)
    return Group.objects.prefetch_related('memberships').order_by('-created_at')


def search_groups(*, query: str) -> QuerySet[Group]:
    """
    Case-insensitive search over group name and description.

    Raises:
        InvalidGroupDataError: If the query is blank
    """
    if not query or not query.strip():
        raise InvalidGroupDataError("Search query is required", field='q', value=query)

    query = query.strip()
    return (
        Group.objects
        .filter(Q(name__icontains=query) | Q(description__icontains=query))
        .prefetch_related('memberships')
        .order_by('-created_at')
    )


@transaction.atomic
def update_group(
    *,
    group_id: UUID,
    name: Optional[str] = None,
    description: Optional[str] = None
) -> Group:
    """
    Update group details.

    Args:
        group_id: UUID of the group
        name: New name (optional)
        description: New description (optional)

    Returns:
        Updated Group instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        InvalidGroupDataError: If a new value is invalid
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except (Group.DoesNotExist, DjangoValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    update_fields = ['updated_at']

    if name is not None:
        group.name = _validate_name(name)
        update_fields.append('name')

    if description is not None:
        group.description = _validate_description(description)
        update_fields.append('description')

    group.save(update_fields=update_fields)

    logger.info("Updated group %s (%s)", group.id, ', '.join(update_fields[1:]) or 'no changes')
    return group


@transaction.atomic
def delete_group(*, group_id: UUID) -> None:
    """
    Delete a group.

    Cascading deletes will automatically remove:
    - All memberships
    - All expenses and their split rows

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except (Group.DoesNotExist, DjangoValidationError, ValueError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    group.delete()
    logger.info("Deleted group %s", group_id)
