"""
Member management service.

Members exist independently of groups; a member can belong to many groups.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, IntegrityError
from django.db.models import Q, QuerySet

from apps.groups.models import Member, Group

from .exceptions import (
    MemberNotFoundError,
    DuplicateMemberError,
    InvalidGroupDataError,
)

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def _validate_member_data(name: str, email: str) -> None:
    if not name or not name.strip():
        raise InvalidGroupDataError("Member name is required", field='name', value=name)
    if len(name.strip()) > 255:
        raise InvalidGroupDataError(
            "Member name must be at most 255 characters", field='name', value=name
        )
    if not email or '@' not in email:
        raise InvalidGroupDataError("A valid email is required", field='email', value=email)


@transaction.atomic
def create_member(*, name: str, email: str) -> Member:
    """
    Create a new member.

    Args:
        name: Display name
        email: Unique email address (stored lower-cased)

    Returns:
        Created Member instance

    Raises:
        InvalidGroupDataError: If name or email is missing
        DuplicateMemberError: If the email is already registered
    """
    email = _normalize_email(email)
    _validate_member_data(name, email)

    if Member.objects.filter(email=email).exists():
        raise DuplicateMemberError(f"Member with email {email} already exists")

    try:
        member = Member.objects.create(name=name.strip(), email=email)
    except IntegrityError:
        raise DuplicateMemberError(f"Member with email {email} already exists")

    logger.info("Created member %s (%s)", member.id, email)
    return member


def get_or_create_member(*, name: str, email: str) -> Tuple[Member, bool]:
    """
    Return the member registered under ``email``, creating it if needed.

    The name is only used when a new member is created.
    """
    email = _normalize_email(email)
    _validate_member_data(name, email)

    member = Member.objects.filter(email=email).first()
    if member is not None:
        return member, False

    return create_member(name=name, email=email), True


def get_member_by_id(*, member_id: UUID) -> Member:
    """
    Get a member by ID.

    Raises:
        MemberNotFoundError: If member doesn't exist
    """
    try:
        return Member.objects.get(id=member_id)
    except (Member.DoesNotExist, DjangoValidationError, ValueError):
        raise MemberNotFoundError(f"Member with ID {member_id} not found")


def list_members(*, search: Optional[str] = None) -> QuerySet[Member]:
    """List all members, optionally filtered by name or email."""
    queryset = Member.objects.all()
    if search:
        queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search))
    return queryset.order_by('name')


def list_groups_for_member(*, member_id: UUID) -> QuerySet[Group]:
    """
    Get all groups a member belongs to.

    Raises:
        MemberNotFoundError: If member doesn't exist
    """
    member = get_member_by_id(member_id=member_id)
    return (
        Group.objects
        .filter(memberships__member=member)
        .prefetch_related('memberships')
        .distinct()
    )
