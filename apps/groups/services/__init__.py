"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations run inside transactions.
"""

from .exceptions import (
    GroupsServiceError,
    GroupNotFoundError,
    MemberNotFoundError,
    DuplicateMemberError,
    AlreadyMemberError,
    NotMemberError,
    InvalidGroupDataError,
)

from .group_management import (
    create_group,
    update_group,
    delete_group,
    get_group_by_id,
    list_groups,
    search_groups,
)

from .member_management import (
    create_member,
    get_or_create_member,
    get_member_by_id,
    list_members,
    list_groups_for_member,
)

from .membership_management import (
    add_member,
    remove_member,
    get_group_members,
)


__all__ = [
    # Exceptions
    'GroupsServiceError',
    'GroupNotFoundError',
    'MemberNotFoundError',
    'DuplicateMemberError',
    'AlreadyMemberError',
    'NotMemberError',
    'InvalidGroupDataError',

    # Group Management
    'create_group',
    'update_group',
    'delete_group',
    'get_group_by_id',
    'list_groups',
    'search_groups',

    # Member Management
    'create_member',
    'get_or_create_member',
    'get_member_by_id',
    'list_members',
    'list_groups_for_member',

    # Membership Management
    'add_member',
    'remove_member',
    'get_group_members',
]
