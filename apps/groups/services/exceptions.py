"""
Domain-specific exceptions for groups app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class GroupsServiceError(Exception):
    """Base exception for all groups service errors."""
    pass


class GroupNotFoundError(GroupsServiceError):
    """Raised when a group does not exist."""
    pass


class MemberNotFoundError(GroupsServiceError):
    """Raised when a member does not exist."""
    pass


class DuplicateMemberError(GroupsServiceError):
    """Raised when a member with the same email already exists."""
    pass


class AlreadyMemberError(GroupsServiceError):
    """Raised when adding a member who is already in the group."""
    pass


class NotMemberError(GroupsServiceError):
    """Raised when a member is not part of the group."""
    pass


class InvalidGroupDataError(GroupsServiceError):
    """
    Raised when group or member input fails validation.

    Carries the offending field and value so views can render a
    structured error detail.
    """

    def __init__(self, message, *, field=None, value=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def as_detail(self):
        return {'field': self.field, 'message': self.message, 'value': self.value}
