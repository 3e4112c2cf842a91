"""
Domain-specific exceptions for expenses app.

Validation errors carry the offending field and value; views turn
them into 400 responses with a structured ``details`` list.
"""


class ExpensesServiceError(Exception):
    """Base exception for all expenses service errors."""
    pass


class ExpenseNotFoundError(ExpensesServiceError):
    """Raised when an expense does not exist."""
    pass


class ExpenseValidationError(ExpensesServiceError):
    """Raised when expense or split input is invalid."""

    def __init__(self, message, *, field=None, value=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def as_detail(self):
        value = self.value
        if value is not None and not isinstance(value, (str, int, float, bool, list, dict)):
            value = str(value)
        return {'field': self.field, 'message': self.message, 'value': value}


class DuplicateParticipantError(ExpenseValidationError):
    """Raised when the same participant appears twice in a split."""
    pass


class InvalidSplitTypeError(ExpenseValidationError):
    """Raised for a split type outside equal / exact / percentage."""
    pass


class ReconciliationError(ExpenseValidationError):
    """
    Raised when exact amounts or percentages don't add up.

    ``expected`` and ``actual`` are the two totals that failed to match.
    """

    def __init__(self, message, *, expected, actual, field='splits'):
        super().__init__(message, field=field, value=str(actual))
        self.expected = expected
        self.actual = actual
