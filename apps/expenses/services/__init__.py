"""
Expenses app services layer.

Split calculation and balance folding are pure; expense management
owns persistence and transactions.
"""

from .exceptions import (
    ExpensesServiceError,
    ExpenseNotFoundError,
    ExpenseValidationError,
    DuplicateParticipantError,
    InvalidSplitTypeError,
    ReconciliationError,
)

from .money import (
    MAX_EXPENSE_AMOUNT,
    RECONCILIATION_TOLERANCE,
    apportion,
    distribute,
    from_basis_points,
    from_minor_units,
    to_basis_points,
    to_minor_units,
)

from .split_calculation import (
    SplitType,
    Participant,
    ExactShare,
    PercentageShare,
    EqualSplit,
    ExactSplit,
    PercentageSplit,
    SplitRow,
    build_split,
    calculate_split,
    parse_split_type,
)

from .expense_management import (
    create_expense,
    get_expense_by_id,
    list_expenses,
    list_group_expenses,
    list_member_expenses,
    search_expenses,
    list_expenses_by_date_range,
    update_expense,
    delete_expense,
    fetch_group_members,
    fetch_group_expenses_with_splits,
    persist_expense_and_splits,
)

from .balance_aggregation import (
    LedgerEntry,
    LedgerShare,
    GroupBalances,
    MemberSummary,
    Settlement,
    aggregate_balances,
    compute_group_balances,
    get_member_summaries,
    suggest_settlements,
    calculate_equal_split_for_group,
    get_group_expense_stats,
)


__all__ = [
    # Exceptions
    'ExpensesServiceError',
    'ExpenseNotFoundError',
    'ExpenseValidationError',
    'DuplicateParticipantError',
    'InvalidSplitTypeError',
    'ReconciliationError',

    # Money
    'MAX_EXPENSE_AMOUNT',
    'RECONCILIATION_TOLERANCE',
    'apportion',
    'distribute',
    'from_basis_points',
    'from_minor_units',
    'to_basis_points',
    'to_minor_units',

    # Split Calculation
    'SplitType',
    'Participant',
    'ExactShare',
    'PercentageShare',
    'EqualSplit',
    'ExactSplit',
    'PercentageSplit',
    'SplitRow',
    'build_split',
    'calculate_split',
    'parse_split_type',

    # Expense Management
    'create_expense',
    'get_expense_by_id',
    'list_expenses',
    'list_group_expenses',
    'list_member_expenses',
    'search_expenses',
    'list_expenses_by_date_range',
    'update_expense',
    'delete_expense',
    'fetch_group_members',
    'fetch_group_expenses_with_splits',
    'persist_expense_and_splits',

    # Balance Aggregation
    'LedgerEntry',
    'LedgerShare',
    'GroupBalances',
    'MemberSummary',
    'Settlement',
    'aggregate_balances',
    'compute_group_balances',
    'get_member_summaries',
    'suggest_settlements',
    'calculate_equal_split_for_group',
    'get_group_expense_stats',
]
