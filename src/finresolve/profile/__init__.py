"""Financial profile model, mutations and the in-memory ProfileStore."""

from .completeness import calculate_data_completeness
from .identity import ANONYMOUS, cache_key_for, identity_key_for, is_anonymous, user_id_of
from .lookups import (
    OTHER_CATEGORY,
    UNKNOWN_ACCOUNT,
    account_name_for,
    dangling_entries,
    find_account,
    spending_by_account,
    spending_by_category,
)
from .models import (
    SPENDING_CATEGORIES,
    Account,
    AccountType,
    Budget,
    ConfidenceLevel,
    DataSource,
    EntryType,
    FinancialProfile,
    GoalPriority,
    IncomeData,
    Period,
    RecurringItem,
    SavingsGoal,
    SpendingEntry,
    SpendingSummary,
    new_id,
)
from .mutations import (
    AddAccount,
    AddBudget,
    AddGoal,
    AddRecurringItem,
    AddSpendingEntry,
    AddSpendingSummaryDelta,
    CompleteOnboarding,
    DeleteAccount,
    DeleteBudget,
    DeleteGoal,
    DeleteRecurringItem,
    MergeBulkSpendingEntries,
    Mutation,
    ReplaceSpendingSummary,
    ResetProfile,
    SetIncome,
    SetName,
    UpdateAccount,
    UpdateBudget,
    UpdateGoal,
    UpdateRecurringItem,
    apply,
)
from .score import ScoreBreakdown, ScoreLabel, ScoreRecommendation, calculate_score, recommend
from .store import ProfileStore

__all__ = [
    "ANONYMOUS",
    "OTHER_CATEGORY",
    "SPENDING_CATEGORIES",
    "UNKNOWN_ACCOUNT",
    "Account",
    "AccountType",
    "AddAccount",
    "AddBudget",
    "AddGoal",
    "AddRecurringItem",
    "AddSpendingEntry",
    "AddSpendingSummaryDelta",
    "Budget",
    "CompleteOnboarding",
    "ConfidenceLevel",
    "DataSource",
    "DeleteAccount",
    "DeleteBudget",
    "DeleteGoal",
    "DeleteRecurringItem",
    "EntryType",
    "FinancialProfile",
    "GoalPriority",
    "IncomeData",
    "MergeBulkSpendingEntries",
    "Mutation",
    "Period",
    "ProfileStore",
    "RecurringItem",
    "ReplaceSpendingSummary",
    "ResetProfile",
    "SavingsGoal",
    "ScoreBreakdown",
    "ScoreLabel",
    "ScoreRecommendation",
    "SetIncome",
    "SetName",
    "SpendingEntry",
    "SpendingSummary",
    "UpdateAccount",
    "UpdateBudget",
    "UpdateGoal",
    "UpdateRecurringItem",
    "account_name_for",
    "apply",
    "cache_key_for",
    "calculate_data_completeness",
    "calculate_score",
    "dangling_entries",
    "find_account",
    "identity_key_for",
    "is_anonymous",
    "new_id",
    "recommend",
    "spending_by_account",
    "spending_by_category",
    "user_id_of",
]
