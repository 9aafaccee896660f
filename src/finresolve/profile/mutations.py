"""Profile mutations: the closed set of ways a profile can change.

Each mutation is a small frozen dataclass; :func:`apply` turns a profile
and a mutation into the next profile. ``apply`` is pure, synchronous and
total: unknown ids are no-ops, adding a record whose id already exists is
a no-op, and ``id`` keys in update patches are ignored. Side effects stay
inside the aggregate and deletions never cascade across collections.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from typing import Any, ClassVar

from finresolve.profile.completeness import calculate_data_completeness
from finresolve.profile.models import (
    Account,
    Budget,
    ConfidenceLevel,
    FinancialProfile,
    IncomeData,
    RecurringItem,
    SavingsGoal,
    SpendingEntry,
    SpendingSummary,
    to_money,
    utc_now,
)


@dataclass(frozen=True)
class Mutation:
    """Base class for all mutations.

    ``privileged`` mutations must reach the remote store before the caller
    moves on; the sync engine flushes them immediately instead of waiting
    out the debounce window.
    """

    kind: ClassVar[str] = "mutation"
    privileged: ClassVar[bool] = False


# -- Scalars ----------------------------------------------------------------


@dataclass(frozen=True)
class SetName(Mutation):
    kind: ClassVar[str] = "set_name"
    name: str | None


@dataclass(frozen=True)
class SetIncome(Mutation):
    kind: ClassVar[str] = "set_income"
    income: IncomeData | None


@dataclass(frozen=True)
class CompleteOnboarding(Mutation):
    kind: ClassVar[str] = "complete_onboarding"
    privileged: ClassVar[bool] = True


@dataclass(frozen=True)
class ResetProfile(Mutation):
    kind: ClassVar[str] = "reset_profile"


# -- Accounts ---------------------------------------------------------------


@dataclass(frozen=True)
class AddAccount(Mutation):
    kind: ClassVar[str] = "add_account"
    account: Account


@dataclass(frozen=True)
class UpdateAccount(Mutation):
    kind: ClassVar[str] = "update_account"
    account_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteAccount(Mutation):
    kind: ClassVar[str] = "delete_account"
    account_id: str


# -- Budgets ----------------------------------------------------------------


@dataclass(frozen=True)
class AddBudget(Mutation):
    kind: ClassVar[str] = "add_budget"
    budget: Budget


@dataclass(frozen=True)
class UpdateBudget(Mutation):
    kind: ClassVar[str] = "update_budget"
    budget_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteBudget(Mutation):
    kind: ClassVar[str] = "delete_budget"
    budget_id: str


# -- Recurring items --------------------------------------------------------


@dataclass(frozen=True)
class AddRecurringItem(Mutation):
    kind: ClassVar[str] = "add_recurring_item"
    item: RecurringItem


@dataclass(frozen=True)
class UpdateRecurringItem(Mutation):
    kind: ClassVar[str] = "update_recurring_item"
    item_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteRecurringItem(Mutation):
    kind: ClassVar[str] = "delete_recurring_item"
    item_id: str


# -- Goals ------------------------------------------------------------------


@dataclass(frozen=True)
class AddGoal(Mutation):
    kind: ClassVar[str] = "add_goal"
    goal: SavingsGoal


@dataclass(frozen=True)
class UpdateGoal(Mutation):
    kind: ClassVar[str] = "update_goal"
    goal_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteGoal(Mutation):
    kind: ClassVar[str] = "delete_goal"
    goal_id: str


# -- Spending ---------------------------------------------------------------


@dataclass(frozen=True)
class AddSpendingEntry(Mutation):
    """Record a transaction; debits the referenced account if it still exists."""

    kind: ClassVar[str] = "add_spending_entry"
    entry: SpendingEntry


@dataclass(frozen=True)
class AddSpendingSummaryDelta(Mutation):
    """Add ``amount`` to a category rollup and to budgets of that category."""

    kind: ClassVar[str] = "add_spending_summary_delta"
    category: str
    amount: Decimal
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM


@dataclass(frozen=True)
class ReplaceSpendingSummary(Mutation):
    kind: ClassVar[str] = "replace_spending_summary"
    summaries: tuple[SpendingSummary, ...]


@dataclass(frozen=True)
class MergeBulkSpendingEntries(Mutation):
    """Batch import (statement upload). Entries whose id already exists are skipped."""

    kind: ClassVar[str] = "merge_bulk_spending_entries"
    entries: tuple[SpendingEntry, ...]


# ---------------------------------------------------------------------------
# Collection helpers
# ---------------------------------------------------------------------------


def _add(items: tuple, record) -> tuple:
    if any(item.id == record.id for item in items):
        return items
    return (*items, record)


def _update(items: tuple, record_id: str, changes: Mapping[str, Any]) -> tuple:
    if not items:
        return items
    allowed = {f.name for f in fields(items[0])} - {"id"}
    patch = {k: v for k, v in changes.items() if k in allowed}
    if not patch:
        return items
    return tuple(replace(item, **patch) if item.id == record_id else item for item in items)


def _delete(items: tuple, record_id: str) -> tuple:
    return tuple(item for item in items if item.id != record_id)


def recompute_budget_spent(
    budgets: Iterable[Budget],
    summary: Iterable[SpendingSummary],
) -> tuple[Budget, ...]:
    """Derive every budget's ``spent`` from the category rollup totals."""
    totals = {s.category: s.total for s in summary}
    result = []
    for budget in budgets:
        spent = totals.get(budget.category, Decimal("0"))
        result.append(budget if budget.spent == spent else replace(budget, spent=spent))
    return tuple(result)


def with_derived_fields(profile: FinancialProfile) -> FinancialProfile:
    """Recompute budget ``spent`` and ``data_completeness`` (used on load)."""
    profile = replace(profile, budgets=recompute_budget_spent(profile.budgets, profile.spending_summary))
    return replace(profile, data_completeness=calculate_data_completeness(profile))


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

_Handler = Callable[[FinancialProfile, Any], FinancialProfile]
_HANDLERS: dict[type[Mutation], _Handler] = {}


def _handles(mutation_cls: type[Mutation]) -> Callable[[_Handler], _Handler]:
    def register(fn: _Handler) -> _Handler:
        _HANDLERS[mutation_cls] = fn
        return fn

    return register


@_handles(SetName)
def _set_name(p: FinancialProfile, m: SetName) -> FinancialProfile:
    return replace(p, name=m.name)


@_handles(SetIncome)
def _set_income(p: FinancialProfile, m: SetIncome) -> FinancialProfile:
    return replace(p, income=m.income)


@_handles(CompleteOnboarding)
def _complete_onboarding(p: FinancialProfile, m: CompleteOnboarding) -> FinancialProfile:
    return replace(p, has_completed_onboarding=True)


@_handles(ResetProfile)
def _reset(p: FinancialProfile, m: ResetProfile) -> FinancialProfile:
    return FinancialProfile.empty(p.id)


@_handles(AddAccount)
def _add_account(p: FinancialProfile, m: AddAccount) -> FinancialProfile:
    return replace(p, accounts=_add(p.accounts, m.account))


@_handles(UpdateAccount)
def _update_account(p: FinancialProfile, m: UpdateAccount) -> FinancialProfile:
    return replace(p, accounts=_update(p.accounts, m.account_id, m.changes))


@_handles(DeleteAccount)
def _delete_account(p: FinancialProfile, m: DeleteAccount) -> FinancialProfile:
    # Spending entries keep their account_id; see finresolve.profile.lookups.
    return replace(p, accounts=_delete(p.accounts, m.account_id))


@_handles(AddBudget)
def _add_budget(p: FinancialProfile, m: AddBudget) -> FinancialProfile:
    budgets = _add(p.budgets, m.budget)
    return replace(p, budgets=recompute_budget_spent(budgets, p.spending_summary))


@_handles(UpdateBudget)
def _update_budget(p: FinancialProfile, m: UpdateBudget) -> FinancialProfile:
    budgets = _update(p.budgets, m.budget_id, m.changes)
    return replace(p, budgets=recompute_budget_spent(budgets, p.spending_summary))


@_handles(DeleteBudget)
def _delete_budget(p: FinancialProfile, m: DeleteBudget) -> FinancialProfile:
    return replace(p, budgets=_delete(p.budgets, m.budget_id))


@_handles(AddRecurringItem)
def _add_recurring(p: FinancialProfile, m: AddRecurringItem) -> FinancialProfile:
    return replace(p, recurring_items=_add(p.recurring_items, m.item))


@_handles(UpdateRecurringItem)
def _update_recurring(p: FinancialProfile, m: UpdateRecurringItem) -> FinancialProfile:
    return replace(p, recurring_items=_update(p.recurring_items, m.item_id, m.changes))


@_handles(DeleteRecurringItem)
def _delete_recurring(p: FinancialProfile, m: DeleteRecurringItem) -> FinancialProfile:
    return replace(p, recurring_items=_delete(p.recurring_items, m.item_id))


@_handles(AddGoal)
def _add_goal(p: FinancialProfile, m: AddGoal) -> FinancialProfile:
    return replace(p, goals=_add(p.goals, m.goal))


@_handles(UpdateGoal)
def _update_goal(p: FinancialProfile, m: UpdateGoal) -> FinancialProfile:
    return replace(p, goals=_update(p.goals, m.goal_id, m.changes))


@_handles(DeleteGoal)
def _delete_goal(p: FinancialProfile, m: DeleteGoal) -> FinancialProfile:
    return replace(p, goals=_delete(p.goals, m.goal_id))


@_handles(AddSpendingEntry)
def _add_spending_entry(p: FinancialProfile, m: AddSpendingEntry) -> FinancialProfile:
    entries = _add(p.spending_entries, m.entry)
    if entries is p.spending_entries:
        return p
    accounts = p.accounts
    if m.entry.account_id is not None:
        # A missing account is fine: the entry is still recorded.
        accounts = tuple(
            replace(a, balance=a.balance - m.entry.amount) if a.id == m.entry.account_id else a for a in accounts
        )
    return replace(
        p,
        spending_entries=entries,
        accounts=accounts,
        budgets=recompute_budget_spent(p.budgets, p.spending_summary),
    )


@_handles(AddSpendingSummaryDelta)
def _add_summary_delta(p: FinancialProfile, m: AddSpendingSummaryDelta) -> FinancialProfile:
    amount = to_money(m.amount)
    summary = list(p.spending_summary)
    for i, row in enumerate(summary):
        if row.category == m.category:
            summary[i] = replace(row, total=row.total + amount, transaction_count=row.transaction_count + 1)
            break
    else:
        summary.append(SpendingSummary(category=m.category, total=amount, confidence=m.confidence, transaction_count=1))
    budgets = tuple(replace(b, spent=b.spent + amount) if b.category == m.category else b for b in p.budgets)
    return replace(p, spending_summary=tuple(summary), budgets=budgets)


@_handles(ReplaceSpendingSummary)
def _replace_summary(p: FinancialProfile, m: ReplaceSpendingSummary) -> FinancialProfile:
    summary = tuple(m.summaries)
    return replace(p, spending_summary=summary, budgets=recompute_budget_spent(p.budgets, summary))


@_handles(MergeBulkSpendingEntries)
def _merge_bulk(p: FinancialProfile, m: MergeBulkSpendingEntries) -> FinancialProfile:
    entries = p.spending_entries
    for entry in m.entries:
        entries = _add(entries, entry)
    return replace(
        p,
        spending_entries=entries,
        budgets=recompute_budget_spent(p.budgets, p.spending_summary),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def apply(profile: FinancialProfile, mutation: Mutation, now: str | None = None) -> FinancialProfile:
    """Apply *mutation* to *profile* and return the new profile.

    Stamps ``last_updated`` (with *now*, if given) and recomputes
    ``data_completeness``. The input profile is never modified.
    """
    handler = _HANDLERS.get(type(mutation))
    if handler is None:
        raise TypeError(f"Not a profile mutation: {mutation!r}")
    updated = handler(profile, mutation)
    updated = replace(updated, last_updated=now or utc_now())
    return replace(updated, data_completeness=calculate_data_completeness(updated))
