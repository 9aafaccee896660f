"""Tests for the profile <-> row codec."""

from decimal import Decimal

from finresolve.profile.models import (
    Budget,
    FinancialProfile,
    IncomeData,
    SpendingEntry,
    SpendingSummary,
)
from finresolve.sync.gateway import (
    STRATEGY_OF,
    EntityKind,
    RemoteGateway,
    SyncStrategy,
    profile_from_rows,
    profile_to_row,
    record_from_row,
    record_to_row,
    rows_for,
)
from finresolve.sync.memory import InMemoryGateway


def test_in_memory_gateway_satisfies_protocol():
    assert isinstance(InMemoryGateway(), RemoteGateway)


def test_strategies():
    assert STRATEGY_OF[EntityKind.ACCOUNTS] is SyncStrategy.ID_DIFF
    assert STRATEGY_OF[EntityKind.SPENDING_ENTRIES] is SyncStrategy.UPSERT_ONLY
    assert STRATEGY_OF[EntityKind.SPENDING_SUMMARIES] is SyncStrategy.REPLACE_ALL


def test_budget_row_uses_limit_amount_and_drops_spent():
    row = record_to_row(EntityKind.BUDGETS, Budget(id="b1", category="food", limit=500, spent=40), "p1")
    assert row == {"profile_id": "p1", "id": "b1", "category": "food", "limit_amount": Decimal("500"), "period": "monthly"}


def test_entry_row_round_trip():
    entry = SpendingEntry(id="e1", category="food", amount=12, account_id="a1", merchant_name="Chicken Republic")
    row = record_to_row(EntityKind.SPENDING_ENTRIES, entry, "p1")
    assert row["type"] == "expense"
    assert record_from_row(EntityKind.SPENDING_ENTRIES, row) == entry


def test_summary_rows_have_no_id():
    profile = FinancialProfile(id="p1", spending_summary=(SpendingSummary(category="food", total=3),))
    (row,) = rows_for(EntityKind.SPENDING_SUMMARIES, profile)
    assert "id" not in row
    assert row["category"] == "food"


def test_profile_row_scalars():
    profile = FinancialProfile(
        id="p1",
        name="Ada",
        income=IncomeData(amount=100, source="salary"),
        has_completed_onboarding=True,
    )
    row = profile_to_row(profile, "user:u1")
    assert row["id"] == "p1"
    assert row["user_id"] == "u1"
    assert row["income_amount"] == Decimal("100")
    assert row["income_source"] == "salary"
    assert row["has_completed_onboarding"] is True


def test_profile_from_rows():
    row = {
        "id": "p1",
        "user_id": "u1",
        "name": "Ada",
        "income_amount": 100,
        "income_confidence": "low",
        "income_frequency": "weekly",
        "has_completed_onboarding": True,
        "updated_at": "2026-01-01T00:00:00",
    }
    collections = {
        EntityKind.BUDGETS: [{"id": "b1", "profile_id": "p1", "category": "food", "limit_amount": 50, "period": "weekly"}],
    }
    profile = profile_from_rows(row, collections)
    assert profile.id == "p1"
    assert profile.income.frequency == "weekly"
    assert profile.budgets[0].limit == Decimal("50")
    assert profile.budgets[0].spent == Decimal("0")
    assert profile.accounts == ()
    assert profile.last_updated == "2026-01-01T00:00:00"


def test_profile_from_rows_without_income():
    profile = profile_from_rows({"id": "p1"}, {})
    assert profile.income is None
    assert profile.has_completed_onboarding is False
