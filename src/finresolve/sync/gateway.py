"""RemoteGateway protocol: the contract for remote relational stores.

The sync engine talks to the remote store only through this narrow CRUD
surface. Any backend (a hosted Postgres API, a SQL database, the bundled
:class:`~finresolve.sync.memory.InMemoryGateway`) can implement it.

Rows are plain dicts with snake_case columns; every child row carries
``profile_id``. This module also holds the codec between profile records
and rows.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from finresolve.profile.identity import user_id_of
from finresolve.profile.models import (
    Account,
    Budget,
    FinancialProfile,
    IncomeData,
    Record,
    RecurringItem,
    SavingsGoal,
    SpendingEntry,
    SpendingSummary,
)

Row = dict[str, Any]


class EntityKind(StrEnum):
    """Remote collections owned by a profile. Values are table names."""

    ACCOUNTS = "accounts"
    BUDGETS = "budgets"
    RECURRING_ITEMS = "recurring_items"
    GOALS = "savings_goals"
    SPENDING_ENTRIES = "spending_entries"
    SPENDING_SUMMARIES = "spending_summaries"


class SyncStrategy(StrEnum):
    """How a collection is reconciled against the remote store."""

    ID_DIFF = "id_diff"  # upsert local rows, delete remote ids missing locally
    UPSERT_ONLY = "upsert_only"  # upsert local rows, never delete
    REPLACE_ALL = "replace_all"  # delete every row for the profile, insert current rows


# Profile attribute holding each collection.
COLLECTION_OF: dict[EntityKind, str] = {
    EntityKind.ACCOUNTS: "accounts",
    EntityKind.BUDGETS: "budgets",
    EntityKind.RECURRING_ITEMS: "recurring_items",
    EntityKind.GOALS: "goals",
    EntityKind.SPENDING_ENTRIES: "spending_entries",
    EntityKind.SPENDING_SUMMARIES: "spending_summary",
}

STRATEGY_OF: dict[EntityKind, SyncStrategy] = {
    EntityKind.ACCOUNTS: SyncStrategy.ID_DIFF,
    EntityKind.BUDGETS: SyncStrategy.ID_DIFF,
    EntityKind.RECURRING_ITEMS: SyncStrategy.ID_DIFF,
    EntityKind.GOALS: SyncStrategy.ID_DIFF,
    # Historical transactions are never deleted remotely.
    EntityKind.SPENDING_ENTRIES: SyncStrategy.UPSERT_ONLY,
    # The rollup is keyed by (profile, category), not by a stable id.
    EntityKind.SPENDING_SUMMARIES: SyncStrategy.REPLACE_ALL,
}

_RECORD_OF: dict[EntityKind, type[Record]] = {
    EntityKind.ACCOUNTS: Account,
    EntityKind.BUDGETS: Budget,
    EntityKind.RECURRING_ITEMS: RecurringItem,
    EntityKind.GOALS: SavingsGoal,
    EntityKind.SPENDING_ENTRIES: SpendingEntry,
    EntityKind.SPENDING_SUMMARIES: SpendingSummary,
}

# record field -> column, for every persisted field. Fields absent here
# (Budget.spent) are derived and never written.
_COLUMNS: dict[EntityKind, dict[str, str]] = {
    EntityKind.ACCOUNTS: {
        "id": "id",
        "name": "name",
        "type": "type",
        "balance": "balance",
        "currency": "currency",
        "is_primary": "is_primary",
    },
    EntityKind.BUDGETS: {
        "id": "id",
        "category": "category",
        "limit": "limit_amount",
        "period": "period",
    },
    EntityKind.RECURRING_ITEMS: {
        "id": "id",
        "name": "name",
        "amount": "amount",
        "frequency": "frequency",
        "next_due_date": "next_due_date",
        "category": "category",
        "is_active": "is_active",
    },
    EntityKind.GOALS: {
        "id": "id",
        "name": "name",
        "target": "target",
        "current": "current",
        "deadline": "deadline",
        "priority": "priority",
        "created_at": "created_at",
    },
    EntityKind.SPENDING_ENTRIES: {
        "id": "id",
        "category": "category",
        "amount": "amount",
        "confidence": "confidence",
        "source": "source",
        "description": "description",
        "date": "date",
        "merchant_name": "merchant_name",
        "account_id": "account_id",
        "is_recurring": "is_recurring",
        "type": "type",
    },
    EntityKind.SPENDING_SUMMARIES: {
        "category": "category",
        "total": "total",
        "confidence": "confidence",
        "transaction_count": "transaction_count",
    },
}


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class RemoteGateway(Protocol):
    """Async CRUD contract over the remote relational store.

    Implementations raise :class:`~finresolve.core.exceptions.RemoteUnavailableError`
    for transport failures. A missing profile is reported by returning
    ``None`` from :meth:`fetch_profile` (raising ``ProfileNotFoundError``
    is also accepted).
    """

    async def fetch_profile(self, identity_key: str) -> Row | None:
        """Return the profile row owned by *identity_key*, or None."""
        ...

    async def fetch_collection(self, kind: EntityKind, profile_id: str) -> list[Row]:
        """Return every row of *kind* belonging to *profile_id*."""
        ...

    async def upsert_profile(self, row: Row) -> None:
        """Insert or update the scalar profile row (keyed by ``id``)."""
        ...

    async def upsert_rows(self, kind: EntityKind, rows: list[Row]) -> None:
        """Insert or update rows of an id-keyed collection."""
        ...

    async def delete_rows(self, kind: EntityKind, ids: list[str]) -> None:
        """Delete rows of *kind* by id."""
        ...

    async def delete_for_profile(self, kind: EntityKind, profile_id: str) -> None:
        """Delete every row of *kind* belonging to *profile_id*."""
        ...

    async def insert_rows(self, kind: EntityKind, rows: list[Row]) -> None:
        """Insert rows without an id-based upsert (replace-all collections)."""
        ...

    async def delete_profile(self, profile_id: str) -> None:
        """Delete the scalar profile row."""
        ...


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, StrEnum) else value


def record_to_row(kind: EntityKind, record: Record, profile_id: str) -> Row:
    row: Row = {"profile_id": profile_id}
    for field_name, column in _COLUMNS[kind].items():
        row[column] = _column_value(getattr(record, field_name))
    return row


def record_from_row(kind: EntityKind, row: Row) -> Record:
    kwargs = {}
    for field_name, column in _COLUMNS[kind].items():
        value = row.get(column)
        if value is not None:
            kwargs[field_name] = value
    return _RECORD_OF[kind](**kwargs)


def rows_for(kind: EntityKind, profile: FinancialProfile) -> list[Row]:
    """Encode the profile's collection of *kind* as rows."""
    return [record_to_row(kind, record, profile.id) for record in getattr(profile, COLLECTION_OF[kind])]


def profile_to_row(profile: FinancialProfile, identity_key: str) -> Row:
    income = profile.income
    return {
        "id": profile.id,
        "user_id": user_id_of(identity_key),
        "name": profile.name,
        "income_amount": income.amount if income else None,
        "income_confidence": income.confidence.value if income else None,
        "income_is_estimate": income.is_estimate if income else False,
        "income_frequency": income.frequency.value if income else "monthly",
        "income_source": income.source if income else None,
        "has_completed_onboarding": profile.has_completed_onboarding,
        "data_completeness": profile.data_completeness,
        "updated_at": profile.last_updated,
    }


def profile_from_rows(row: Row, collections: dict[EntityKind, list[Row]]) -> FinancialProfile:
    """Rebuild an aggregate from its scalar row and collection rows.

    Derived fields (budget ``spent``, completeness) are left for the caller
    to recompute.
    """
    income = None
    if row.get("income_amount") is not None:
        income = IncomeData(
            amount=row["income_amount"],
            confidence=row.get("income_confidence") or "medium",
            is_estimate=bool(row.get("income_is_estimate", False)),
            frequency=row.get("income_frequency") or "monthly",
            source=row.get("income_source"),
        )
    kwargs: dict[str, Any] = {
        "id": row["id"],
        "name": row.get("name"),
        "income": income,
        "has_completed_onboarding": bool(row.get("has_completed_onboarding", False)),
        "data_completeness": int(row.get("data_completeness") or 0),
    }
    if row.get("updated_at"):
        kwargs["last_updated"] = row["updated_at"]
    for kind, attr in COLLECTION_OF.items():
        kwargs[attr] = tuple(record_from_row(kind, r) for r in collections.get(kind, []))
    return FinancialProfile(**kwargs)
