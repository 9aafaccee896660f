"""Financial profile data model.

The ``FinancialProfile`` is the aggregate root: it owns every account,
budget, recurring item, goal, spending entry and the category rollup, and
is the unit of load and save. All records are frozen dataclasses and the
profile stores its collections as tuples, so a snapshot handed to a
consumer can never be changed behind the store's back.

Money values are ``Decimal``; ints, floats and strings are coerced on
construction. ``to_dict``/``from_dict`` use the camelCase JSON layout of
the local cache blob.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

SPENDING_CATEGORIES: tuple[str, ...] = (
    "food",
    "transport",
    "utilities",
    "data_airtime",
    "housing",
    "entertainment",
    "shopping",
    "health",
    "education",
    "savings",
    "family",
    "debt",
    "other",
)


class ConfidenceLevel(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DataSource(StrEnum):
    MANUAL = "manual"
    UPLOAD = "upload"
    ESTIMATED = "estimated"
    AI = "ai"


class AccountType(StrEnum):
    BANK = "bank"
    MOBILE_MONEY = "mobile_money"
    CASH = "cash"
    CRYPTO = "crypto"
    OTHER = "other"


class Period(StrEnum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    YEARLY = "yearly"


class EntryType(StrEnum):
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


class GoalPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def new_id() -> str:
    """Generate a stable row identifier."""
    return str(uuid.uuid4())


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


def to_money(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, StrEnum):
        return value.value
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


class Record:
    """Mixin giving frozen dataclasses camelCase dict conversion and coercion."""

    _money_fields: tuple[str, ...] = ()
    _enum_fields: dict[str, type[StrEnum]] = {}

    def __post_init__(self) -> None:
        for name in self._money_fields:
            object.__setattr__(self, name, to_money(getattr(self, name)))
        for name, enum_cls in self._enum_fields.items():
            value = getattr(self, name)
            if not isinstance(value, enum_cls):
                object.__setattr__(self, name, enum_cls(value))

    def to_dict(self) -> dict[str, Any]:
        return {_to_camel(f.name): _encode(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        """Build a record from a camelCase (or snake_case) mapping.

        Unknown keys are ignored so older cache blobs keep loading.
        """
        kwargs = {}
        for f in fields(cls):
            camel = _to_camel(f.name)
            if camel in data:
                kwargs[f.name] = data[camel]
            elif f.name in data:
                kwargs[f.name] = data[f.name]
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Owned records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Account(Record):
    """A money account (bank, mobile money wallet, cash, ...)."""

    id: str
    name: str
    type: AccountType = AccountType.BANK
    balance: Decimal = Decimal("0")
    currency: str = "NGN"
    is_primary: bool = False

    _money_fields = ("balance",)
    _enum_fields = {"type": AccountType}


@dataclass(frozen=True)
class Budget(Record):
    """Spending limit for one category.

    ``spent`` is a cache recomputed from the spending summary; it is never
    read back from the remote store.
    """

    id: str
    category: str
    limit: Decimal
    period: Period = Period.MONTHLY
    spent: Decimal = Decimal("0")

    _money_fields = ("limit", "spent")
    _enum_fields = {"period": Period}


@dataclass(frozen=True)
class RecurringItem(Record):
    id: str
    name: str
    amount: Decimal
    frequency: Period = Period.MONTHLY
    next_due_date: str | None = None
    category: str = "other"
    is_active: bool = True

    _money_fields = ("amount",)
    _enum_fields = {"frequency": Period}


@dataclass(frozen=True)
class SavingsGoal(Record):
    id: str
    name: str
    target: Decimal
    current: Decimal = Decimal("0")
    deadline: str | None = None
    priority: GoalPriority = GoalPriority.MEDIUM
    created_at: str = field(default_factory=utc_now)

    _money_fields = ("target", "current")
    _enum_fields = {"priority": GoalPriority}

    @property
    def progress(self) -> float:
        """Fraction of the target saved so far (0.0 when the target is zero)."""
        if self.target == 0:
            return 0.0
        return float(self.current / self.target)


@dataclass(frozen=True)
class SpendingEntry(Record):
    """A single transaction.

    ``account_id`` is a weak reference: the account may have been deleted
    since. Use :func:`finresolve.profile.lookups.find_account` to resolve it.
    """

    id: str
    category: str
    amount: Decimal
    type: EntryType = EntryType.EXPENSE
    date: str | None = None
    description: str | None = None
    account_id: str | None = None
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH
    source: DataSource = DataSource.MANUAL
    merchant_name: str | None = None
    is_recurring: bool = False

    _money_fields = ("amount",)
    _enum_fields = {"type": EntryType, "confidence": ConfidenceLevel, "source": DataSource}


@dataclass(frozen=True)
class SpendingSummary(Record):
    """Category rollup row. Keyed by ``category``; has no id of its own."""

    category: str
    total: Decimal
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM
    transaction_count: int = 0

    _money_fields = ("total",)
    _enum_fields = {"confidence": ConfidenceLevel}


@dataclass(frozen=True)
class IncomeData(Record):
    amount: Decimal
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH
    is_estimate: bool = False
    frequency: Period = Period.MONTHLY
    source: str | None = None

    _money_fields = ("amount",)
    _enum_fields = {"confidence": ConfidenceLevel, "frequency": Period}


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

_COLLECTIONS: dict[str, type[Record]] = {
    "accounts": Account,
    "budgets": Budget,
    "recurring_items": RecurringItem,
    "goals": SavingsGoal,
    "spending_entries": SpendingEntry,
    "spending_summary": SpendingSummary,
}


@dataclass(frozen=True)
class FinancialProfile(Record):
    """Identity-scoped container for all of a user's financial data.

    Attributes:
        id: Row identifier. The remote store's id wins over a cached one.
        name: Display name.
        income: Income descriptor, or None until provided.
        has_completed_onboarding: Monotonic False -> True.
        data_completeness: Derived 0-100 score.
        last_updated: ISO-8601 timestamp of the last mutation.
    """

    id: str
    name: str | None = None
    income: IncomeData | None = None
    accounts: tuple[Account, ...] = ()
    budgets: tuple[Budget, ...] = ()
    recurring_items: tuple[RecurringItem, ...] = ()
    goals: tuple[SavingsGoal, ...] = ()
    spending_entries: tuple[SpendingEntry, ...] = ()
    spending_summary: tuple[SpendingSummary, ...] = ()
    has_completed_onboarding: bool = False
    data_completeness: int = 0
    last_updated: str = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if isinstance(self.income, dict):
            object.__setattr__(self, "income", IncomeData.from_dict(self.income))
        for name, record_cls in _COLLECTIONS.items():
            items = getattr(self, name) or ()
            object.__setattr__(
                self,
                name,
                tuple(item if isinstance(item, record_cls) else record_cls.from_dict(item) for item in items),
            )

    @classmethod
    def empty(cls, profile_id: str | None = None) -> FinancialProfile:
        """Create a fresh profile with no data."""
        return cls(id=profile_id or new_id())

    def ids(self, collection: str) -> set[str]:
        """Return the id set of an id-bearing collection."""
        return {item.id for item in getattr(self, collection)}
