"""Lookups across weak references.

``SpendingEntry.account_id`` points at an account without owning it and
deleting an account never touches the entries that referenced it. These
helpers resolve such references and report a miss as ``None`` (or under
``UNKNOWN_ACCOUNT``) rather than raising. Category rollups fold free-form
categories into ``OTHER_CATEGORY``.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from finresolve.profile.models import SPENDING_CATEGORIES, Account, FinancialProfile, SpendingEntry

UNKNOWN_ACCOUNT = "unknown"
OTHER_CATEGORY = "other"


def find_account(profile: FinancialProfile, account_id: str | None) -> Account | None:
    if account_id is None:
        return None
    for account in profile.accounts:
        if account.id == account_id:
            return account
    return None


def account_name_for(profile: FinancialProfile, entry: SpendingEntry) -> str:
    """Display name of the entry's account, or ``UNKNOWN_ACCOUNT`` if it is gone."""
    account = find_account(profile, entry.account_id)
    return account.name if account else UNKNOWN_ACCOUNT


def spending_by_account(profile: FinancialProfile) -> dict[str, Decimal]:
    """Sum entry amounts per account id.

    Entries without an account, or whose account no longer exists, are
    bucketed under ``UNKNOWN_ACCOUNT``.
    """
    live_ids = profile.ids("accounts")
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for entry in profile.spending_entries:
        key = entry.account_id if entry.account_id in live_ids else UNKNOWN_ACCOUNT
        totals[key] += entry.amount
    return dict(totals)


def dangling_entries(profile: FinancialProfile) -> list[SpendingEntry]:
    """Entries whose ``account_id`` refers to an account that no longer exists."""
    live_ids = profile.ids("accounts")
    return [e for e in profile.spending_entries if e.account_id is not None and e.account_id not in live_ids]


def spending_by_category(profile: FinancialProfile) -> dict[str, Decimal]:
    """Sum entry amounts per spending category.

    Categories outside ``SPENDING_CATEGORIES`` are folded into ``"other"``.
    Keys follow ``SPENDING_CATEGORIES`` order; categories with no entries
    are omitted.
    """
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for entry in profile.spending_entries:
        key = entry.category if entry.category in SPENDING_CATEGORIES else OTHER_CATEGORY
        totals[key] += entry.amount
    return {category: totals[category] for category in SPENDING_CATEGORIES if category in totals}
