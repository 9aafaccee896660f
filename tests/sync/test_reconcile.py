"""Tests for id diffing and sync planning."""

import pytest

from finresolve.profile.models import Account, FinancialProfile, SpendingSummary
from finresolve.sync.gateway import EntityKind
from finresolve.sync.reconcile import diff_ids, empty_known_ids, known_ids_of, plan_sync


@pytest.mark.smoke
class TestDiffIds:
    def test_removed_ids_are_deleted(self):
        diff = diff_ids({"a", "b", "c"}, {"a", "c", "d"})
        assert diff.to_delete == {"b"}
        assert diff.to_upsert == {"a", "c", "d"}

    def test_empty_remote(self):
        diff = diff_ids(set(), {"a"})
        assert diff.to_delete == frozenset()
        assert diff.to_upsert == {"a"}

    def test_empty_local_deletes_everything(self):
        assert diff_ids({"a", "b"}, set()).to_delete == {"a", "b"}


class TestPlanSync:
    def test_first_sync_has_no_deletes(self, account, goal):
        profile = FinancialProfile(id="p1", accounts=(account,), goals=(goal,))
        plan = plan_sync(profile, "user:u1", empty_known_ids())

        assert plan.profile_row["id"] == "p1"
        assert [r["id"] for r in plan.for_kind(EntityKind.ACCOUNTS).upserts] == ["a1"]
        assert all(not c.deletes for c in plan.collections)
        assert plan.known_ids[EntityKind.ACCOUNTS] == {"a1"}
        assert plan.known_ids[EntityKind.GOALS] == {"g1"}

    def test_locally_removed_account_is_deleted(self, account):
        profile = FinancialProfile(id="p1", accounts=(account,))
        known = empty_known_ids()
        known[EntityKind.ACCOUNTS] = frozenset({"a1", "a2", "a0"})

        plan = plan_sync(profile, "user:u1", known)

        assert plan.for_kind(EntityKind.ACCOUNTS).deletes == ["a0", "a2"]
        assert plan.known_ids[EntityKind.ACCOUNTS] == {"a1"}

    def test_every_local_row_is_upserted(self, account):
        other = Account(id="a2", name="Kuda")
        profile = FinancialProfile(id="p1", accounts=(account, other))
        known = known_ids_of(profile)

        plan = plan_sync(profile, "user:u1", known)

        assert len(plan.for_kind(EntityKind.ACCOUNTS).upserts) == 2

    def test_spending_entries_are_never_deleted(self, entry):
        # Entries removed locally stay remote; they remain in the known set.
        profile = FinancialProfile(id="p1", spending_entries=(entry,))
        known = empty_known_ids()
        known[EntityKind.SPENDING_ENTRIES] = frozenset({"e0"})

        plan = plan_sync(profile, "user:u1", known)

        entries = plan.for_kind(EntityKind.SPENDING_ENTRIES)
        assert entries.deletes == []
        assert [r["id"] for r in entries.upserts] == ["e1"]
        assert plan.known_ids[EntityKind.SPENDING_ENTRIES] == {"e0", "e1"}

    def test_summaries_are_replaced_wholesale(self):
        profile = FinancialProfile(
            id="p1",
            spending_summary=(SpendingSummary(category="food", total=10), SpendingSummary(category="transport", total=5)),
        )
        plan = plan_sync(profile, "user:u1", empty_known_ids())

        summaries = plan.for_kind(EntityKind.SPENDING_SUMMARIES)
        assert summaries.replace_all
        assert [r["category"] for r in summaries.upserts] == ["food", "transport"]
        assert EntityKind.SPENDING_SUMMARIES not in plan.known_ids

    def test_empty_summary_still_replaces(self):
        plan = plan_sync(FinancialProfile(id="p1"), "user:u1", empty_known_ids())
        summaries = plan.for_kind(EntityKind.SPENDING_SUMMARIES)
        assert summaries.replace_all
        assert summaries.upserts == []

    def test_collections_cover_every_kind(self):
        plan = plan_sync(FinancialProfile(id="p1"), "user:u1", {})
        assert [c.kind for c in plan.collections] == list(EntityKind)


def test_known_ids_of(account, entry):
    known = known_ids_of(FinancialProfile(id="p1", accounts=(account,), spending_entries=(entry,)))
    assert known[EntityKind.ACCOUNTS] == {"a1"}
    assert known[EntityKind.SPENDING_ENTRIES] == {"e1"}
    assert known[EntityKind.BUDGETS] == frozenset()
    assert EntityKind.SPENDING_SUMMARIES not in known
