"""Tests for InMemoryGateway."""

import pytest

from finresolve.core.exceptions import RemoteUnavailableError
from finresolve.sync.gateway import EntityKind


async def test_fetch_profile_by_user(gateway):
    await gateway.upsert_profile({"id": "p1", "user_id": "u1"})
    assert (await gateway.fetch_profile("user:u1"))["id"] == "p1"
    assert await gateway.fetch_profile("user:u2") is None
    assert await gateway.fetch_profile("anonymous") is None


async def test_upsert_profile_merges(gateway):
    await gateway.upsert_profile({"id": "p1", "user_id": "u1", "name": "A"})
    await gateway.upsert_profile({"id": "p1", "name": "B"})
    assert gateway.profiles["p1"] == {"id": "p1", "user_id": "u1", "name": "B"}


async def test_upsert_and_delete_rows(gateway):
    await gateway.upsert_rows(EntityKind.GOALS, [{"id": "g1", "profile_id": "p1", "name": "a"}])
    await gateway.upsert_rows(EntityKind.GOALS, [{"id": "g1", "profile_id": "p1", "name": "b"}])
    rows = await gateway.fetch_collection(EntityKind.GOALS, "p1")
    assert rows == [{"id": "g1", "profile_id": "p1", "name": "b"}]

    await gateway.delete_rows(EntityKind.GOALS, ["g1"])
    assert await gateway.fetch_collection(EntityKind.GOALS, "p1") == []


async def test_replace_all_primitives(gateway):
    kind = EntityKind.SPENDING_SUMMARIES
    await gateway.insert_rows(kind, [{"profile_id": "p1", "category": "food"}, {"profile_id": "p2", "category": "x"}])
    await gateway.delete_for_profile(kind, "p1")
    assert gateway.rows(kind) == [{"profile_id": "p2", "category": "x"}]


async def test_records_calls(gateway):
    await gateway.upsert_rows(EntityKind.ACCOUNTS, [{"id": "a1", "profile_id": "p"}, {"id": "a2", "profile_id": "p"}])
    (call,) = gateway.calls_to("upsert_rows", EntityKind.ACCOUNTS)
    assert call.size == 2


async def test_fail_mode(gateway):
    gateway.fail = True
    with pytest.raises(RemoteUnavailableError):
        await gateway.fetch_profile("user:u1")
    assert gateway.calls_to("fetch_profile")
