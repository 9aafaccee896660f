"""In-memory RemoteGateway.

A dict-backed stand-in for the remote relational store, used for local
development and tests. Every call is recorded in :attr:`InMemoryGateway.calls`
and the gateway can be switched into a failure mode that raises
:class:`RemoteUnavailableError`, like a dropped connection would.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from finresolve.core.exceptions import RemoteUnavailableError
from finresolve.profile.identity import user_id_of
from finresolve.sync.gateway import EntityKind, Row


@dataclass
class GatewayCall:
    """One recorded gateway call."""

    method: str
    kind: EntityKind | None = None
    payload: Any = None

    @property
    def size(self) -> int:
        return len(self.payload) if isinstance(self.payload, list) else 1


@dataclass
class InMemoryGateway:
    """Dict-backed :class:`~finresolve.sync.gateway.RemoteGateway`.

    Attributes:
        profiles: Profile rows keyed by profile id.
        tables: Child rows per entity kind.
        calls: Every call made, in order.
        fail: When True, every call raises RemoteUnavailableError.
        latency: Seconds each call waits before touching the data.
    """

    profiles: dict[str, Row] = field(default_factory=dict)
    tables: dict[EntityKind, list[Row]] = field(default_factory=lambda: defaultdict(list))
    calls: list[GatewayCall] = field(default_factory=list)
    fail: bool = False
    latency: float = 0.0

    async def _enter(self, method: str, kind: EntityKind | None = None, payload: Any = None) -> None:
        self.calls.append(GatewayCall(method=method, kind=kind, payload=payload))
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.fail:
            logger.debug(f"InMemoryGateway failing {method}")
            raise RemoteUnavailableError(f"Remote store unavailable during {method}")

    # -- Reads ------------------------------------------------------------

    async def fetch_profile(self, identity_key: str) -> Row | None:
        await self._enter("fetch_profile", payload=identity_key)
        user_id = user_id_of(identity_key)
        if user_id is None:
            return None
        for row in self.profiles.values():
            if row.get("user_id") == user_id:
                return dict(row)
        return None

    async def fetch_collection(self, kind: EntityKind, profile_id: str) -> list[Row]:
        await self._enter("fetch_collection", kind, profile_id)
        return [dict(r) for r in self.tables[kind] if r.get("profile_id") == profile_id]

    # -- Writes -----------------------------------------------------------

    async def upsert_profile(self, row: Row) -> None:
        await self._enter("upsert_profile", payload=dict(row))
        existing = self.profiles.get(row["id"], {})
        self.profiles[row["id"]] = {**existing, **row}

    async def upsert_rows(self, kind: EntityKind, rows: list[Row]) -> None:
        await self._enter("upsert_rows", kind, [dict(r) for r in rows])
        table = self.tables[kind]
        index = {r["id"]: i for i, r in enumerate(table)}
        for row in rows:
            if row["id"] in index:
                table[index[row["id"]]] = dict(row)
            else:
                index[row["id"]] = len(table)
                table.append(dict(row))

    async def delete_rows(self, kind: EntityKind, ids: list[str]) -> None:
        await self._enter("delete_rows", kind, list(ids))
        doomed = set(ids)
        self.tables[kind] = [r for r in self.tables[kind] if r.get("id") not in doomed]

    async def delete_for_profile(self, kind: EntityKind, profile_id: str) -> None:
        await self._enter("delete_for_profile", kind, profile_id)
        self.tables[kind] = [r for r in self.tables[kind] if r.get("profile_id") != profile_id]

    async def insert_rows(self, kind: EntityKind, rows: list[Row]) -> None:
        await self._enter("insert_rows", kind, [dict(r) for r in rows])
        self.tables[kind].extend(dict(r) for r in rows)

    async def delete_profile(self, profile_id: str) -> None:
        await self._enter("delete_profile", payload=profile_id)
        self.profiles.pop(profile_id, None)

    # -- Introspection ----------------------------------------------------

    def calls_to(self, method: str, kind: EntityKind | None = None) -> list[GatewayCall]:
        return [c for c in self.calls if c.method == method and (kind is None or c.kind == kind)]

    def rows(self, kind: EntityKind, profile_id: str | None = None) -> list[Row]:
        return [r for r in self.tables[kind] if profile_id is None or r.get("profile_id") == profile_id]
